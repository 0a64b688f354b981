"""
Ledger Module

Anchoring of exchange fingerprints on the PROOF registry contract.
"""

from .adapter import AnchorResult, LedgerAdapter
from .events import BatchRecordStoredEvent, RecordStoredEvent, decode_event, resolve_record_id
from .gateway import REGISTRY, TOKEN, ContractGateway, EventLog, TxConfirmation
from .memory import InMemoryContractGateway
from .units import MAX_UINT256, format_units, parse_units

__all__ = [
    # Adapter
    "AnchorResult",
    "LedgerAdapter",
    # Gateway boundary
    "ContractGateway",
    "EventLog",
    "TxConfirmation",
    "TOKEN",
    "REGISTRY",
    "InMemoryContractGateway",
    # Events
    "RecordStoredEvent",
    "BatchRecordStoredEvent",
    "decode_event",
    "resolve_record_id",
    # Units
    "MAX_UINT256",
    "format_units",
    "parse_units",
]
