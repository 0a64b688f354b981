"""
Contract Gateway

The boundary between the ledger adapter and a concrete chain client.
A gateway knows how to call view functions, send signed transactions and
decode their logs; it knows nothing about records, pricing or visibility.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol


# Contract keys understood by every gateway
TOKEN = "token"
REGISTRY = "registry"


@dataclass(frozen=True)
class EventLog:
    """A decoded contract event from a transaction receipt."""

    event: str
    args: dict[str, Any]
    address: str = ""
    log_index: int = 0


@dataclass(frozen=True)
class TxConfirmation:
    """A mined, successful transaction."""

    tx_hash: str
    block_number: int
    gas_used: int
    effective_gas_price: int
    logs: tuple[EventLog, ...] = field(default_factory=tuple)

    @property
    def fee_wei(self) -> int:
        """Total fee paid in the native currency's smallest unit."""
        return self.gas_used * self.effective_gas_price

    def events_named(self, name: str) -> list[EventLog]:
        return [log for log in self.logs if log.event == name]


class ContractGateway(Protocol):
    """
    Protocol for chain access.

    Implementations raise LedgerRejection for reverted calls or
    transactions (code INSUFFICIENT_FUNDS when the signer cannot pay gas)
    and NetworkError when the node is unreachable or confirmation times out.
    """

    @property
    def account_address(self) -> str:
        """Address of the signing account."""
        ...

    def contract_address(self, contract: str) -> str:
        """Deployed address of the "token" or "registry" contract."""
        ...

    async def call(self, contract: str, function: str, *args: Any) -> Any:
        """Invoke a view function from the signing account."""
        ...

    async def transact(self, contract: str, function: str, *args: Any) -> TxConfirmation:
        """Sign, send and wait for a state-changing call."""
        ...

    async def native_balance(self, address: str) -> int:
        """Native currency balance in its smallest unit."""
        ...

    async def close(self) -> None:
        ...
