"""
Registry Events

Typed views over the registry's anchor events. Record ids are pulled from
receipts by validating log arguments against these models instead of
reaching into untyped dictionaries.
"""

from __future__ import annotations

import logging
from typing import Any, ClassVar, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from core.crypto.hashing import normalize_hex
from core.ledger.gateway import TxConfirmation
from core.schemas.records import RecordIdResolution, Visibility


logger = logging.getLogger(__name__)


def _hex_value(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray, str)):
        return normalize_hex(value)
    return value


class RegistryEvent(BaseModel):
    """Base for registry events; subclasses name the event and its id field."""

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    EVENT_NAME: ClassVar[str] = ""
    ID_FIELD: ClassVar[str] = ""

    @property
    def anchor_id(self) -> str:
        return getattr(self, self.ID_FIELD)


class RecordStoredEvent(RegistryEvent):
    """Emitted by storeAPIRecord."""

    EVENT_NAME: ClassVar[str] = "RecordStored"
    ID_FIELD: ClassVar[str] = "record_id"

    record_id: str = Field(..., alias="recordId")
    recorder: str
    request_hash: str = Field(..., alias="requestHash")
    response_hash: str = Field(..., alias="responseHash")
    timestamp: int
    ipfs_hash: str = Field(..., alias="ipfsHash")
    visibility: Visibility

    @field_validator("record_id", "request_hash", "response_hash", mode="before")
    @classmethod
    def _normalize_digest(cls, v: Any) -> Any:
        return _hex_value(v)


class BatchRecordStoredEvent(RegistryEvent):
    """Emitted by storeBatchRecords."""

    EVENT_NAME: ClassVar[str] = "BatchRecordStored"
    ID_FIELD: ClassVar[str] = "batch_id"

    batch_id: str = Field(..., alias="batchId")
    recorder: str
    record_count: int = Field(..., alias="recordCount")
    timestamp: int
    ipfs_hash: str = Field(..., alias="ipfsHash")
    visibility: Visibility

    @field_validator("batch_id", mode="before")
    @classmethod
    def _normalize_id(cls, v: Any) -> Any:
        return _hex_value(v)


EventT = TypeVar("EventT", bound=RegistryEvent)


def decode_event(confirmation: TxConfirmation, model: type[EventT]) -> Optional[EventT]:
    """
    First log in the receipt that validates as the given event model.

    Logs with the right name but malformed arguments are skipped.
    """
    for log in confirmation.events_named(model.EVENT_NAME):
        try:
            return model.model_validate(log.args)
        except ValidationError as e:
            logger.debug(f"Skipping malformed {model.EVENT_NAME} log {log.log_index}: {e}")
    return None


def resolve_record_id(confirmation: TxConfirmation, model: type[RegistryEvent]) -> RecordIdResolution:
    """
    Record id for an anchor transaction.

    Falls back to the transaction hash when no matching event decodes,
    flagging the result as degraded and logging a warning.
    """
    event = decode_event(confirmation, model)
    if event is not None:
        return RecordIdResolution(record_id=event.anchor_id, source="event")

    logger.warning(
        f"No {model.EVENT_NAME} event decoded in tx {confirmation.tx_hash}; "
        f"using transaction hash as record id"
    )
    return RecordIdResolution(record_id=confirmation.tx_hash, source="transaction")
