"""
Receipt Models

The client-facing summary of a completed recording. A receipt is created
once per successful pipeline run and never mutated afterwards.

Key Design Principles:
1. record_id is whatever the ledger assigned; record_id_degraded flags the
   case where the transaction hash had to stand in for it
2. Amounts are decimal strings in whole token units
3. The original response is never modified; RecordedResponse pairs it with
   its receipt instead
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class TokenCost(BaseModel):
    """What a recording cost the signer."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    units_spent: str = Field(
        ...,
        description="PROOF tokens charged for the record(s)",
    )
    gas_in_native_currency: str = Field(
        ...,
        description="Gas fee in the chain's native currency (gas_used * gas_price)",
    )


class ProofReceipt(BaseModel):
    """
    Proof receipt for an anchored exchange (or batch of exchanges).

    Everything a third party needs to look the record up again: the
    registry record id, the transaction, where the archived payload and the
    certificate live.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    record_id: str = Field(
        ...,
        description="Registry record id (batch id for batches)",
    )
    transaction_id: str = Field(
        ...,
        description="Hash of the anchoring transaction",
    )
    block_number: int = Field(
        ...,
        description="Block that confirmed the transaction",
    )
    timestamp: datetime = Field(
        ...,
        description="When the recorded request started (batch: when the batch was built)",
    )
    gas_cost: str = Field(
        ...,
        description="Gas used by the anchoring transaction",
    )
    explorer_url: str = Field(
        ...,
        description="Block explorer link for the transaction",
    )
    certificate_url: str = Field(
        ...,
        description="Gateway URL of the archived verification certificate",
    )
    archive_url: str = Field(
        ...,
        description="Gateway URL of the archived request/response payload",
    )
    token_cost: TokenCost
    record_count: int = Field(
        default=1,
        ge=1,
        description="Number of exchanges covered by this receipt",
    )
    record_id_degraded: bool = Field(
        default=False,
        description="True when no registry event decoded and record_id is the tx hash",
    )


@dataclass(frozen=True)
class RecordedResponse:
    """
    The caller's original response paired with its proof receipt.

    Usage:
        recorded = await client.record(http.get("https://api.example.com/data"))
        data = recorded.response.json()
        print(recorded.receipt.record_id)
    """
    response: Any
    receipt: ProofReceipt

    @property
    def proof(self) -> ProofReceipt:
        """Alias kept for callers used to ``response.proof``."""
        return self.receipt

    def json(self) -> Any:
        return self.response.json()

    @property
    def status_code(self) -> Optional[int]:
        return getattr(self.response, "status_code", None)
