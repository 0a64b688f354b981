"""
Ledger Adapter

Record-level operations on top of a ContractGateway: spending allowance,
single and batch anchors, verification, access grants and read-only
queries against the token and registry contracts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional, Sequence

from core.crypto.hashing import normalize_hex
from core.ledger.events import (
    BatchRecordStoredEvent,
    RecordStoredEvent,
    resolve_record_id,
)
from core.ledger.gateway import REGISTRY, TOKEN, ContractGateway, TxConfirmation
from core.ledger.units import (
    MAX_UINT256,
    TOKEN_DECIMALS,
    USD_PRICE_DECIMALS,
    format_decimal,
    format_units,
)
from core.schemas.errors import (
    ErrorCodes,
    InsufficientBalance,
    LedgerRejection,
    RecordingError,
)
from core.schemas.records import (
    AnchorRecord,
    PricingInfo,
    RecordIdResolution,
    RegistryStatistics,
    TokenBalance,
    UserStatistics,
    Visibility,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnchorResult:
    """A confirmed anchor transaction and the record id it produced."""

    confirmation: TxConfirmation
    resolution: RecordIdResolution

    @property
    def record_id(self) -> str:
        return self.resolution.record_id

    @property
    def tx_hash(self) -> str:
        return self.confirmation.tx_hash


def _is_insufficient(error: LedgerRejection) -> bool:
    if error.code == ErrorCodes.INSUFFICIENT_FUNDS:
        return True
    reason = (error.reason or error.message).lower()
    return "insufficient" in reason


def _as_insufficient(error: LedgerRejection) -> LedgerRejection:
    if isinstance(error, InsufficientBalance) or not _is_insufficient(error):
        return error
    return InsufficientBalance(reason=error.reason or error.message, details=dict(error.details))


class LedgerAdapter:
    """
    Ledger operations used by the recording pipeline.

    Usage:
        ledger = LedgerAdapter(gateway)
        await ledger.ensure_spending_allowance(1)
        anchor = await ledger.submit_single(req_digest, resp_digest, locator, Visibility.PUBLIC)
        record = await ledger.verify(anchor.record_id)
    """

    def __init__(
        self,
        gateway: ContractGateway,
        *,
        auto_approve: bool = True,
        record_cost: Decimal = Decimal("10"),
    ) -> None:
        self.gateway = gateway
        self.auto_approve = auto_approve
        # per-record cost used for total_spent in user statistics
        self.record_cost = Decimal(str(record_cost))

    @property
    def account_address(self) -> str:
        return self.gateway.account_address

    async def _transact(self, contract: str, function: str, *args: Any) -> TxConfirmation:
        try:
            return await self.gateway.transact(contract, function, *args)
        except LedgerRejection as e:
            translated = _as_insufficient(e)
            if translated is e:
                raise
            raise translated from e

    # ------------------------------------------------------------------
    # Spending allowance
    # ------------------------------------------------------------------

    async def ensure_spending_allowance(self, unit_count: int) -> Optional[TxConfirmation]:
        """
        Make sure the registry may collect the price of unit_count records.

        When the current allowance falls short a single approval for the
        maximum amount is sent, so later anchors need no approval at all.
        Returns the approval confirmation, or None when nothing was sent.
        """
        if not self.auto_approve:
            logger.debug("Automatic approval disabled; skipping allowance check")
            return None

        pricing = await self.gateway.call(REGISTRY, "getPricingInfo")
        required = int(pricing[0]) * unit_count
        registry = self.gateway.contract_address(REGISTRY)
        allowance = int(await self.gateway.call(TOKEN, "allowance", self.account_address, registry))
        if allowance >= required:
            return None

        logger.info(
            f"Allowance {format_units(allowance)} below required {format_units(required)}; "
            f"approving unlimited PROOF spending for registry {registry}"
        )
        return await self._transact(TOKEN, "approve", registry, MAX_UINT256)

    # ------------------------------------------------------------------
    # Anchoring
    # ------------------------------------------------------------------

    async def submit_single(
        self,
        request_digest: str,
        response_digest: str,
        locator: str,
        visibility: Visibility = Visibility.PUBLIC,
    ) -> AnchorResult:
        """Anchor one exchange and wait for confirmation."""
        confirmation = await self._transact(
            REGISTRY,
            "storeAPIRecord",
            request_digest,
            response_digest,
            locator,
            int(visibility),
        )
        resolution = resolve_record_id(confirmation, RecordStoredEvent)
        logger.debug(f"Anchored record {resolution.record_id} in block {confirmation.block_number}")
        return AnchorResult(confirmation=confirmation, resolution=resolution)

    async def submit_batch(
        self,
        request_digests: Sequence[str],
        response_digests: Sequence[str],
        locator: str,
        visibility: Visibility = Visibility.PUBLIC,
    ) -> AnchorResult:
        """Anchor several exchanges under one batch id and wait for confirmation."""
        if len(request_digests) != len(response_digests):
            raise RecordingError(
                "Request and response digest lists differ in length",
                code=ErrorCodes.BATCH_LENGTH_MISMATCH,
                details={
                    "requests": len(request_digests),
                    "responses": len(response_digests),
                },
            )
        if not request_digests:
            raise RecordingError("Cannot anchor an empty batch", code=ErrorCodes.EMPTY_BATCH)

        confirmation = await self._transact(
            REGISTRY,
            "storeBatchRecords",
            list(request_digests),
            list(response_digests),
            locator,
            int(visibility),
        )
        resolution = resolve_record_id(confirmation, BatchRecordStoredEvent)
        logger.debug(
            f"Anchored batch {resolution.record_id} ({len(request_digests)} records) "
            f"in block {confirmation.block_number}"
        )
        return AnchorResult(confirmation=confirmation, resolution=resolution)

    # ------------------------------------------------------------------
    # Verification and access
    # ------------------------------------------------------------------

    async def verify(self, record_id: str) -> Optional[AnchorRecord]:
        """
        Look up an anchored record.

        Returns None when the registry reports no such record. A read the
        registry refuses (e.g. a private record of another account) raises
        LedgerRejection.
        """
        exists, record = await self.gateway.call(REGISTRY, "verifyRecord", record_id)
        if not exists:
            return None

        request_hash, response_hash, timestamp, recorder, ipfs_hash, visibility = record[:6]
        return AnchorRecord(
            record_id=normalize_hex(record_id),
            request_digest=normalize_hex(request_hash),
            response_digest=normalize_hex(response_hash),
            timestamp=int(timestamp),
            submitter=recorder,
            archive_locator=ipfs_hash,
            visibility=Visibility(int(visibility)),
        )

    async def grant_access(self, record_id: str, viewer: str) -> str:
        """Allow viewer to read a SHARED record. Returns the transaction hash."""
        confirmation = await self._transact(REGISTRY, "grantAccess", record_id, viewer)
        logger.info(f"Granted {viewer} access to {record_id}")
        return confirmation.tx_hash

    async def revoke_access(self, record_id: str, viewer: str) -> str:
        """Withdraw a viewer's access to a SHARED record. Returns the transaction hash."""
        confirmation = await self._transact(REGISTRY, "revokeAccess", record_id, viewer)
        logger.info(f"Revoked {viewer} access to {record_id}")
        return confirmation.tx_hash

    async def has_access(self, record_id: str, viewer: str) -> bool:
        return bool(await self.gateway.call(REGISTRY, "sharedAccess", record_id, viewer))

    # ------------------------------------------------------------------
    # Read-only queries
    # ------------------------------------------------------------------

    async def get_balance(self) -> TokenBalance:
        address = self.account_address
        proof = await self.gateway.call(TOKEN, "balanceOf", address)
        native = await self.gateway.native_balance(address)
        return TokenBalance(proof=format_units(proof), native=format_units(native))

    async def get_user_statistics(self, address: Optional[str] = None) -> UserStatistics:
        addr = address or self.account_address
        record_count = int(await self.gateway.call(REGISTRY, "userRecordCount", addr))
        balance = await self.gateway.call(TOKEN, "balanceOf", addr)
        return UserStatistics(
            address=addr,
            record_count=record_count,
            proof_balance=format_units(balance),
            total_spent=format_decimal(self.record_cost * record_count),
        )

    async def get_registry_statistics(self) -> RegistryStatistics:
        total, contract_balance, burn_rate, price = await self.gateway.call(REGISTRY, "getStatistics")
        return RegistryStatistics(
            total_records=int(total),
            contract_balance=format_units(contract_balance),
            current_burn_rate=int(burn_rate),
            current_price=format_units(price),
        )

    async def get_pricing_info(self) -> PricingInfo:
        record_price, price_usd, burn_rate, manual = await self.gateway.call(REGISTRY, "getPricingInfo")
        return PricingInfo(
            record_price=format_units(record_price, TOKEN_DECIMALS),
            proof_price_usd=format_units(price_usd, USD_PRICE_DECIMALS),
            current_burn_rate=int(burn_rate),
            using_manual_price=bool(manual),
        )

    async def get_user_records(self, address: Optional[str] = None) -> list[str]:
        records = await self.gateway.call(REGISTRY, "getUserRecords", address or self.account_address)
        return [normalize_hex(r) for r in records]
