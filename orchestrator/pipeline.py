"""
Recording Pipeline

In-process orchestration of one recording run:
capture -> fingerprint -> archive -> allowance -> anchor -> confirm
-> certificate -> receipt.

Key features:
- Collaborators (ledger, archive, clock) are injected, never global
- A failure aborts the run at the stage it happened in; nothing is retried
- Payloads archived before a failed anchor stay behind as orphans
"""
from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Awaitable, Callable, Optional, Sequence, Union

import httpx

from core.archive import ArchiveAdapter
from core.clock import Clock, RealClock
from core.config.runtime import ProofConfig
from core.crypto.hashing import fingerprint
from core.crypto.sealing import PayloadSealer
from core.http.client import capture_exchange
from core.ledger.adapter import LedgerAdapter
from core.ledger.memory import InMemoryContractGateway
from core.ledger.units import format_decimal, format_units
from core.receipts import ProofReceipt, RecordedResponse, TokenCost
from core.schemas.errors import ConfigurationError, ErrorCodes, RecordingError
from core.schemas.records import (
    AnchorRecord,
    ArchiveResult,
    BatchEntry,
    CertificateData,
    CertificateEntry,
    Exchange,
    FingerprintPair,
    PricingInfo,
    RecordOptions,
    RegistryStatistics,
    TokenBalance,
    UserStatistics,
    Visibility,
)
from core.storage.base import InMemoryContentStore
from core.storage.kubo import KuboContentStore

from orchestrator.stages import RecordingState, Stage, StageTracker


logger = logging.getLogger(__name__)


RecordCallback = Callable[[ProofReceipt], None]
ErrorCallback = Callable[[Exception], None]


def _epoch_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


class ProofClient:
    """
    Records outbound API calls and anchors them on the ledger.

    Usage:
        client = ProofClient.from_config()
        async with httpx.AsyncClient() as http:
            recorded = await client.record(http.get("https://api.example.com/data"))
        print(recorded.receipt.record_id, recorded.response.json())
    """

    def __init__(
        self,
        *,
        ledger: LedgerAdapter,
        archive: ArchiveAdapter,
        config: Optional[ProofConfig] = None,
        clock: Optional[Clock] = None,
        on_record: Optional[RecordCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        self.config = config or ProofConfig()
        self.ledger = ledger
        self.archive = archive
        self.clock = clock or RealClock()
        self.on_record = on_record
        self.on_error = on_error

    @classmethod
    def from_config(
        cls,
        config: Optional[ProofConfig] = None,
        *,
        on_record: Optional[RecordCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> "ProofClient":
        """
        Build a client against the configured chain and Kubo endpoint.

        Raises:
            ConfigurationError: no signing key, unknown network, or
                encrypt_data without an encryption key
        """
        from core.ledger.web3_gateway import Web3ContractGateway

        config = config or ProofConfig.from_env()
        gateway = Web3ContractGateway.from_config(config.ledger)

        sealer = None
        if config.storage.encryption_key:
            sealer = PayloadSealer(config.storage.encryption_key)
        elif config.storage.encrypt_data:
            raise ConfigurationError(
                "encrypt_data is enabled but ENCRYPTION_KEY is not set",
                code=ErrorCodes.MISSING_ENCRYPTION_KEY,
            )

        archive = ArchiveAdapter(
            KuboContentStore(config.storage),
            gateway_url=config.storage.gateway_url,
            sealer=sealer,
        )
        ledger = LedgerAdapter(
            gateway,
            auto_approve=config.ledger.auto_approve,
            record_cost=config.pricing.record_cost,
        )
        logger.info(
            f"Proof client ready on {config.ledger.profile.label} "
            f"as {gateway.account_address}"
        )
        return cls(
            ledger=ledger,
            archive=archive,
            config=config,
            on_record=on_record,
            on_error=on_error,
        )

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    async def record(
        self,
        call: Awaitable[httpx.Response],
        options: Optional[RecordOptions] = None,
    ) -> RecordedResponse:
        """
        Await an outbound call and anchor it.

        Returns the untouched response paired with its receipt. Any failure
        propagates with the failing stage recorded; a failed call is never
        partially anchored.
        """
        options = options or RecordOptions()
        tracker = StageTracker("record")
        try:
            with tracker.stage(Stage.AWAIT_EXCHANGE):
                response, exchange = await capture_exchange(call, options, clock=self.clock)
            receipt = await self._run_single(exchange, options, tracker)
        except Exception as e:
            self._report_error(e)
            raise
        return RecordedResponse(response=response, receipt=receipt)

    async def record_exchange(
        self,
        exchange: Exchange,
        options: Optional[RecordOptions] = None,
    ) -> ProofReceipt:
        """Anchor an exchange captured elsewhere (e.g. by the middleware)."""
        tracker = StageTracker("record_exchange")
        try:
            return await self._run_single(exchange, options or RecordOptions(), tracker)
        except Exception as e:
            self._report_error(e)
            raise

    async def batch_record(
        self,
        entries: Sequence[Union[BatchEntry, Exchange]],
        visibility: Optional[Visibility] = None,
    ) -> ProofReceipt:
        """
        Anchor several exchanges with one transaction.

        The whole batch is archived as a single document and charged at the
        discounted per-record rate.

        Raises:
            RecordingError: entries is empty (code EMPTY_BATCH)
        """
        tracker = StageTracker("batch_record")
        try:
            if not entries:
                raise RecordingError("Cannot record an empty batch", code=ErrorCodes.EMPTY_BATCH)
            state = RecordingState(
                visibility=Visibility.PUBLIC if visibility is None else Visibility(visibility),
            )
            for entry in entries:
                if isinstance(entry, BatchEntry):
                    state.exchanges.append(entry.exchange)
                    state.metadata.append(entry.metadata)
                else:
                    state.exchanges.append(entry)
                    state.metadata.append({})
            return await self._run_batch(state, tracker)
        except Exception as e:
            self._report_error(e)
            raise

    async def _run_single(
        self,
        exchange: Exchange,
        options: RecordOptions,
        tracker: StageTracker,
    ) -> ProofReceipt:
        state = RecordingState(
            exchanges=[exchange],
            metadata=[options.metadata],
            visibility=Visibility.PUBLIC if options.visibility is None else options.visibility,
        )
        started_at = exchange.request.timestamp

        with tracker.stage(Stage.FINGERPRINT):
            state.fingerprints = [self._fingerprint(exchange)]

        with tracker.stage(Stage.ARCHIVE):
            state.archive = await self.archive.archive(
                {
                    "request": exchange.request_document(),
                    "response": exchange.response_document(),
                    "metadata": options.metadata,
                    "timestamp": _epoch_ms(started_at),
                },
                encrypt=self.config.storage.encrypt_data,
            )

        with tracker.stage(Stage.ENSURE_ALLOWANCE):
            await self.ledger.ensure_spending_allowance(1)

        with tracker.stage(Stage.ANCHOR):
            pair = state.fingerprints[0]
            state.anchor = await self.ledger.submit_single(
                pair.request_digest,
                pair.response_digest,
                state.archive.locator,
                state.visibility,
            )

        with tracker.stage(Stage.CONFIRM):
            self._check_confirmation(state)

        with tracker.stage(Stage.BUILD_CERTIFICATE):
            state.certificate = await self._build_certificate(state, started_at)

        with tracker.stage(Stage.ASSEMBLE_RECEIPT):
            state.receipt = self._assemble_receipt(
                state,
                started_at,
                units_spent=self.config.pricing.record_cost,
                certificate_path="",
            )

        return self._deliver(state, tracker)

    async def _run_batch(self, state: RecordingState, tracker: StageTracker) -> ProofReceipt:
        started_at = self.clock.now()
        count = len(state.exchanges)

        with tracker.stage(Stage.FINGERPRINT):
            state.fingerprints = [self._fingerprint(e) for e in state.exchanges]

        with tracker.stage(Stage.ARCHIVE):
            state.archive = await self.archive.archive(
                {
                    "records": [
                        {
                            "request": exchange.request_document(),
                            "response": exchange.response_document(),
                            "metadata": metadata,
                        }
                        for exchange, metadata in zip(state.exchanges, state.metadata)
                    ],
                    "timestamp": _epoch_ms(started_at),
                    "count": count,
                },
                encrypt=self.config.storage.encrypt_data,
            )

        with tracker.stage(Stage.ENSURE_ALLOWANCE):
            await self.ledger.ensure_spending_allowance(count)

        with tracker.stage(Stage.ANCHOR):
            state.anchor = await self.ledger.submit_batch(
                [p.request_digest for p in state.fingerprints],
                [p.response_digest for p in state.fingerprints],
                state.archive.locator,
                state.visibility,
            )

        with tracker.stage(Stage.CONFIRM):
            self._check_confirmation(state)

        with tracker.stage(Stage.BUILD_CERTIFICATE):
            state.certificate = await self._build_certificate(state, started_at)

        with tracker.stage(Stage.ASSEMBLE_RECEIPT):
            state.receipt = self._assemble_receipt(
                state,
                started_at,
                units_spent=self.config.pricing.batch_record_cost * count,
                certificate_path="batch/",
            )

        return self._deliver(state, tracker)

    # ------------------------------------------------------------------
    # Stage helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _fingerprint(exchange: Exchange) -> FingerprintPair:
        return FingerprintPair(
            request_digest=fingerprint(exchange.request_document()),
            response_digest=fingerprint(exchange.response_document()),
        )

    @staticmethod
    def _check_confirmation(state: RecordingState) -> None:
        anchor = state.anchor
        if anchor.resolution.degraded:
            logger.warning(
                f"Record id for tx {anchor.tx_hash} is the transaction hash; "
                f"the registry event could not be decoded"
            )
        logger.debug(
            f"Confirmed {anchor.tx_hash} in block {anchor.confirmation.block_number} "
            f"(gas used {anchor.confirmation.gas_used})"
        )

    async def _build_certificate(self, state: RecordingState, started_at: datetime) -> ArchiveResult:
        anchor = state.anchor
        return await self.archive.create_certificate(
            CertificateData(
                record_id=anchor.record_id,
                transaction_hash=anchor.tx_hash,
                timestamp=started_at,
                network=self.config.ledger.profile.label,
                explorer_url=self.config.ledger.explorer_url(anchor.tx_hash),
                entries=[
                    CertificateEntry(
                        request_url=exchange.request.url,
                        response_status=exchange.response.status,
                    )
                    for exchange in state.exchanges
                ],
            )
        )

    def _assemble_receipt(
        self,
        state: RecordingState,
        started_at: datetime,
        *,
        units_spent: Decimal,
        certificate_path: str,
    ) -> ProofReceipt:
        anchor = state.anchor
        confirmation = anchor.confirmation
        base_url = self.config.certificate_base_url
        if base_url:
            certificate_url = f"{base_url}{certificate_path}{anchor.record_id}"
        else:
            certificate_url = state.certificate.url

        return ProofReceipt(
            record_id=anchor.record_id,
            transaction_id=anchor.tx_hash,
            block_number=confirmation.block_number,
            timestamp=started_at,
            gas_cost=str(confirmation.gas_used),
            explorer_url=self.config.ledger.explorer_url(anchor.tx_hash),
            certificate_url=certificate_url,
            archive_url=state.archive.url,
            token_cost=TokenCost(
                units_spent=format_decimal(units_spent),
                gas_in_native_currency=format_units(confirmation.fee_wei),
            ),
            record_count=len(state.exchanges),
            record_id_degraded=anchor.resolution.degraded,
        )

    def _deliver(self, state: RecordingState, tracker: StageTracker) -> ProofReceipt:
        receipt = state.receipt
        tracker.deliver()
        logger.info(
            f"Recorded {receipt.record_count} exchange(s) as {receipt.record_id} "
            f"(tx {receipt.transaction_id}, block {receipt.block_number})"
        )
        if self.on_record is not None:
            self.on_record(receipt)
        return receipt

    def _report_error(self, error: Exception) -> None:
        if self.on_error is not None:
            self.on_error(error)

    # ------------------------------------------------------------------
    # Ledger queries and access control
    # ------------------------------------------------------------------

    async def verify(self, record_id: str) -> Optional[AnchorRecord]:
        return await self.ledger.verify(record_id)

    async def grant_access(self, record_id: str, viewer: str) -> str:
        return await self.ledger.grant_access(record_id, viewer)

    async def revoke_access(self, record_id: str, viewer: str) -> str:
        return await self.ledger.revoke_access(record_id, viewer)

    async def has_access(self, record_id: str, viewer: str) -> bool:
        return await self.ledger.has_access(record_id, viewer)

    async def get_balance(self) -> TokenBalance:
        return await self.ledger.get_balance()

    async def get_statistics(self, address: Optional[str] = None) -> UserStatistics:
        return await self.ledger.get_user_statistics(address)

    async def get_registry_statistics(self) -> RegistryStatistics:
        return await self.ledger.get_registry_statistics()

    async def get_pricing_info(self) -> PricingInfo:
        return await self.ledger.get_pricing_info()

    async def get_user_records(self, address: Optional[str] = None) -> list[str]:
        return await self.ledger.get_user_records(address)

    async def retrieve(self, locator: str) -> Any:
        """Fetch an archived payload, opening it when it was sealed."""
        return await self.archive.retrieve(locator, decrypt=True)

    async def close(self) -> None:
        await self.archive.store.close()
        await self.ledger.gateway.close()

    async def __aenter__(self) -> "ProofClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()


# =============================================================================
# Factory Functions
# =============================================================================

def create_client(
    config: Optional[ProofConfig] = None,
    *,
    on_record: Optional[RecordCallback] = None,
    on_error: Optional[ErrorCallback] = None,
) -> ProofClient:
    """
    Create a client against a real chain and content store.

    Configuration comes from the environment (and .env) when not given.
    """
    return ProofClient.from_config(config, on_record=on_record, on_error=on_error)


def create_local_client(
    *,
    config: Optional[ProofConfig] = None,
    gateway: Optional[InMemoryContractGateway] = None,
    store: Optional[InMemoryContentStore] = None,
    clock: Optional[Clock] = None,
    token_balance: int = 1_000,
    encryption_key: Optional[str] = None,
    on_record: Optional[RecordCallback] = None,
    on_error: Optional[ErrorCallback] = None,
) -> ProofClient:
    """
    Create a client over the simulated ledger and in-memory storage.

    The simulated signer starts with token_balance PROOF tokens. Nothing
    leaves the process, which makes this the client for tests and local
    development.
    """
    config = config or ProofConfig.from_dict({"ledger": {"network": "local"}})
    clock = clock or RealClock()
    if gateway is None:
        gateway = InMemoryContractGateway(clock=clock)
        gateway.mint(gateway.account_address, token_balance)

    secret = encryption_key or config.storage.encryption_key
    archive = ArchiveAdapter(
        store or InMemoryContentStore(),
        gateway_url=config.storage.gateway_url,
        sealer=PayloadSealer(secret) if secret else None,
        clock=clock,
    )
    ledger = LedgerAdapter(
        gateway,
        auto_approve=config.ledger.auto_approve,
        record_cost=config.pricing.record_cost,
    )
    return ProofClient(
        ledger=ledger,
        archive=archive,
        config=config,
        clock=clock,
        on_record=on_record,
        on_error=on_error,
    )
