"""
Recording Pipeline Tests
Tests for orchestrator/pipeline.py and orchestrator/stages.py

Tests:
- Single recording produces a verifiable receipt
- Batch recording is charged at the discounted rate
- Failures carry the stage they happened in; archives may be orphaned
- Callbacks fire on success and failure
- record() keeps the caller's response readable
"""
import httpx
import pytest

from core.config.runtime import ProofConfig
from core.crypto.hashing import fingerprint
from core.crypto.sealing import SEALED_MARKER
from core.schemas.errors import (
    ConfigurationError,
    ErrorCodes,
    InsufficientBalance,
    LedgerRejection,
    NetworkError,
    RecordingError,
)
from core.schemas.records import RecordOptions, Visibility
from orchestrator.stages import RecordingState, Stage, StageTracker

from fixtures.common import (
    FIXED_TIME,
    TEST_ENCRYPTION_KEY,
    make_batch_entry,
    make_exchange,
    make_local_client,
)


class TestRecordExchange:
    """Tests for ProofClient.record_exchange()."""

    @pytest.mark.asyncio
    async def test_receipt_fields(self, client, exchange, gateway):
        receipt = await client.record_exchange(exchange)

        assert receipt.record_id in gateway.records
        assert receipt.transaction_id.startswith("0x")
        assert receipt.block_number > 0
        assert receipt.timestamp == exchange.request.timestamp
        assert receipt.explorer_url == f"http://localhost:3000/tx/{receipt.transaction_id}"
        assert receipt.archive_url.startswith("https://ipfs.io/ipfs/")
        assert receipt.certificate_url.startswith("https://ipfs.io/ipfs/")
        assert receipt.token_cost.units_spent == "10"
        assert receipt.token_cost.gas_in_native_currency == "0.0045"
        assert receipt.gas_cost == "150000"
        assert receipt.record_count == 1
        assert receipt.record_id_degraded is False

    @pytest.mark.asyncio
    async def test_anchored_digests_match_exchange(self, client, exchange):
        receipt = await client.record_exchange(exchange)

        record = await client.verify(receipt.record_id)

        assert record.request_digest == fingerprint(exchange.request_document())
        assert record.response_digest == fingerprint(exchange.response_document())

    @pytest.mark.asyncio
    async def test_default_visibility_is_public(self, client, exchange):
        receipt = await client.record_exchange(exchange)
        assert (await client.verify(receipt.record_id)).visibility == Visibility.PUBLIC

    @pytest.mark.asyncio
    async def test_explicit_visibility(self, client, exchange):
        receipt = await client.record_exchange(
            exchange, RecordOptions(visibility=Visibility.SHARED)
        )
        assert (await client.verify(receipt.record_id)).visibility == Visibility.SHARED

    @pytest.mark.asyncio
    async def test_verify_is_idempotent(self, client, exchange):
        receipt = await client.record_exchange(exchange)

        first = await client.verify(receipt.record_id)
        second = await client.verify(receipt.record_id)

        assert first == second

    @pytest.mark.asyncio
    async def test_archived_payload(self, client, exchange):
        receipt = await client.record_exchange(
            exchange, RecordOptions(metadata={"source": "unit-test"})
        )
        record = await client.verify(receipt.record_id)

        payload = await client.retrieve(record.archive_locator)

        assert payload["request"] == exchange.request_document()
        assert payload["response"] == exchange.response_document()
        assert payload["metadata"] == {"source": "unit-test"}
        assert payload["timestamp"] == int(FIXED_TIME.timestamp() * 1000)

    @pytest.mark.asyncio
    async def test_certificate_archived(self, client, exchange, store):
        receipt = await client.record_exchange(exchange)

        locator = receipt.certificate_url.rsplit("/", 1)[-1]
        html = (await store.get(locator)).decode()

        assert receipt.record_id in html
        assert receipt.transaction_id in html
        assert exchange.request.url in html
        assert "Local Development Chain" in html

    @pytest.mark.asyncio
    async def test_certificate_base_url(self, gateway, store, clock, exchange):
        config = ProofConfig.from_dict(
            {
                "ledger": {"network": "local"},
                "certificate_base_url": "https://proof.example/cert/",
            }
        )
        client = make_local_client(gateway=gateway, store=store, clock=clock, config=config)

        receipt = await client.record_exchange(exchange)

        assert receipt.certificate_url == f"https://proof.example/cert/{receipt.record_id}"

    @pytest.mark.asyncio
    async def test_degraded_record_id(self, client, gateway, exchange):
        gateway.emit_registry_events = False

        receipt = await client.record_exchange(exchange)

        assert receipt.record_id_degraded is True
        assert receipt.record_id == receipt.transaction_id

    @pytest.mark.asyncio
    async def test_encrypted_archive(self, gateway, store, clock, exchange):
        config = ProofConfig.from_dict(
            {"ledger": {"network": "local"}, "storage": {"encrypt_data": True}}
        )
        client = make_local_client(
            gateway=gateway,
            store=store,
            clock=clock,
            config=config,
            encryption_key=TEST_ENCRYPTION_KEY,
        )

        receipt = await client.record_exchange(exchange)
        record = await client.verify(receipt.record_id)

        raw = (await store.get(record.archive_locator)).decode()
        assert raw.startswith(SEALED_MARKER)
        assert (await client.retrieve(record.archive_locator))["request"]["url"] == exchange.request.url

    @pytest.mark.asyncio
    async def test_encrypt_without_key_fails_at_archive(self, gateway, store, clock, exchange):
        config = ProofConfig.from_dict(
            {"ledger": {"network": "local"}, "storage": {"encrypt_data": True}}
        )
        client = make_local_client(gateway=gateway, store=store, clock=clock, config=config)

        with pytest.raises(ConfigurationError) as exc_info:
            await client.record_exchange(exchange)

        assert exc_info.value.details["stage"] == Stage.ARCHIVE.value
        assert store.locators == []
        assert gateway.records == {}


class TestFailures:
    @pytest.mark.asyncio
    async def test_anchor_failure_leaves_orphaned_archive(self, client, gateway, store, exchange):
        gateway.fail_next("storeAPIRecord", LedgerRejection("reverted", reason="Paused"))

        with pytest.raises(LedgerRejection) as exc_info:
            await client.record_exchange(exchange)

        assert exc_info.value.details["stage"] == Stage.ANCHOR.value
        assert len(store.locators) == 1
        assert gateway.records == {}

    @pytest.mark.asyncio
    async def test_insufficient_tokens(self, store, clock, exchange):
        client = make_local_client(token_balance=5, store=store, clock=clock)

        with pytest.raises(InsufficientBalance) as exc_info:
            await client.record_exchange(exchange)

        assert exc_info.value.code == ErrorCodes.INSUFFICIENT_FUNDS
        assert exc_info.value.details["stage"] == Stage.ANCHOR.value

    @pytest.mark.asyncio
    async def test_on_error_callback(self, gateway, store, clock, exchange):
        errors = []
        client = make_local_client(
            gateway=gateway, store=store, clock=clock, on_error=errors.append
        )
        gateway.fail_next("storeAPIRecord", LedgerRejection("reverted", reason="Paused"))

        with pytest.raises(LedgerRejection):
            await client.record_exchange(exchange)

        assert len(errors) == 1
        assert isinstance(errors[0], LedgerRejection)

    @pytest.mark.asyncio
    async def test_on_record_callback(self, gateway, store, clock, exchange):
        receipts = []
        client = make_local_client(
            gateway=gateway, store=store, clock=clock, on_record=receipts.append
        )

        receipt = await client.record_exchange(exchange)

        assert receipts == [receipt]

    @pytest.mark.asyncio
    async def test_failing_on_record_propagates(self, gateway, store, clock, exchange):
        errors = []

        def boom(receipt):
            raise RuntimeError("callback failed")

        client = make_local_client(
            gateway=gateway, store=store, clock=clock, on_record=boom, on_error=errors.append
        )

        with pytest.raises(RuntimeError, match="callback failed"):
            await client.record_exchange(exchange)
        assert len(errors) == 1


class TestBatchRecord:
    @pytest.mark.asyncio
    async def test_batch_receipt(self, client, gateway):
        entries = [make_batch_entry(i) for i in range(3)]

        receipt = await client.batch_record(entries)

        assert receipt.record_count == 3
        assert receipt.token_cost.units_spent == "24"
        assert gateway.transaction_count("storeBatchRecords") == 1
        assert (await client.get_balance()).proof == "976.0"

    @pytest.mark.asyncio
    async def test_batch_cheaper_than_singles(self, client):
        receipt = await client.batch_record([make_batch_entry(i) for i in range(3)])
        assert float(receipt.token_cost.units_spent) < 3 * 10

    @pytest.mark.asyncio
    async def test_batch_archive_document(self, client):
        entries = [make_batch_entry(i) for i in range(2)]
        receipt = await client.batch_record(entries)
        record = await client.verify(receipt.record_id)

        payload = await client.retrieve(record.archive_locator)

        assert payload["count"] == 2
        assert [r["metadata"] for r in payload["records"]] == [{"index": 0}, {"index": 1}]
        assert payload["records"][1]["request"]["url"] == "https://api.example.com/v1/items/1"

    @pytest.mark.asyncio
    async def test_plain_exchanges_accepted(self, client):
        receipt = await client.batch_record([make_exchange(), make_exchange(status=404)])
        assert receipt.record_count == 2

    @pytest.mark.asyncio
    async def test_batch_certificate_path(self, gateway, store, clock):
        config = ProofConfig.from_dict(
            {
                "ledger": {"network": "local"},
                "certificate_base_url": "https://proof.example/cert/",
            }
        )
        client = make_local_client(gateway=gateway, store=store, clock=clock, config=config)

        receipt = await client.batch_record([make_batch_entry(0), make_batch_entry(1)])

        assert receipt.certificate_url == f"https://proof.example/cert/batch/{receipt.record_id}"

    @pytest.mark.asyncio
    async def test_empty_batch(self, client, gateway):
        with pytest.raises(RecordingError) as exc_info:
            await client.batch_record([])

        assert exc_info.value.code == ErrorCodes.EMPTY_BATCH
        assert gateway.transactions == []


class TestRecord:
    """Tests for ProofClient.record() over an httpx call."""

    @staticmethod
    def _http(handler):
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    @pytest.mark.asyncio
    async def test_response_stays_readable(self, client):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"price": "101250.00"})

        async with self._http(handler) as http:
            recorded = await client.record(http.get("https://api.example.com/v1/prices"))

        assert recorded.response.json() == {"price": "101250.00"}
        assert recorded.status_code == 200
        assert recorded.proof is recorded.receipt

    @pytest.mark.asyncio
    async def test_captures_request_body(self, client):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(201, json={"id": 7})

        async with self._http(handler) as http:
            recorded = await client.record(
                http.post("https://api.example.com/v1/orders", json={"qty": 2})
            )
        record = await client.verify(recorded.receipt.record_id)
        payload = await client.retrieve(record.archive_locator)

        assert payload["request"]["method"] == "POST"
        assert payload["request"]["body"] == {"qty": 2}
        assert payload["response"]["status"] == 201
        assert payload["response"]["body"] == {"id": 7}

    @pytest.mark.asyncio
    async def test_options_override_request(self, client):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="ok")

        async with self._http(handler) as http:
            recorded = await client.record(
                http.get("https://api.example.com/v1/ping"),
                RecordOptions(headers={"x-trace": "abc"}, metadata={"job": "nightly"}),
            )
        record = await client.verify(recorded.receipt.record_id)
        payload = await client.retrieve(record.archive_locator)

        assert payload["request"]["headers"] == {"x-trace": "abc"}
        assert payload["response"]["body"] == "ok"
        assert payload["metadata"] == {"job": "nightly"}

    @pytest.mark.asyncio
    async def test_transport_failure_is_network_error(self, client, gateway):
        errors = []
        client.on_error = errors.append

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with self._http(handler) as http:
            with pytest.raises(NetworkError) as exc_info:
                await client.record(http.get("https://api.example.com/v1/prices"))

        assert exc_info.value.details["stage"] == Stage.AWAIT_EXCHANGE.value
        assert exc_info.value.details["url"] == "https://api.example.com/v1/prices"
        assert gateway.transactions == []
        assert len(errors) == 1


class TestStageTracker:
    def test_records_success_and_failure(self):
        tracker = StageTracker("test")

        with tracker.stage(Stage.FINGERPRINT):
            pass
        with pytest.raises(ValueError) as exc_info:
            with tracker.stage(Stage.ARCHIVE):
                raise ValueError("bad payload")

        assert tracker.get_failed_stage() == "archive"
        assert tracker.stage_results[0] == ("fingerprint", True, None)
        assert "recording stage: archive" in exc_info.value.__notes__

    def test_deliver(self):
        tracker = StageTracker("test")
        tracker.deliver()

        assert tracker.current == Stage.DELIVERED
        assert tracker.get_failed_stage() is None


class TestRecordingState:
    def test_starts_empty(self):
        state = RecordingState()

        assert state.exchanges == []
        assert state.visibility == Visibility.PUBLIC
        assert state.archive is None
        assert state.receipt is None
