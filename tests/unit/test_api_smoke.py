"""
Smoke tests for the query API.

Runs the FastAPI app over a client backed by the simulated ledger and
in-memory storage.
"""
import httpx
import pytest
from fastapi.testclient import TestClient

from api.app import create_app
from api.errors import status_for
from core.schemas.errors import (
    ConfigurationError,
    ErrorCodes,
    InsufficientBalance,
    LedgerRejection,
    NetworkError,
    StorageError,
)
from core.schemas.records import RecordOptions, Visibility

from fixtures.common import make_exchange


@pytest.fixture
def api(client):
    return TestClient(create_app(client))


class TestHealth:
    def test_health(self, api):
        response = api.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["ok"] is True
        assert data["service"] == "proof-anchor-api"
        assert data["network"] == "Local Development Chain"


class TestRecords:
    def test_unknown_record_is_404(self, api):
        response = api.get("/records/0x" + "00" * 32)

        assert response.status_code == 404
        data = response.json()
        assert data["ok"] is False
        assert data["error"]["code"] == "RECORD_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_anchored_record(self, client):
        receipt = await client.record_exchange(make_exchange())
        app = create_app(client)

        async with httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url="http://testserver"
        ) as http:
            response = await http.get(f"/records/{receipt.record_id}")

        assert response.status_code == 200
        record = response.json()["record"]
        assert record["record_id"] == receipt.record_id
        assert record["visibility"] == Visibility.PUBLIC.value

    @pytest.mark.asyncio
    async def test_private_record_of_other_account(self, client, gateway):
        receipt = await client.record_exchange(
            make_exchange(), RecordOptions(visibility=Visibility.PRIVATE)
        )
        gateway.use_account("0x" + "b2" * 20)
        app = create_app(client)

        async with httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url="http://testserver"
        ) as http:
            response = await http.get(f"/records/{receipt.record_id}")

        assert response.status_code == 422
        assert response.json()["error"]["code"] == ErrorCodes.LEDGER_REJECTION


class TestAccountViews:
    def test_stats(self, api):
        response = api.get("/stats")

        assert response.status_code == 200
        data = response.json()
        assert data["registry"]["total_records"] == 0
        assert data["account"]["record_count"] == 0
        assert data["account"]["proof_balance"] == "1000.0"

    def test_pricing(self, api):
        data = api.get("/pricing").json()
        assert data["pricing"]["record_price"] == "10.0"
        assert data["pricing"]["proof_price_usd"] == "0.01"

    def test_balance(self, api, gateway):
        data = api.get("/balance").json()

        assert data["address"] == gateway.account_address
        assert data["balance"] == {"proof": "1000.0", "native": "10.0"}


class TestStatusMapping:
    @pytest.mark.parametrize(
        "exc,status",
        [
            (ConfigurationError("missing key"), 503),
            (InsufficientBalance(), 402),
            (LedgerRejection("reverted"), 422),
            (NetworkError("down"), 502),
            (NetworkError("slow", code=ErrorCodes.GATEWAY_TIMEOUT), 504),
            (StorageError("gone"), 502),
        ],
    )
    def test_status_for(self, exc, status):
        assert status_for(exc) == status
