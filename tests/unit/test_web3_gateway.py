"""
Web3 Gateway Unit Tests
Tests for core/ledger/web3_gateway.py that need no running node:
signer validation, configuration wiring and error translation.
"""
import pytest
from web3 import AsyncWeb3
from web3.exceptions import ContractLogicError, TimeExhausted

from core.config.runtime import NETWORKS, LedgerConfig, ProofConfig
from core.ledger.gateway import REGISTRY, TOKEN
from core.ledger.web3_gateway import Web3ContractGateway
from core.schemas.errors import (
    ConfigurationError,
    ErrorCodes,
    LedgerRejection,
    NetworkError,
)
from orchestrator.pipeline import ProofClient


TEST_KEY = "0x" + "11" * 32


@pytest.fixture
def gateway():
    return Web3ContractGateway.from_config(LedgerConfig(network="local", private_key=TEST_KEY))


class TestConstruction:
    def test_missing_key(self):
        with pytest.raises(ConfigurationError) as exc_info:
            Web3ContractGateway.from_config(LedgerConfig(network="local"))
        assert exc_info.value.code == ErrorCodes.MISSING_SIGNING_KEY

    def test_invalid_key(self):
        with pytest.raises(ConfigurationError) as exc_info:
            Web3ContractGateway.from_config(LedgerConfig(network="local", private_key="0x1234"))
        assert exc_info.value.code == ErrorCodes.MISSING_SIGNING_KEY

    def test_addresses_from_profile(self, gateway):
        profile = NETWORKS["local"]

        assert gateway.contract_address(TOKEN) == AsyncWeb3.to_checksum_address(profile.token_address)
        assert gateway.contract_address(REGISTRY) == AsyncWeb3.to_checksum_address(profile.registry_address)
        assert gateway.account_address.startswith("0x")
        assert gateway.rpc_url == profile.rpc_url

    def test_unknown_contract(self, gateway):
        with pytest.raises(ValueError):
            gateway.contract_address("oracle")

    def test_client_requires_signing_key(self):
        with pytest.raises(ConfigurationError) as exc_info:
            ProofClient.from_config(ProofConfig.from_dict({"ledger": {"network": "local"}}))
        assert exc_info.value.code == ErrorCodes.MISSING_SIGNING_KEY

    def test_client_encrypt_without_key(self):
        config = ProofConfig.from_dict(
            {
                "ledger": {"network": "local", "private_key": TEST_KEY},
                "storage": {"encrypt_data": True},
            }
        )

        with pytest.raises(ConfigurationError) as exc_info:
            ProofClient.from_config(config)
        assert exc_info.value.code == ErrorCodes.MISSING_ENCRYPTION_KEY


class TestErrorTranslation:
    def test_revert_is_ledger_rejection(self, gateway):
        error = gateway._translate("storeAPIRecord", ContractLogicError("execution reverted: Paused"))

        assert isinstance(error, LedgerRejection)
        assert "Paused" in error.reason

    def test_timeout_is_gateway_timeout(self, gateway):
        error = gateway._translate("storeAPIRecord", TimeExhausted("not mined"))

        assert isinstance(error, NetworkError)
        assert error.code == ErrorCodes.GATEWAY_TIMEOUT

    def test_transport_failure_is_network_error(self, gateway):
        error = gateway._translate("balanceOf", ConnectionRefusedError("refused"))

        assert isinstance(error, NetworkError)
        assert error.details["url"] == gateway.rpc_url

    def test_insufficient_gas_funds(self, gateway):
        error = gateway._translate(
            "approve",
            ValueError({"code": -32000, "message": "insufficient funds for gas * price + value"}),
        )

        assert isinstance(error, LedgerRejection)
        assert error.code == ErrorCodes.INSUFFICIENT_FUNDS

    def test_other_failures(self, gateway):
        error = gateway._translate("approve", ValueError("nonce too low"))

        assert isinstance(error, LedgerRejection)
        assert error.code == ErrorCodes.LEDGER_REJECTION
        assert error.reason == "nonce too low"


class TestArgumentValidation:
    """Arguments web3 rejects against the ABI fail before any node round trip."""

    @pytest.mark.asyncio
    async def test_malformed_record_id_on_call(self, gateway):
        with pytest.raises(LedgerRejection) as exc_info:
            await gateway.call(REGISTRY, "verifyRecord", "not-a-record-id")
        assert exc_info.value.code == ErrorCodes.LEDGER_REJECTION

    @pytest.mark.asyncio
    async def test_malformed_viewer_on_transact(self, gateway):
        with pytest.raises(LedgerRejection):
            await gateway.transact(REGISTRY, "grantAccess", "0x" + "ab" * 32, "not-an-address")

    @pytest.mark.asyncio
    async def test_unknown_contract_is_not_translated(self, gateway):
        with pytest.raises(ValueError, match="Unknown contract"):
            await gateway.call("oracle", "verifyRecord", "0x" + "ab" * 32)
