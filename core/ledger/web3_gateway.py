"""
Web3 Contract Gateway

ContractGateway implementation over web3.py's AsyncWeb3 and an
eth-account local signer. Transactions are built, signed locally and
sent raw; receipts are decoded against the bundled ABIs.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from eth_account import Account
from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.exceptions import ContractLogicError, TimeExhausted, Web3Exception
from web3.logs import DISCARD

from core.config.runtime import LedgerConfig
from core.crypto.hashing import normalize_hex
from core.ledger.abis import PROOF_REGISTRY_ABI, PROOF_TOKEN_ABI, REGISTRY_EVENTS, TOKEN_EVENTS
from core.ledger.gateway import REGISTRY, TOKEN, EventLog, TxConfirmation
from core.schemas.errors import (
    ConfigurationError,
    ErrorCodes,
    LedgerRejection,
    NetworkError,
)


logger = logging.getLogger(__name__)


def _error_message(error: Exception) -> str:
    message = getattr(error, "message", None)
    if isinstance(message, str) and message:
        return message
    if error.args and isinstance(error.args[0], dict):
        return str(error.args[0].get("message", error))
    return str(error)


class Web3ContractGateway:
    """
    Chain access through a JSON-RPC node.

    The private key is handed to eth-account once at construction and is
    not kept anywhere else.
    """

    def __init__(
        self,
        *,
        rpc_url: str,
        private_key: str,
        token_address: str,
        registry_address: str,
        confirmation_timeout: float = 120.0,
        provider: Optional[Any] = None,
    ) -> None:
        if not private_key:
            raise ConfigurationError(
                "A signing key is required to anchor records",
                code=ErrorCodes.MISSING_SIGNING_KEY,
            )
        self.rpc_url = rpc_url
        self.confirmation_timeout = confirmation_timeout
        self._w3 = AsyncWeb3(provider or AsyncHTTPProvider(rpc_url))
        try:
            self._account = Account.from_key(private_key)
        except Exception as e:  # eth-keys raises its own ValidationError
            raise ConfigurationError(
                "Signing key is not a valid private key",
                code=ErrorCodes.MISSING_SIGNING_KEY,
            ) from e

        self._contracts = {
            TOKEN: self._w3.eth.contract(
                address=AsyncWeb3.to_checksum_address(token_address),
                abi=PROOF_TOKEN_ABI,
            ),
            REGISTRY: self._w3.eth.contract(
                address=AsyncWeb3.to_checksum_address(registry_address),
                abi=PROOF_REGISTRY_ABI,
            ),
        }
        self._events = {TOKEN: TOKEN_EVENTS, REGISTRY: REGISTRY_EVENTS}

    @classmethod
    def from_config(cls, config: LedgerConfig) -> "Web3ContractGateway":
        return cls(
            rpc_url=config.resolved_rpc_url,
            private_key=config.private_key or "",
            token_address=config.resolved_token_address,
            registry_address=config.resolved_registry_address,
            confirmation_timeout=config.confirmation_timeout,
        )

    @property
    def account_address(self) -> str:
        return self._account.address

    def contract_address(self, contract: str) -> str:
        return self._contract(contract).address

    def _contract(self, contract: str) -> Any:
        try:
            return self._contracts[contract]
        except KeyError:
            raise ValueError(f"Unknown contract: {contract}") from None

    def _function(self, target: Any, function: str, args: tuple) -> Any:
        # web3 checks the arguments against the ABI here
        return getattr(target.functions, function)(*args)

    def _translate(self, function: str, error: Exception) -> Exception:
        """Map a web3 or transport failure to the pipeline taxonomy."""
        if isinstance(error, ContractLogicError):
            reason = _error_message(error)
            return LedgerRejection(f"{function} reverted: {reason}", reason=reason)
        if isinstance(error, (TimeExhausted, asyncio.TimeoutError)):
            return NetworkError(
                f"Timed out waiting for {function}",
                url=self.rpc_url,
                code=ErrorCodes.GATEWAY_TIMEOUT,
            )
        if isinstance(error, OSError):
            return NetworkError(f"Ledger node unreachable during {function}: {error}", url=self.rpc_url)

        message = _error_message(error)
        if "insufficient funds" in message.lower():
            return LedgerRejection(
                f"{function} rejected: {message}",
                reason=message,
                code=ErrorCodes.INSUFFICIENT_FUNDS,
            )
        return LedgerRejection(f"{function} failed: {message}", reason=message)

    async def call(self, contract: str, function: str, *args: Any) -> Any:
        target = self._contract(contract)
        try:
            fn = self._function(target, function, args)
            return await fn.call({"from": self._account.address})
        except (Web3Exception, ValueError, OSError, asyncio.TimeoutError) as e:
            raise self._translate(function, e) from e

    async def transact(self, contract: str, function: str, *args: Any) -> TxConfirmation:
        target = self._contract(contract)
        sender = self._account.address
        try:
            fn = self._function(target, function, args)
            nonce = await self._w3.eth.get_transaction_count(sender, "pending")
            tx = await fn.build_transaction({"from": sender, "nonce": nonce})
            signed = self._account.sign_transaction(tx)
            tx_hash = await self._w3.eth.send_raw_transaction(signed.raw_transaction)
            logger.debug(f"Sent {function} as {normalize_hex(tx_hash)}, waiting for receipt")
            receipt = await self._w3.eth.wait_for_transaction_receipt(
                tx_hash,
                timeout=self.confirmation_timeout,
            )
        except (Web3Exception, ValueError, OSError, asyncio.TimeoutError) as e:
            raise self._translate(function, e) from e

        tx_hex = normalize_hex(receipt["transactionHash"])
        if receipt["status"] != 1:
            raise LedgerRejection(
                f"Transaction {function} reverted",
                reason="execution reverted",
                tx_hash=tx_hex,
            )

        return TxConfirmation(
            tx_hash=tx_hex,
            block_number=receipt["blockNumber"],
            gas_used=receipt["gasUsed"],
            effective_gas_price=receipt.get("effectiveGasPrice", 0),
            logs=self._decode_logs(contract, receipt),
        )

    def _decode_logs(self, contract: str, receipt: Any) -> tuple[EventLog, ...]:
        target = self._contract(contract)
        decoded = []
        for name in self._events[contract]:
            event = getattr(target.events, name)()
            for entry in event.process_receipt(receipt, errors=DISCARD):
                decoded.append(
                    EventLog(
                        event=entry["event"],
                        args=dict(entry["args"]),
                        address=entry["address"],
                        log_index=entry["logIndex"],
                    )
                )
        return tuple(sorted(decoded, key=lambda log: log.log_index))

    async def native_balance(self, address: str) -> int:
        try:
            return await self._w3.eth.get_balance(AsyncWeb3.to_checksum_address(address))
        except (Web3Exception, OSError, asyncio.TimeoutError) as e:
            raise self._translate("get_balance", e) from e

    async def close(self) -> None:
        disconnect = getattr(self._w3.provider, "disconnect", None)
        if disconnect is not None:
            await disconnect()
