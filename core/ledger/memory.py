"""
In-Memory Contract Gateway

A deterministic, single-process stand-in for the PROOF token and registry
contracts. It charges tokens through the allowance, enforces visibility on
reads, emits the same events as the deployed contracts and can be told to
revert or drop events, which is what the pipeline tests need.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from core.clock import Clock, RealClock
from core.crypto.hashing import from_hex, normalize_hex, sha256, to_hex
from core.ledger.gateway import REGISTRY, TOKEN, EventLog, TxConfirmation
from core.schemas.errors import ErrorCodes, LedgerRejection
from core.schemas.records import Visibility


logger = logging.getLogger(__name__)

DEFAULT_ACCOUNT = "0x" + "a1" * 20
DEFAULT_TOKEN_ADDRESS = "0x" + "70" * 20
DEFAULT_REGISTRY_ADDRESS = "0x" + "e6" * 20

WEI = 10**18

# Gas figures reported on every simulated receipt
SIMULATED_GAS_USED = 150_000
SIMULATED_GAS_PRICE = 30 * 10**9  # 30 gwei


class _Revert(Exception):
    pass


class InMemoryContractGateway:
    """
    Simulated ledger implementing the ContractGateway protocol.

    Usage:
        gateway = InMemoryContractGateway()
        gateway.mint(gateway.account_address, 1_000)
        confirmation = await gateway.transact("registry", "storeAPIRecord", ...)

    Amounts passed to mint() and the price knobs are whole tokens;
    everything the contract functions return is in wei, as on chain.
    """

    def __init__(
        self,
        *,
        account_address: str = DEFAULT_ACCOUNT,
        record_price: int = 10,
        batch_discount_percent: int = 80,
        burn_rate: int = 5000,
        proof_price_usd: int = 1_000_000,  # 0.01 USD with 8 decimals
        native_balance: int = 10 * WEI,
        clock: Optional[Clock] = None,
    ) -> None:
        self._account = account_address.lower()
        self.clock = clock or RealClock()
        self.addresses = {
            TOKEN: DEFAULT_TOKEN_ADDRESS,
            REGISTRY: DEFAULT_REGISTRY_ADDRESS,
        }

        # token state
        self.balances: dict[str, int] = {}
        self.allowances: dict[tuple[str, str], int] = {}
        self.native_balances: dict[str, int] = {self._account: native_balance}

        # registry state
        self.record_price = record_price * WEI
        self.batch_discount_percent = batch_discount_percent
        self.burn_rate = burn_rate
        self.proof_price_usd = proof_price_usd
        self.using_manual_price = False
        self.records: dict[str, tuple] = {}
        self.user_records: dict[str, list[str]] = {}
        self.record_counts: dict[str, int] = {}
        self.shared: set[tuple[str, str]] = set()
        self.contract_balance = 0

        # simulation knobs
        self.emit_registry_events = True
        self.transactions: list[tuple[str, str, tuple]] = []
        self._failures: dict[str, Exception] = {}
        self._block_number = 1_000
        self._nonce = 0

    # ------------------------------------------------------------------
    # Simulation controls
    # ------------------------------------------------------------------

    @property
    def account_address(self) -> str:
        return self._account

    def use_account(self, address: str) -> None:
        """Act as a different signer from now on (shares all state)."""
        self._account = address.lower()

    def mint(self, address: str, amount: int) -> None:
        """Credit whole PROOF tokens to an address."""
        key = address.lower()
        self.balances[key] = self.balances.get(key, 0) + amount * WEI

    def fail_next(self, function: str, error: Exception) -> None:
        """Raise error from the next transact() of the named function."""
        self._failures[function] = error

    def transaction_count(self, function: str) -> int:
        return sum(1 for _, fn, _ in self.transactions if fn == function)

    # ------------------------------------------------------------------
    # ContractGateway protocol
    # ------------------------------------------------------------------

    def contract_address(self, contract: str) -> str:
        return self.addresses[contract]

    async def call(self, contract: str, function: str, *args: Any) -> Any:
        handler = self._handler(contract, function, view=True)
        try:
            return handler(*args)
        except _Revert as e:
            raise LedgerRejection(f"Call {function} reverted: {e}", reason=str(e)) from None

    async def transact(self, contract: str, function: str, *args: Any) -> TxConfirmation:
        injected = self._failures.pop(function, None)
        if injected is not None:
            raise injected

        handler = self._handler(contract, function, view=False)
        fee = SIMULATED_GAS_USED * SIMULATED_GAS_PRICE
        native = self.native_balances.get(self._account, 0)
        if native < fee:
            raise LedgerRejection(
                "insufficient funds for gas * price + value",
                reason="insufficient funds for gas",
                code=ErrorCodes.INSUFFICIENT_FUNDS,
            )

        try:
            logs = handler(*args)
        except _Revert as e:
            raise LedgerRejection(
                f"Transaction {function} reverted: {e}",
                reason=str(e),
            ) from None

        self.native_balances[self._account] = native - fee
        self._block_number += 1
        self._nonce += 1
        tx_hash = to_hex(sha256(f"{self._account}:{function}:{self._nonce}".encode()))
        self.transactions.append((contract, function, args))
        logger.debug(f"Simulated {contract}.{function} in block {self._block_number}")

        indexed = tuple(
            EventLog(
                event=log.event,
                args=log.args,
                address=log.address,
                log_index=i,
            )
            for i, log in enumerate(logs)
        )
        return TxConfirmation(
            tx_hash=tx_hash,
            block_number=self._block_number,
            gas_used=SIMULATED_GAS_USED,
            effective_gas_price=SIMULATED_GAS_PRICE,
            logs=indexed,
        )

    async def native_balance(self, address: str) -> int:
        return self.native_balances.get(address.lower(), 0)

    async def close(self) -> None:
        return None

    def _handler(self, contract: str, function: str, *, view: bool) -> Callable[..., Any]:
        prefix = "_view" if view else "_tx"
        handler = getattr(self, f"{prefix}_{contract}_{function}", None)
        if handler is None:
            kind = "view function" if view else "function"
            raise LedgerRejection(
                f"Unknown {kind} {contract}.{function}",
                reason="function selector was not recognized",
            )
        return handler

    # ------------------------------------------------------------------
    # Token
    # ------------------------------------------------------------------

    def _view_token_balanceOf(self, owner: str) -> int:
        return self.balances.get(owner.lower(), 0)

    def _view_token_allowance(self, owner: str, spender: str) -> int:
        return self.allowances.get((owner.lower(), spender.lower()), 0)

    def _view_token_decimals(self) -> int:
        return 18

    def _tx_token_approve(self, spender: str, amount: int) -> list[EventLog]:
        self.allowances[(self._account, spender.lower())] = amount
        return [
            EventLog(
                event="Approval",
                args={"owner": self._account, "spender": spender.lower(), "value": amount},
                address=self.addresses[TOKEN],
            )
        ]

    def _collect(self, amount: int) -> list[EventLog]:
        registry = self.addresses[REGISTRY].lower()
        allowance = self.allowances.get((self._account, registry), 0)
        if allowance < amount:
            raise _Revert("ERC20: insufficient allowance")
        balance = self.balances.get(self._account, 0)
        if balance < amount:
            raise _Revert("ERC20: transfer amount exceeds balance (insufficient balance)")

        self.allowances[(self._account, registry)] = allowance - amount
        self.balances[self._account] = balance - amount
        burned = amount * self.burn_rate // 10_000
        self.contract_balance += amount - burned
        return [
            EventLog(
                event="Transfer",
                args={"from": self._account, "to": registry, "value": amount},
                address=self.addresses[TOKEN],
            ),
            EventLog(
                event="TokensCollected",
                args={
                    "from": self._account,
                    "amount": amount,
                    "burned": burned,
                    "burnRate": self.burn_rate,
                },
                address=self.addresses[REGISTRY],
            ),
        ]

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def _view_registry_baseRecordPrice(self) -> int:
        return self.record_price

    def _view_registry_calculateBatchPrice(self, count: int, recorder: str) -> int:
        return count * self.record_price * self.batch_discount_percent // 100

    def _view_registry_getPricingInfo(self) -> tuple[int, int, int, bool]:
        return (self.record_price, self.proof_price_usd, self.burn_rate, self.using_manual_price)

    def _view_registry_getCurrentBurnRate(self) -> int:
        return self.burn_rate

    def _view_registry_getStatistics(self) -> tuple[int, int, int, int]:
        return (len(self.records), self.contract_balance, self.burn_rate, self.record_price)

    def _view_registry_userRecordCount(self, user: str) -> int:
        return self.record_counts.get(user.lower(), 0)

    def _view_registry_getUserRecords(self, user: str) -> list[bytes]:
        return [from_hex(rid) for rid in self.user_records.get(user.lower(), [])]

    def _view_registry_sharedAccess(self, record_id: str, viewer: str) -> bool:
        return (normalize_hex(record_id), viewer.lower()) in self.shared

    def _view_registry_verifyRecord(self, record_id: str) -> tuple[bool, tuple]:
        rid = normalize_hex(record_id)
        record = self.records.get(rid)
        if record is None:
            return (False, (b"\x00" * 32, b"\x00" * 32, 0, "0x" + "00" * 20, "", 0, False))

        recorder, visibility = record[3], record[5]
        if visibility == Visibility.PRIVATE and self._account != recorder:
            raise _Revert("Access denied: private record")
        if (
            visibility == Visibility.SHARED
            and self._account != recorder
            and (rid, self._account) not in self.shared
        ):
            raise _Revert("Access denied: record not shared with caller")
        return (True, record)

    def _next_id(self, *parts: Any) -> str:
        seed = ":".join(str(p) for p in (self._account, len(self.records), *parts))
        return to_hex(sha256(seed.encode()))

    def _store(
        self,
        record_id: str,
        request_hash: str,
        response_hash: str,
        ipfs_hash: str,
        visibility: int,
        *,
        listed: bool = True,
        counted: bool = True,
    ) -> int:
        timestamp = int(self.clock.now().timestamp())
        self.records[record_id] = (
            from_hex(normalize_hex(request_hash)),
            from_hex(normalize_hex(response_hash)),
            timestamp,
            self._account,
            ipfs_hash,
            int(visibility),
            True,
        )
        if listed:
            self.user_records.setdefault(self._account, []).append(record_id)
        if counted:
            self.record_counts[self._account] = self.record_counts.get(self._account, 0) + 1
        return timestamp

    def _tx_registry_storeAPIRecord(
        self,
        request_hash: str,
        response_hash: str,
        ipfs_hash: str,
        visibility: int,
    ) -> list[EventLog]:
        if int(visibility) not in {v.value for v in Visibility}:
            raise _Revert("Invalid visibility")
        logs = self._collect(self.record_price)

        record_id = self._next_id(request_hash, response_hash)
        timestamp = self._store(record_id, request_hash, response_hash, ipfs_hash, visibility)
        if self.emit_registry_events:
            logs.append(
                EventLog(
                    event="RecordStored",
                    args={
                        "recordId": from_hex(record_id),
                        "recorder": self._account,
                        "requestHash": from_hex(normalize_hex(request_hash)),
                        "responseHash": from_hex(normalize_hex(response_hash)),
                        "timestamp": timestamp,
                        "ipfsHash": ipfs_hash,
                        "visibility": int(visibility),
                    },
                    address=self.addresses[REGISTRY],
                )
            )
        return logs

    def _tx_registry_storeBatchRecords(
        self,
        request_hashes: list[str],
        response_hashes: list[str],
        ipfs_hash: str,
        visibility: int,
    ) -> list[EventLog]:
        if len(request_hashes) != len(response_hashes):
            raise _Revert("Array length mismatch")
        if not request_hashes:
            raise _Revert("Empty batch")
        count = len(request_hashes)
        logs = self._collect(self._view_registry_calculateBatchPrice(count, self._account))

        batch_id = self._next_id("batch", ipfs_hash)
        for req, resp in zip(request_hashes, response_hashes):
            self._store(self._next_id(req, resp), req, resp, ipfs_hash, visibility, listed=False)
        # the batch id resolves to a record over the combined digests
        combined_req = to_hex(sha256(b"".join(from_hex(normalize_hex(h)) for h in request_hashes)))
        combined_resp = to_hex(sha256(b"".join(from_hex(normalize_hex(h)) for h in response_hashes)))
        timestamp = self._store(
            batch_id, combined_req, combined_resp, ipfs_hash, visibility, counted=False
        )

        if self.emit_registry_events:
            logs.append(
                EventLog(
                    event="BatchRecordStored",
                    args={
                        "batchId": from_hex(batch_id),
                        "recorder": self._account,
                        "recordCount": count,
                        "timestamp": timestamp,
                        "ipfsHash": ipfs_hash,
                        "visibility": int(visibility),
                    },
                    address=self.addresses[REGISTRY],
                )
            )
        return logs

    def _check_owner_of_shared(self, record_id: str) -> str:
        rid = normalize_hex(record_id)
        record = self.records.get(rid)
        if record is None:
            raise _Revert("Record does not exist")
        if record[3] != self._account:
            raise _Revert("Not record owner")
        if record[5] != Visibility.SHARED:
            raise _Revert("Record is not shared")
        return rid

    def _tx_registry_grantAccess(self, record_id: str, viewer: str) -> list[EventLog]:
        rid = self._check_owner_of_shared(record_id)
        self.shared.add((rid, viewer.lower()))
        return [
            EventLog(
                event="AccessGranted",
                args={"recordId": from_hex(rid), "viewer": viewer.lower()},
                address=self.addresses[REGISTRY],
            )
        ]

    def _tx_registry_revokeAccess(self, record_id: str, viewer: str) -> list[EventLog]:
        rid = self._check_owner_of_shared(record_id)
        self.shared.discard((rid, viewer.lower()))
        return [
            EventLog(
                event="AccessRevoked",
                args={"recordId": from_hex(rid), "viewer": viewer.lower()},
                address=self.addresses[REGISTRY],
            )
        ]
