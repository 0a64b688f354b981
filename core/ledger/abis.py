"""
Contract ABIs

Minimal JSON ABIs for the PROOF token (ERC-20) and the registry contract,
limited to the functions and events this client uses.
"""

from __future__ import annotations

from typing import Any


def _params(fields: list[tuple[str, str]]) -> list[dict[str, Any]]:
    return [{"name": name, "type": type_} for name, type_ in fields]


def _function(
    name: str,
    inputs: list[tuple[str, str]],
    outputs: list[tuple[str, str]] | None = None,
    *,
    view: bool = False,
) -> dict[str, Any]:
    return {
        "type": "function",
        "name": name,
        "stateMutability": "view" if view else "nonpayable",
        "inputs": _params(inputs),
        "outputs": _params(outputs or []),
    }


def _event(name: str, inputs: list[tuple[str, str]], *, indexed: tuple[str, ...]) -> dict[str, Any]:
    return {
        "type": "event",
        "name": name,
        "anonymous": False,
        "inputs": [dict(p, indexed=p["name"] in indexed) for p in _params(inputs)],
    }


PROOF_TOKEN_ABI: list[dict[str, Any]] = [
    # Read functions
    _function("balanceOf", [("owner", "address")], [("", "uint256")], view=True),
    _function("allowance", [("owner", "address"), ("spender", "address")], [("", "uint256")], view=True),
    _function("totalSupply", [], [("", "uint256")], view=True),
    _function("decimals", [], [("", "uint8")], view=True),
    _function("symbol", [], [("", "string")], view=True),
    _function("name", [], [("", "string")], view=True),
    # Write functions
    _function("approve", [("spender", "address"), ("amount", "uint256")], [("", "bool")]),
    _function("transfer", [("to", "address"), ("amount", "uint256")], [("", "bool")]),
    _function(
        "transferFrom",
        [("from", "address"), ("to", "address"), ("amount", "uint256")],
        [("", "bool")],
    ),
    # Events
    _event(
        "Transfer",
        [("from", "address"), ("to", "address"), ("value", "uint256")],
        indexed=("from", "to"),
    ),
    _event(
        "Approval",
        [("owner", "address"), ("spender", "address"), ("value", "uint256")],
        indexed=("owner", "spender"),
    ),
]


_API_RECORD_COMPONENTS = [
    {"name": "requestHash", "type": "bytes32"},
    {"name": "responseHash", "type": "bytes32"},
    {"name": "timestamp", "type": "uint256"},
    {"name": "recorder", "type": "address"},
    {"name": "ipfsHash", "type": "string"},
    {"name": "visibility", "type": "uint8"},
    {"name": "exists", "type": "bool"},
]


PROOF_REGISTRY_ABI: list[dict[str, Any]] = [
    # Read functions
    _function("baseRecordPrice", [], [("", "uint256")], view=True),
    _function("userRecordCount", [("user", "address")], [("", "uint256")], view=True),
    {
        "type": "function",
        "name": "verifyRecord",
        "stateMutability": "view",
        "inputs": [{"name": "recordId", "type": "bytes32"}],
        "outputs": [
            {"name": "exists", "type": "bool"},
            {"name": "record", "type": "tuple", "components": _API_RECORD_COMPONENTS},
        ],
    },
    _function(
        "calculateBatchPrice",
        [("count", "uint256"), ("recorder", "address")],
        [("", "uint256")],
        view=True,
    ),
    _function("getUserRecords", [("user", "address")], [("", "bytes32[]")], view=True),
    _function(
        "getStatistics",
        [],
        [
            ("totalRecords", "uint256"),
            ("contractBalance", "uint256"),
            ("currentBurnRate", "uint256"),
            ("currentPrice", "uint256"),
        ],
        view=True,
    ),
    _function(
        "getPricingInfo",
        [],
        [
            ("recordPrice", "uint256"),
            ("proofPriceUSD", "uint256"),
            ("burnRate", "uint256"),
            ("usingManualPrice", "bool"),
        ],
        view=True,
    ),
    _function("getCurrentBurnRate", [], [("", "uint256")], view=True),
    _function(
        "sharedAccess",
        [("recordId", "bytes32"), ("viewer", "address")],
        [("", "bool")],
        view=True,
    ),
    # Write functions
    _function(
        "storeAPIRecord",
        [
            ("requestHash", "bytes32"),
            ("responseHash", "bytes32"),
            ("ipfsHash", "string"),
            ("visibility", "uint8"),
        ],
        [("", "bytes32")],
    ),
    _function(
        "storeBatchRecords",
        [
            ("requestHashes", "bytes32[]"),
            ("responseHashes", "bytes32[]"),
            ("ipfsHash", "string"),
            ("visibility", "uint8"),
        ],
        [("", "bytes32")],
    ),
    _function("grantAccess", [("recordId", "bytes32"), ("viewer", "address")]),
    _function("revokeAccess", [("recordId", "bytes32"), ("viewer", "address")]),
    # Events
    _event(
        "RecordStored",
        [
            ("recordId", "bytes32"),
            ("recorder", "address"),
            ("requestHash", "bytes32"),
            ("responseHash", "bytes32"),
            ("timestamp", "uint256"),
            ("ipfsHash", "string"),
            ("visibility", "uint8"),
        ],
        indexed=("recordId", "recorder"),
    ),
    _event(
        "BatchRecordStored",
        [
            ("batchId", "bytes32"),
            ("recorder", "address"),
            ("recordCount", "uint256"),
            ("timestamp", "uint256"),
            ("ipfsHash", "string"),
            ("visibility", "uint8"),
        ],
        indexed=("batchId", "recorder"),
    ),
    _event(
        "TokensCollected",
        [
            ("from", "address"),
            ("amount", "uint256"),
            ("burned", "uint256"),
            ("burnRate", "uint256"),
        ],
        indexed=("from",),
    ),
    _event(
        "AccessGranted",
        [("recordId", "bytes32"), ("viewer", "address")],
        indexed=("recordId", "viewer"),
    ),
    _event(
        "AccessRevoked",
        [("recordId", "bytes32"), ("viewer", "address")],
        indexed=("recordId", "viewer"),
    ),
]


def event_names(abi: list[dict[str, Any]]) -> tuple[str, ...]:
    """Names of the events declared in an ABI."""
    return tuple(entry["name"] for entry in abi if entry["type"] == "event")


TOKEN_EVENTS = event_names(PROOF_TOKEN_ABI)
REGISTRY_EVENTS = event_names(PROOF_REGISTRY_ABI)
