"""
Runtime Configuration

Central configuration for the ledger connection, content storage,
pricing and batching.

Secrets (signing key, storage auth headers, encryption key) are read once
when the configuration is built and are excluded from repr() and to_dict().
"""

from __future__ import annotations

import base64
import copy
import os
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

from core.schemas.errors import ConfigurationError

load_dotenv()


@dataclass(frozen=True)
class NetworkProfile:
    """Built-in connection details for a known network."""
    name: str
    label: str
    rpc_url: str
    token_address: str
    registry_address: str
    explorer_tx_url: str  # formatted with tx_hash

    def explorer_url(self, tx_hash: str) -> str:
        return self.explorer_tx_url.format(tx_hash=tx_hash)


NETWORKS: dict[str, NetworkProfile] = {
    "amoy": NetworkProfile(
        name="amoy",
        label="Polygon Amoy Testnet",
        rpc_url="https://rpc-amoy.polygon.technology/",
        token_address="0x4c9A2a4D1686f7F468400E0c8fcB86d3FCbF5B21",
        registry_address="0x5Fa8A332170B7Dc759Baac5a81CbF8eE0573599e",
        explorer_tx_url="https://amoy.polygonscan.com/tx/{tx_hash}",
    ),
    "polygon": NetworkProfile(
        name="polygon",
        label="Polygon Mainnet",
        rpc_url="https://polygon-rpc.com/",
        token_address="0x4c9A2a4D1686f7F468400E0c8fcB86d3FCbF5B21",
        registry_address="0x5Fa8A332170B7Dc759Baac5a81CbF8eE0573599e",
        explorer_tx_url="https://polygonscan.com/tx/{tx_hash}",
    ),
    "local": NetworkProfile(
        name="local",
        label="Local Development Chain",
        rpc_url="http://localhost:8545",
        token_address="0x5FbDB2315678afecb367f032d93F642f64180aa3",
        registry_address="0xe7f1725E7734CE288F8367e1Bb143E90bb3F0512",
        explorer_tx_url="http://localhost:3000/tx/{tx_hash}",
    ),
}


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class LedgerConfig:
    """Configuration for the ledger connection and signer."""
    network: str = "amoy"
    rpc_url: Optional[str] = None
    token_address: Optional[str] = None
    registry_address: Optional[str] = None
    private_key: Optional[str] = field(default=None, repr=False)
    confirmation_timeout: float = 120.0
    auto_approve: bool = True

    @property
    def profile(self) -> NetworkProfile:
        """Network profile, raising ConfigurationError for unknown networks."""
        try:
            return NETWORKS[self.network]
        except KeyError:
            raise ConfigurationError(
                f"Unknown network '{self.network}'",
                details={"known_networks": sorted(NETWORKS)},
            ) from None

    @property
    def resolved_rpc_url(self) -> str:
        return self.rpc_url or self.profile.rpc_url

    @property
    def resolved_token_address(self) -> str:
        return self.token_address or self.profile.token_address

    @property
    def resolved_registry_address(self) -> str:
        return self.registry_address or self.profile.registry_address

    def explorer_url(self, tx_hash: str) -> str:
        return self.profile.explorer_url(tx_hash)


@dataclass
class StorageConfig:
    """Configuration for the content store (Kubo RPC API) and its gateway."""
    host: str = "ipfs.infura.io"
    port: int = 5001
    protocol: str = "https"
    headers: dict[str, str] = field(default_factory=dict, repr=False)
    timeout: float = 60.0
    gateway_url: str = "https://ipfs.io/ipfs/"
    encrypt_data: bool = False
    encryption_key: Optional[str] = field(default=None, repr=False)

    @property
    def api_url(self) -> str:
        return f"{self.protocol}://{self.host}:{self.port}"


@dataclass
class PricingConfig:
    """
    Token cost reported on receipts.

    Batches are charged record_cost * batch_discount per record.
    """
    record_cost: Decimal = Decimal("10")
    batch_discount: Decimal = Decimal("0.8")

    def __post_init__(self):
        self.record_cost = Decimal(str(self.record_cost))
        self.batch_discount = Decimal(str(self.batch_discount))
        if not Decimal("0") < self.batch_discount < Decimal("1"):
            raise ConfigurationError(
                "batch_discount must be strictly between 0 and 1",
                details={"batch_discount": str(self.batch_discount)},
            )

    @property
    def batch_record_cost(self) -> Decimal:
        return self.record_cost * self.batch_discount


@dataclass
class BatchConfig:
    """Configuration for middleware batching."""
    interval_s: Optional[float] = None  # None records every exchange immediately
    size: int = 100


@dataclass
class ProofConfig:
    """
    Complete configuration for a proof client.

    Can be loaded from:
    - Environment variables
    - YAML file
    - Programmatic construction
    """
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    pricing: PricingConfig = field(default_factory=PricingConfig)
    batch: BatchConfig = field(default_factory=BatchConfig)
    certificate_base_url: Optional[str] = None
    log_level: str = "INFO"
    extra: dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def _get_env_overrides() -> dict[str, Any]:
        """
        Get configuration overrides from environment variables.

        This is the SINGLE source of truth for all env var reading.

        Supported variables:
        - PROOF_NETWORK: amoy, polygon or local
        - PROOF_RPC_URL, PROOF_TOKEN_ADDRESS, PROOF_REGISTRY_ADDRESS
        - PROOF_PRIVATE_KEY (falls back to PRIVATE_KEY): signing key
        - PROOF_AUTO_APPROVE: approve token spending automatically (true/false)
        - ENCRYPTION_KEY: secret for payload sealing
        - PROOF_ENCRYPT_DATA: seal archived payloads (true/false)
        - IPFS_HOST, IPFS_PORT, IPFS_PROTOCOL, IPFS_GATEWAY_URL
        - INFURA_PROJECT_ID + INFURA_IPFS_API_KEY: storage Basic auth
        - PROOF_BATCH_INTERVAL, PROOF_BATCH_SIZE
        - PROOF_CERTIFICATE_BASE_URL
        - PROOF_LOG_LEVEL
        """
        overrides: dict[str, Any] = {}

        # Ledger settings
        if os.getenv("PROOF_NETWORK"):
            overrides.setdefault("ledger", {})["network"] = os.getenv("PROOF_NETWORK")
        if os.getenv("PROOF_RPC_URL"):
            overrides.setdefault("ledger", {})["rpc_url"] = os.getenv("PROOF_RPC_URL")
        if os.getenv("PROOF_TOKEN_ADDRESS"):
            overrides.setdefault("ledger", {})["token_address"] = os.getenv("PROOF_TOKEN_ADDRESS")
        if os.getenv("PROOF_REGISTRY_ADDRESS"):
            overrides.setdefault("ledger", {})["registry_address"] = os.getenv("PROOF_REGISTRY_ADDRESS")
        private_key = os.getenv("PROOF_PRIVATE_KEY") or os.getenv("PRIVATE_KEY")
        if private_key:
            overrides.setdefault("ledger", {})["private_key"] = private_key
        if os.getenv("PROOF_AUTO_APPROVE"):
            overrides.setdefault("ledger", {})["auto_approve"] = _env_flag("PROOF_AUTO_APPROVE", True)

        # Storage settings
        if os.getenv("IPFS_HOST"):
            overrides.setdefault("storage", {})["host"] = os.getenv("IPFS_HOST")
        if os.getenv("IPFS_PORT"):
            overrides.setdefault("storage", {})["port"] = int(os.getenv("IPFS_PORT", "5001"))
        if os.getenv("IPFS_PROTOCOL"):
            overrides.setdefault("storage", {})["protocol"] = os.getenv("IPFS_PROTOCOL")
        if os.getenv("IPFS_GATEWAY_URL"):
            overrides.setdefault("storage", {})["gateway_url"] = os.getenv("IPFS_GATEWAY_URL")
        if os.getenv("ENCRYPTION_KEY"):
            overrides.setdefault("storage", {})["encryption_key"] = os.getenv("ENCRYPTION_KEY")
        if os.getenv("PROOF_ENCRYPT_DATA"):
            overrides.setdefault("storage", {})["encrypt_data"] = _env_flag("PROOF_ENCRYPT_DATA", False)
        if os.getenv("INFURA_IPFS_API_KEY"):
            token = base64.b64encode(
                f"{os.getenv('INFURA_PROJECT_ID', '')}:{os.getenv('INFURA_IPFS_API_KEY')}".encode()
            ).decode("ascii")
            overrides.setdefault("storage", {})["headers"] = {"authorization": f"Basic {token}"}

        # Batching
        if os.getenv("PROOF_BATCH_INTERVAL"):
            overrides.setdefault("batch", {})["interval_s"] = float(os.getenv("PROOF_BATCH_INTERVAL", "60"))
        if os.getenv("PROOF_BATCH_SIZE"):
            overrides.setdefault("batch", {})["size"] = int(os.getenv("PROOF_BATCH_SIZE", "100"))

        if os.getenv("PROOF_CERTIFICATE_BASE_URL"):
            overrides["certificate_base_url"] = os.getenv("PROOF_CERTIFICATE_BASE_URL")
        if os.getenv("PROOF_LOG_LEVEL"):
            overrides["log_level"] = os.getenv("PROOF_LOG_LEVEL")

        return overrides

    @classmethod
    def from_env(cls) -> "ProofConfig":
        """
        Load configuration purely from environment variables.

        Uses defaults for any values not specified in env vars.
        """
        return cls.from_dict(cls._get_env_overrides())

    @classmethod
    def from_yaml(cls, path: str | Path) -> "ProofConfig":
        """Load configuration from a YAML file."""
        import yaml
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProofConfig":
        """Load configuration from a dictionary (supports partial data)."""
        ledger_data = data.get("ledger", {})
        storage_data = data.get("storage", {})
        pricing_data = data.get("pricing", {})
        batch_data = data.get("batch", {})

        try:
            ledger = LedgerConfig(**ledger_data) if ledger_data else LedgerConfig()
            storage = StorageConfig(**storage_data) if storage_data else StorageConfig()
            pricing = PricingConfig(**pricing_data) if pricing_data else PricingConfig()
            batch = BatchConfig(**batch_data) if batch_data else BatchConfig()
        except TypeError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

        return cls(
            ledger=ledger,
            storage=storage,
            pricing=pricing,
            batch=batch,
            certificate_base_url=data.get("certificate_base_url"),
            log_level=data.get("log_level", "INFO"),
            extra=data.get("extra", {}),
        )

    def with_env_overrides(self) -> "ProofConfig":
        """
        Return a new config with environment variable overrides applied.

        This allows loading from a config file first, then overlaying env vars.
        """
        overrides = self._get_env_overrides()
        if not overrides:
            return self

        new_config = copy.deepcopy(self)

        for section in ("ledger", "storage", "batch"):
            if section in overrides:
                target = getattr(new_config, section)
                for key, value in overrides[section].items():
                    setattr(target, key, value)

        if "certificate_base_url" in overrides:
            new_config.certificate_base_url = overrides["certificate_base_url"]
        if "log_level" in overrides:
            new_config.log_level = overrides["log_level"]

        return new_config

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to a dictionary. Secrets are left out."""
        return {
            "ledger": {
                "network": self.ledger.network,
                "rpc_url": self.ledger.resolved_rpc_url,
                "token_address": self.ledger.resolved_token_address,
                "registry_address": self.ledger.resolved_registry_address,
                "confirmation_timeout": self.ledger.confirmation_timeout,
                "auto_approve": self.ledger.auto_approve,
            },
            "storage": {
                "host": self.storage.host,
                "port": self.storage.port,
                "protocol": self.storage.protocol,
                "timeout": self.storage.timeout,
                "gateway_url": self.storage.gateway_url,
                "encrypt_data": self.storage.encrypt_data,
            },
            "pricing": {
                "record_cost": str(self.pricing.record_cost),
                "batch_discount": str(self.pricing.batch_discount),
            },
            "batch": {
                "interval_s": self.batch.interval_s,
                "size": self.batch.size,
            },
            "certificate_base_url": self.certificate_base_url,
            "log_level": self.log_level,
            "extra": self.extra,
        }
