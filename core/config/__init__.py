"""
Runtime Configuration Module

Provides configuration loading and management for proof clients.
"""

from .runtime import (
    NETWORKS,
    BatchConfig,
    LedgerConfig,
    NetworkProfile,
    PricingConfig,
    ProofConfig,
    StorageConfig,
)

__all__ = [
    "NETWORKS",
    "BatchConfig",
    "LedgerConfig",
    "NetworkProfile",
    "PricingConfig",
    "ProofConfig",
    "StorageConfig",
]
