"""
Pytest configuration and shared fixtures for proof anchor tests.

This conftest.py:
1. Adds project root to sys.path for imports
2. Provides commonly-used fixtures via pytest's autodiscovery
3. Configures pytest markers and settings
"""

import sys
from pathlib import Path

import pytest

# =============================================================================
# Path Setup - Must happen before any local imports
# =============================================================================

# Get the project root (parent of tests/)
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_TESTS_ROOT = Path(__file__).resolve().parent

# Add both project root and tests root to sys.path
for _path in [str(_PROJECT_ROOT), str(_TESTS_ROOT)]:
    if _path not in sys.path:
        sys.path.insert(0, _path)

# =============================================================================
# Import fixtures using importlib (more robust for pytest loading)
# =============================================================================

import importlib

_common = importlib.import_module("fixtures.common")

make_exchange = _common.make_exchange
make_batch_entry = _common.make_batch_entry
make_local_client = _common.make_local_client
make_archive = _common.make_archive

from core.clock import FrozenClock
from core.ledger.memory import InMemoryContractGateway
from core.storage.base import InMemoryContentStore


# =============================================================================
# Pytest Fixtures (autodiscovered by pytest)
# =============================================================================

@pytest.fixture
def clock():
    """Frozen clock shared by the ledger and the client."""
    return FrozenClock(_common.FIXED_TIME)


@pytest.fixture
def gateway(clock):
    """Simulated ledger with 1000 PROOF tokens on the signer."""
    gw = InMemoryContractGateway(clock=clock)
    gw.mint(gw.account_address, 1_000)
    return gw


@pytest.fixture
def store():
    """Empty in-memory content store."""
    return InMemoryContentStore()


@pytest.fixture
def exchange():
    """Provide a default Exchange for tests."""
    return make_exchange()


@pytest.fixture
def client(gateway, store, clock):
    """ProofClient over the shared gateway and store."""
    return make_local_client(gateway=gateway, store=store, clock=clock)


@pytest.fixture
def archive(store):
    """ArchiveAdapter with a test encryption key."""
    return make_archive(store)


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
