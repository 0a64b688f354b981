"""
Content Storage Module

Storage boundary used by the archive adapter, with a Kubo RPC
implementation and an in-memory one for tests.
"""

from .base import ContentStore, InMemoryContentStore
from .kubo import KuboContentStore

__all__ = [
    "ContentStore",
    "InMemoryContentStore",
    "KuboContentStore",
]
