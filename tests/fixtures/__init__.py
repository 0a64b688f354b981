"""
Test fixtures package for proof anchor tests.

This package provides factory functions for creating test objects:
- common.py: exchanges, batch entries, archives and local clients

Usage:
    from fixtures.common import make_exchange, make_local_client

    async def test_something():
        client = make_local_client()
        receipt = await client.record_exchange(make_exchange())
"""

from .common import (
    make_archive,
    make_batch_entry,
    make_exchange,
    make_local_client,
    make_request_capture,
    make_response_capture,
)

__all__ = [
    "make_archive",
    "make_batch_entry",
    "make_exchange",
    "make_local_client",
    "make_request_capture",
    "make_response_capture",
]
