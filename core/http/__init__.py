"""
HTTP Module

Capture of outbound httpx calls and a recording httpx client.
"""

from .client import RecordingHttpClient, capture_exchange, decode_body

__all__ = [
    "RecordingHttpClient",
    "capture_exchange",
    "decode_body",
]
