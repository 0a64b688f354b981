"""
Archive Module

Off-chain archiving of recorded exchanges and their certificates.
"""

from .adapter import BATCH_CONCURRENCY, ArchiveAdapter
from .certificate import render_certificate

__all__ = [
    "BATCH_CONCURRENCY",
    "ArchiveAdapter",
    "render_certificate",
]
