"""
Core Receipts Module

Proof receipts handed to callers after an exchange has been anchored.
"""

from .models import (
    ProofReceipt,
    RecordedResponse,
    TokenCost,
)

__all__ = [
    "ProofReceipt",
    "RecordedResponse",
    "TokenCost",
]
