"""
Recording Orchestrator

Runs the recording pipeline for single exchanges and batches and exposes
the ledger's read-only queries through one client.

Public API:
- ProofClient: record(), record_exchange(), batch_record() and queries
- create_client: client against a real chain and Kubo endpoint
- create_local_client: client over the simulated ledger and in-memory storage
- Stage / StageTracker / RecordingState: stage bookkeeping for a run
"""

from orchestrator.pipeline import (
    ErrorCallback,
    ProofClient,
    RecordCallback,
    create_client,
    create_local_client,
)
from orchestrator.stages import RecordingState, Stage, StageTracker


__all__ = [
    # Client
    "ProofClient",
    "RecordCallback",
    "ErrorCallback",
    # Factory functions
    "create_client",
    "create_local_client",
    # Stages
    "Stage",
    "StageTracker",
    "RecordingState",
]
