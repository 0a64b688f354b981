"""
Recording Stages

Purpose: Keep the recording flow observable without a heavyweight state
machine. Each run walks the stages in order; the tracker logs progress and
tags a failure with the stage it happened in before letting it propagate.

Stages:
    AWAIT_EXCHANGE -> FINGERPRINT -> ARCHIVE -> ENSURE_ALLOWANCE -> ANCHOR
    -> CONFIRM -> BUILD_CERTIFICATE -> ASSEMBLE_RECEIPT -> DELIVERED

Nothing is retried and nothing already committed is rolled back.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator, Optional

from core.ledger.adapter import AnchorResult
from core.receipts import ProofReceipt
from core.schemas.errors import ProofException
from core.schemas.records import ArchiveResult, Exchange, FingerprintPair, Visibility


logger = logging.getLogger(__name__)


class Stage(str, Enum):
    """Stages of one recording run, in execution order."""
    AWAIT_EXCHANGE = "await_exchange"
    FINGERPRINT = "fingerprint"
    ARCHIVE = "archive"
    ENSURE_ALLOWANCE = "ensure_allowance"
    ANCHOR = "anchor"
    CONFIRM = "confirm"
    BUILD_CERTIFICATE = "build_certificate"
    ASSEMBLE_RECEIPT = "assemble_receipt"
    DELIVERED = "delivered"


@dataclass
class RecordingState:
    """
    Artifacts produced by a run, filled in stage by stage.

    A single recording has one exchange; a batch has several.
    """
    exchanges: list[Exchange] = field(default_factory=list)
    metadata: list[dict[str, Any]] = field(default_factory=list)
    visibility: Visibility = Visibility.PUBLIC
    fingerprints: list[FingerprintPair] = field(default_factory=list)
    archive: Optional[ArchiveResult] = None
    anchor: Optional[AnchorResult] = None
    certificate: Optional[ArchiveResult] = None
    receipt: Optional[ProofReceipt] = None


class StageTracker:
    """
    Tracks which stage a run is in.

    Usage:
        tracker = StageTracker("record")
        with tracker.stage(Stage.FINGERPRINT):
            ...
    """

    def __init__(self, label: str) -> None:
        self.label = label
        self.current: Optional[Stage] = None
        self._results: list[tuple[str, bool, Optional[str]]] = []

    @contextmanager
    def stage(self, stage: Stage) -> Iterator[None]:
        self.current = stage
        logger.debug(f"[{self.label}] entering {stage.value}")
        try:
            yield
        except ProofException as e:
            e.details.setdefault("stage", stage.value)
            self._fail(stage, e)
            raise
        except Exception as e:
            e.add_note(f"recording stage: {stage.value}")
            self._fail(stage, e)
            raise
        self._results.append((stage.value, True, None))

    def _fail(self, stage: Stage, error: Exception) -> None:
        self._results.append((stage.value, False, str(error)))
        logger.debug(f"[{self.label}] {stage.value} failed: {error}")

    def deliver(self) -> None:
        self.current = Stage.DELIVERED
        self._results.append((Stage.DELIVERED.value, True, None))
        logger.debug(f"[{self.label}] delivered")

    @property
    def stage_results(self) -> list[tuple[str, bool, Optional[str]]]:
        """(stage, success, error message) for every stage entered so far."""
        return self._results.copy()

    def get_failed_stage(self) -> Optional[str]:
        for name, success, _ in self._results:
            if not success:
                return name
        return None
