"""
Interception & Batching

Decides which intercepted exchanges get recorded and either records them
right away or queues them for a batched anchor.

Recording here is best effort: failures are logged and never reach the
request handling that produced the exchange.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any, Awaitable, Callable, Optional, Sequence

from core.clock import Clock, RealClock
from core.config.runtime import BatchConfig
from core.receipts import ProofReceipt
from core.schemas.records import BatchEntry, Exchange, RecordOptions

from orchestrator.pipeline import ProofClient


logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 100
DEFAULT_BATCH_INTERVAL_S = 60.0

BatchSubmitter = Callable[[list[BatchEntry]], Awaitable[ProofReceipt]]


def match_pattern(path: str, pattern: str) -> bool:
    """
    Match a request path against one pattern.

    "*" matches any run of characters and the pattern must then cover the
    whole path; a pattern without "*" matches the exact path or any path
    it prefixes.
    """
    if "*" in pattern:
        regex = "^" + ".*".join(re.escape(part) for part in pattern.split("*")) + "$"
        return re.match(regex, path, re.DOTALL) is not None
    return path == pattern or path.startswith(pattern)


class BatchQueue:
    """
    In-memory queue of exchanges awaiting a batched anchor.

    Flushes when the queue reaches its size limit and, once start() has
    been called, on a recurring timer. A flush swaps the queue for an empty
    one before its first await, so entries added during a flush land in
    the next batch. A failed flush is logged and its entries are dropped
    (counted in dropped_count), never re-queued.

    Usage:
        queue = BatchQueue(client.batch_record, size=100, interval_s=60.0)
        queue.start()
        queue.add(entry)
        ...
        await queue.stop()   # cancels the timer and flushes the rest
    """

    def __init__(
        self,
        submit: BatchSubmitter,
        *,
        size: int = DEFAULT_BATCH_SIZE,
        interval_s: float = DEFAULT_BATCH_INTERVAL_S,
    ) -> None:
        if size < 1:
            raise ValueError("batch size must be at least 1")
        if interval_s <= 0:
            raise ValueError("batch interval must be positive")
        self._submit = submit
        self.size = size
        self.interval_s = interval_s
        self._entries: list[BatchEntry] = []
        self._timer: Optional[asyncio.Task] = None
        self._flushes: set[asyncio.Task] = set()
        self.flush_count = 0
        self.dropped_count = 0

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def add(self, entry: BatchEntry) -> Optional[asyncio.Task]:
        """
        Queue an entry.

        Returns the flush task when this entry filled the queue.
        Must be called from a running event loop.
        """
        self._entries.append(entry)
        if len(self._entries) >= self.size:
            return self._schedule_flush()
        return None

    def _schedule_flush(self) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(self.flush())
        self._flushes.add(task)
        task.add_done_callback(self._flushes.discard)
        return task

    async def flush(self) -> Optional[ProofReceipt]:
        """
        Submit everything queued so far as one batch.

        Returns the receipt, or None when the queue was empty or the
        submission failed.
        """
        batch, self._entries = self._entries, []
        if not batch:
            return None

        try:
            receipt = await self._submit(batch)
        except Exception:
            self.dropped_count += len(batch)
            logger.exception(f"Failed to record batch of {len(batch)} API calls; entries dropped")
            return None

        self.flush_count += 1
        logger.info(f"Batch recorded: {len(batch)} API calls, ID: {receipt.record_id}")
        return receipt

    def start(self) -> None:
        """Start the recurring flush timer. Calling it twice is harmless."""
        if self.running:
            return
        self._timer = asyncio.get_running_loop().create_task(self._tick())
        logger.debug(f"Batch timer started ({self.interval_s}s interval)")

    async def _tick(self) -> None:
        while True:
            await asyncio.sleep(self.interval_s)
            if self._entries:
                self._schedule_flush()

    async def stop(self, *, flush: bool = True) -> None:
        """
        Cancel the timer, wait for flushes in flight and, unless flush is
        False, submit what is still queued.
        """
        timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()
            try:
                await timer
            except asyncio.CancelledError:
                pass
            logger.debug("Batch timer stopped")

        if self._flushes:
            await asyncio.gather(*list(self._flushes))
        if flush:
            await self.flush()


class ProofInterceptor:
    """
    Pattern filter plus immediate-or-batched recording.

    Usage:
        interceptor = ProofInterceptor(
            client,
            patterns=["/api/*"],
            exclude_patterns=["/health"],
            batch_interval=60.0,
        )
        async with interceptor:
            app = ProofMiddleware(app, interceptor=interceptor)
            ...
    """

    def __init__(
        self,
        client: ProofClient,
        *,
        patterns: Optional[Sequence[str]] = None,
        exclude_patterns: Optional[Sequence[str]] = None,
        batch_interval: Optional[float] = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        clock: Optional[Clock] = None,
    ) -> None:
        self.client = client
        self.patterns = list(patterns) if patterns is not None else None
        self.exclude_patterns = list(exclude_patterns or [])
        self.clock = clock or client.clock or RealClock()
        self.batch_queue: Optional[BatchQueue] = None
        if batch_interval is not None:
            self.batch_queue = BatchQueue(
                client.batch_record,
                size=batch_size,
                interval_s=batch_interval,
            )

    @classmethod
    def from_config(
        cls,
        client: ProofClient,
        config: Optional[BatchConfig] = None,
        *,
        patterns: Optional[Sequence[str]] = None,
        exclude_patterns: Optional[Sequence[str]] = None,
    ) -> "ProofInterceptor":
        config = config or client.config.batch
        return cls(
            client,
            patterns=patterns,
            exclude_patterns=exclude_patterns,
            batch_interval=config.interval_s,
            batch_size=config.size,
        )

    @property
    def batching(self) -> bool:
        return self.batch_queue is not None

    def should_record(self, path: str) -> bool:
        """Exclude patterns veto first; include patterns, when set, must match."""
        for pattern in self.exclude_patterns:
            if match_pattern(path, pattern):
                return False

        if self.patterns is not None:
            return any(match_pattern(path, pattern) for pattern in self.patterns)

        return True

    async def handle(
        self,
        exchange: Exchange,
        *,
        metadata: Optional[dict[str, Any]] = None,
    ) -> Optional[ProofReceipt]:
        """
        Record or queue one intercepted exchange. Never raises.

        Returns the receipt when recorded immediately, None when queued or
        when recording failed.
        """
        try:
            if self.batch_queue is not None:
                now = self.clock.now()
                self.batch_queue.add(
                    BatchEntry(
                        exchange=exchange,
                        metadata={"timestamp": int(now.timestamp() * 1000)},
                        captured_at=now,
                    )
                )
                return None

            receipt = await self.client.record_exchange(
                exchange,
                RecordOptions(metadata=metadata or {}),
            )
        except Exception:
            logger.exception(f"Failed to record API call to {exchange.request.url}")
            return None

        logger.info(f"Recorded API call: {receipt.record_id}")
        return receipt

    def start(self) -> None:
        if self.batch_queue is not None:
            self.batch_queue.start()

    async def stop(self, *, flush: bool = True) -> None:
        if self.batch_queue is not None:
            await self.batch_queue.stop(flush=flush)

    async def __aenter__(self) -> "ProofInterceptor":
        self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.stop()
