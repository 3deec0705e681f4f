"""
Batched, idempotent writes into the anonymized collection.

Pending updates are accumulated in memory and written as one ordered
bulk upsert per flush. After a flush the resume token of the last
written event is persisted, so a restarted consumer resumes right after
the last durable write.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

from opentelemetry import trace
from prometheus_client import CollectorRegistry
from pymongo import UpdateOne
from pymongo.errors import PyMongoError

from utils.metrics import ReplicationMetrics
from utils.tracing import trace_operation

from .checkpoint import ResumeTokenStore
from .updates import FieldUpdate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingUpdate:
    """One document's computed write, waiting for the next flush."""

    document_id: Any
    update: FieldUpdate
    resume_token: Any = None

    def to_operation(self) -> UpdateOne:
        return UpdateOne(
            {"_id": self.document_id},
            {"$set": self.update.to_set_document()},
            upsert=True,
        )


@dataclass
class FlushResult:
    """Outcome of one flush."""

    trigger: str
    documents: int = 0
    success: bool = True
    checkpoint_saved: bool = False
    duration: float = 0.0


class BatchWriter:
    """
    Queue of pending updates flushed as one bulk upsert.

    A failed bulk write is logged and its batch dropped. From then on the
    checkpoint is held at the last durable position for the lifetime of
    the writer, so a restart replays everything after it instead of
    silently skipping the dropped batch.
    """

    def __init__(
        self,
        target,
        checkpoints: ResumeTokenStore | None = None,
        max_batch_size: int = 1000,
        metrics: ReplicationMetrics | None = None,
    ):
        """
        Args:
            target: Async collection receiving the anonymized documents
            checkpoints: Resume token store advanced after each flush
            max_batch_size: Queue size that forces a flush
            metrics: Replication metrics (default: detached registry)
        """
        if max_batch_size < 1:
            raise ValueError("max_batch_size must be at least 1")

        self.target = target
        self.checkpoints = checkpoints
        self.max_batch_size = max_batch_size
        self.metrics = metrics or ReplicationMetrics(registry=CollectorRegistry())
        self.pending: list[PendingUpdate] = []
        self.checkpoint_held = False

    def __len__(self) -> int:
        return len(self.pending)

    @property
    def is_full(self) -> bool:
        return len(self.pending) >= self.max_batch_size

    def add(self, update: PendingUpdate) -> bool:
        """
        Queue an update for the next flush.

        Returns:
            True when the queue has reached ``max_batch_size``
        """
        self.pending.append(update)
        self.metrics.set_pending(len(self.pending))
        return self.is_full

    def discard(self) -> int:
        """Drop every queued update and return how many were dropped."""
        dropped = len(self.pending)
        self.pending = []
        self.metrics.record_discarded(dropped)
        return dropped

    async def flush(self, trigger: str = "timer") -> FlushResult:
        """
        Write all queued updates in one bulk upsert.

        Updates queued while the write is in flight belong to the next
        flush. An empty queue is a no-op.

        Args:
            trigger: What started the flush ("timer", "size")

        Returns:
            FlushResult describing the write and checkpoint outcome
        """
        if not self.pending:
            return FlushResult(trigger=trigger)

        batch, self.pending = self.pending, []
        self.metrics.set_pending(0)
        last_token = batch[-1].resume_token
        result = FlushResult(trigger=trigger, documents=len(batch))

        with trace_operation(
            "flush_batch",
            kind=trace.SpanKind.CLIENT,
            collection=getattr(self.target, "name", "unknown"),
            documents=len(batch),
            trigger=trigger,
        ) as span:
            started = time.monotonic()
            try:
                # Ordered, so several updates to one document apply in event order
                await self.target.bulk_write(
                    [update.to_operation() for update in batch],
                    ordered=True,
                )
            except PyMongoError as e:
                result.success = False
                logger.error(
                    f"Bulk write of {len(batch)} updates failed, batch dropped: "
                    f"{type(e).__name__}: {e}"
                )
                if not self.checkpoint_held:
                    logger.warning(
                        "Holding resume token at the last durable write; "
                        "restart the sync to replay the dropped batch"
                    )
                self.checkpoint_held = True
                self.metrics.set_checkpoint_held(True)
            result.duration = time.monotonic() - started

            self.metrics.record_flush(trigger, result.success, len(batch), result.duration)
            span.set_attribute("success", result.success)

            if result.success:
                logger.info(f"Successfully wrote {len(batch)} docs ({trigger} flush)")
                result.checkpoint_saved = await self._save_checkpoint(last_token)

        return result

    async def _save_checkpoint(self, token: Any) -> bool:
        if self.checkpoints is None or token is None:
            return False

        if self.checkpoint_held:
            logger.warning("Resume token still held after an earlier failed write, not saved")
            return False

        saved = await asyncio.to_thread(self.checkpoints.save, token)
        self.metrics.record_checkpoint_save(saved)
        return saved


class FlushScheduler:
    """
    Deadline for the next timer-driven flush.

    The delay after a flush is ``max(0, interval - time spent flushing)``,
    so the cadence does not drift, while a slow flush makes the next one
    due immediately.
    """

    def __init__(self, interval: float, clock: Callable[[], float] = time.monotonic):
        """
        Args:
            interval: Target seconds between flushes
            clock: Monotonic time source
        """
        if interval <= 0:
            raise ValueError("interval must be positive")

        self.interval = interval
        self._clock = clock
        self._deadline: float | None = None

    @property
    def active(self) -> bool:
        return self._deadline is not None

    def start(self) -> None:
        self._deadline = self._clock() + self.interval

    def cancel(self) -> None:
        self._deadline = None

    def due(self) -> bool:
        return self._deadline is not None and self._clock() >= self._deadline

    def remaining(self) -> float | None:
        """Seconds until the deadline, or None when cancelled."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - self._clock())

    def reschedule(self, elapsed: float) -> float:
        """
        Arm the timer after a flush that took ``elapsed`` seconds.

        Returns:
            The delay until the next flush
        """
        delay = max(0.0, self.interval - elapsed)
        self._deadline = self._clock() + delay
        return delay
