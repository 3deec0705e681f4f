"""
Change-feed consumer.

One explicit loop owns the feed cursor, the pending queue and the flush
timer. Each iteration does exactly one of: fire a due flush, or poll the
feed for at most one poll interval and dispatch what arrived. Nothing
else touches the queue, so no locking is needed and at most one flush
is ever in flight.
"""

import asyncio
import logging
import time
from collections.abc import Mapping
from typing import Any, Callable

from prometheus_client import CollectorRegistry
from pymongo.errors import PyMongoError

from utils.metrics import ReplicationMetrics
from utils.retry import async_retry_with_backoff

from .batch import BatchWriter, FlushResult, FlushScheduler, PendingUpdate
from .checkpoint import ResumeTokenStore
from .exceptions import MalformedUpdateError
from .updates import Anonymizer, FullGroupReplace, build_field_update

logger = logging.getLogger(__name__)


class ChangeFeedConsumer:
    """
    Mirrors insert and update events of ``source`` through ``writer``.

    Feed errors are logged and the cursor is reopened with exponential
    backoff, resuming after the last event seen. A stop request ends the
    backoff early. Updates still queued when the loop stops are discarded,
    not flushed.
    """

    def __init__(
        self,
        source,
        writer: BatchWriter,
        anonymizer: Anonymizer,
        checkpoints: ResumeTokenStore | None = None,
        flush_interval: float = 1.0,
        poll_interval_ms: int = 200,
        reconnect_retries: int = 5,
        reconnect_base_delay: float = 1.0,
        metrics: ReplicationMetrics | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            source: Async collection whose change stream is consumed
            writer: Batch writer for the anonymized collection
            anonymizer: Anonymization policy applied to every event
            checkpoints: Store holding the resume token to start from
            flush_interval: Target seconds between timer flushes
            poll_interval_ms: Longest a single feed poll may block
            reconnect_retries: Reopen attempts after a feed error
            reconnect_base_delay: First backoff delay in seconds
            metrics: Replication metrics (default: detached registry)
            clock: Monotonic time source
        """
        self.source = source
        self.writer = writer
        self.anonymizer = anonymizer
        self.checkpoints = checkpoints
        self.poll_interval_ms = poll_interval_ms
        self.metrics = metrics or ReplicationMetrics(registry=CollectorRegistry())
        self.scheduler = FlushScheduler(flush_interval, clock)
        self._clock = clock
        self._stream = None
        self._resume_token: Any = None

        self._reopen_stream = async_retry_with_backoff(
            max_retries=reconnect_retries,
            base_delay=reconnect_base_delay,
            retryable_exceptions=(PyMongoError,),
        )(self._open_stream)

    @property
    def resume_token(self) -> Any:
        """Position after the last event seen on the feed."""
        return self._resume_token

    async def start(self) -> None:
        """
        Load the checkpoint, open the feed and arm the flush timer.

        Raises:
            CheckpointLoadError: If a persisted token cannot be read
            PyMongoError: If the change stream cannot be opened
        """
        if self.checkpoints is not None:
            self._resume_token = self.checkpoints.load()

        if self._resume_token is not None:
            logger.info("Continue with resume token")
        else:
            logger.info("No resume token, watching from the current position")

        self._stream = await self._open_stream()
        self.scheduler.start()

    async def run(self, stop_event: asyncio.Event) -> None:
        """
        Consume the feed until ``stop_event`` is set, then shut down.
        """
        if self._stream is None:
            await self.start()

        try:
            while not stop_event.is_set():
                if self.scheduler.due():
                    await self.flush("timer")
                    continue

                change = await self._next_change(stop_event)
                if change is None:
                    continue

                pending = self.dispatch(change)
                if pending is not None and self.writer.is_full:
                    await self.flush("size")
        finally:
            await self.shutdown()

    def dispatch(self, change: Mapping[str, Any]) -> PendingUpdate | None:
        """
        Turn one change event into a queued update.

        Returns:
            The queued update, or None when the event was dropped
        """
        operation = change.get("operationType", "unknown")
        self.metrics.record_event(operation)

        if operation not in ("insert", "update"):
            logger.debug(f"Ignoring {operation} event")
            self.metrics.record_dropped("unsupported")
            return None

        document_id = change["documentKey"]["_id"]

        if operation == "insert":
            anonymized = self.anonymizer.anonymize(change["fullDocument"])
            update = FullGroupReplace(anonymized) if anonymized else None
        else:
            # removedFields and truncatedArrays are ignored: the schema has
            # no arrays and mirrored fields are never unset
            description = change.get("updateDescription") or {}
            try:
                update = build_field_update(description.get("updatedFields"), self.anonymizer)
            except MalformedUpdateError as e:
                logger.warning(f"Dropping update for {document_id}: {e}")
                self.metrics.record_dropped("malformed")
                return None

        if update is None:
            logger.debug(f"No mirrored fields changed for {document_id}")
            self.metrics.record_dropped("unmirrored")
            return None

        pending = PendingUpdate(document_id, update, self._resume_token)
        self.writer.add(pending)
        return pending

    async def flush(self, trigger: str) -> FlushResult:
        """
        Flush the writer with the timer cancelled.

        The timer is re-armed once the write and checkpoint save have
        finished, whatever their outcome.
        """
        self.scheduler.cancel()
        started = self._clock()
        try:
            return await self.writer.flush(trigger)
        finally:
            self.scheduler.reschedule(self._clock() - started)

    async def shutdown(self) -> None:
        """Stop the timer, close the feed and discard queued updates."""
        self.scheduler.cancel()
        await self._close_stream()

        dropped = self.writer.discard()
        if dropped:
            logger.warning(f"Discarding {dropped} pending updates on shutdown")

    async def _open_stream(self):
        options: dict[str, Any] = {"max_await_time_ms": self.poll_interval_ms}
        if self._resume_token is not None:
            options["resume_after"] = self._resume_token

        return await self.source.watch([], **options)

    async def _close_stream(self) -> None:
        stream, self._stream = self._stream, None
        if stream is None:
            return

        try:
            await stream.close()
        except PyMongoError as e:
            logger.error(f"Error while closing change stream: {e}")

    async def _next_change(self, stop_event: asyncio.Event) -> Mapping[str, Any] | None:
        try:
            change = await self._stream.try_next()
        except PyMongoError as e:
            self.metrics.record_feed_error()
            logger.error(f"Error while listening changes: {type(e).__name__}: {e}")
            await self._reconnect(stop_event)
            return None

        if self._stream.resume_token is not None:
            self._resume_token = self._stream.resume_token

        return change

    async def _reconnect(self, stop_event: asyncio.Event) -> None:
        """
        Reopen the feed with backoff, giving up as soon as a stop is requested.

        Raises:
            PyMongoError: If the retries run out before the feed reopens
        """
        if len(self.writer):
            await self.flush("reconnect")

        await self._close_stream()

        reopen = asyncio.ensure_future(self._reopen_stream())
        stopped = asyncio.ensure_future(stop_event.wait())
        try:
            await asyncio.wait({reopen, stopped}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (reopen, stopped):
                task.cancel()
            await asyncio.gather(reopen, stopped, return_exceptions=True)

        if stop_event.is_set():
            if not reopen.cancelled() and reopen.exception() is None:
                self._stream = reopen.result()
            logger.info("Stop requested while reopening the change stream")
            return

        self._stream = reopen.result()
        logger.info("Change stream reopened")
