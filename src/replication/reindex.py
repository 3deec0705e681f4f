"""
One-shot full reindex of the anonymized collection.

Scans every source record, anonymizes it and upserts it in fixed-size
batches. No resume token is read or written; the job is safe to re-run.
"""

import logging
from dataclasses import dataclass

from opentelemetry import trace
from prometheus_client import CollectorRegistry

from utils.logging import ContextLogger
from utils.metrics import ReplicationMetrics
from utils.tracing import trace_operation

from .batch import PendingUpdate
from .updates import Anonymizer, FullGroupReplace

logger = logging.getLogger(__name__)


@dataclass
class ReindexResult:
    total: int = 0
    batches: int = 0


class FullReindexJob:
    """
    Copy the whole source collection into the mirror, anonymized.

    Each record's mirrored fields are written whole, so the mirror ends
    up equal to the anonymized source regardless of what it held before.
    """

    def __init__(
        self,
        source,
        target,
        anonymizer: Anonymizer,
        batch_size: int = 100,
        metrics: ReplicationMetrics | None = None,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")

        self.source = source
        self.target = target
        self.anonymizer = anonymizer
        self.batch_size = batch_size
        self.metrics = metrics or ReplicationMetrics(registry=CollectorRegistry())
        self.log = ContextLogger(
            __name__,
            source=getattr(source, "name", "unknown"),
            target=getattr(target, "name", "unknown"),
        )

    async def run(self) -> ReindexResult:
        """
        Run the reindex to completion.

        Raises:
            PyMongoError: If reading the source or a bulk write fails
        """
        result = ReindexResult()
        operations = []
        cursor = self.source.find()

        try:
            async for record in cursor:
                anonymized = self.anonymizer.anonymize(record)
                if not anonymized:
                    continue

                operations.append(
                    PendingUpdate(record["_id"], FullGroupReplace(anonymized)).to_operation()
                )

                if len(operations) >= self.batch_size:
                    await self._write(operations, result)
                    operations = []

            if operations:
                await self._write(operations, result)
        finally:
            await cursor.close()

        self.log.info("Full reindex complete", documents=result.total, batches=result.batches)
        return result

    async def _write(self, operations: list, result: ReindexResult) -> None:
        batch_log = self.log.bind(batch=result.batches + 1)

        with trace_operation(
            "reindex_batch",
            kind=trace.SpanKind.CLIENT,
            documents=len(operations),
        ):
            # One operation per document, so order does not matter
            await self.target.bulk_write(operations, ordered=False)

        result.total += len(operations)
        result.batches += 1
        self.metrics.record_reindex_batch(len(operations))
        batch_log.info(f"Updated {result.total} documents", written=len(operations))
