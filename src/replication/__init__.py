"""
Anonymizing replication of the customers collection.

Mirrors the change feed of the source collection into an anonymized
collection with batched idempotent upserts and a resumable checkpoint,
or backfills the mirror with a one-shot full reindex.
"""

from replication.batch import BatchWriter, FlushResult, FlushScheduler, PendingUpdate
from replication.checkpoint import ResumeTokenStore
from replication.exceptions import (
    CheckpointLoadError,
    ConfigurationError,
    MalformedUpdateError,
    ReplicationError,
)
from replication.feed import ChangeFeedConsumer
from replication.reindex import FullReindexJob, ReindexResult
from replication.settings import SyncSettings
from replication.updates import (
    FieldUpdate,
    FullGroupReplace,
    PartialFieldSet,
    ReconstructedDelta,
    build_field_update,
    reconstruct_delta,
    to_dotted,
)

__version__ = "1.0.0"

__all__ = [
    "BatchWriter",
    "FlushResult",
    "FlushScheduler",
    "PendingUpdate",
    "ResumeTokenStore",
    "ChangeFeedConsumer",
    "FullReindexJob",
    "ReindexResult",
    "SyncSettings",
    "FieldUpdate",
    "FullGroupReplace",
    "PartialFieldSet",
    "ReconstructedDelta",
    "build_field_update",
    "reconstruct_delta",
    "to_dotted",
    "ReplicationError",
    "ConfigurationError",
    "CheckpointLoadError",
    "MalformedUpdateError",
]
