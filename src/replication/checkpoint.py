"""
Resume token persistence for the change-feed consumer.

The token is opaque: it is stored and handed back to the feed without
looking inside. It is serialized as canonical Extended JSON so BSON
types inside it survive a round trip.
"""

import logging
from pathlib import Path
from typing import Any

from bson import json_util
from bson.errors import BSONError
from opentelemetry import trace
from prometheus_client import Counter

from utils.tracing import trace_operation

from .exceptions import CheckpointLoadError

logger = logging.getLogger(__name__)


# Metrics
CHECKPOINT_OPERATIONS = Counter(
    "checkpoint_operations_total",
    "Resume token file operations",
    ["operation", "status"],  # load/save/clear, success/missing/failed
)


class ResumeTokenStore:
    """
    Stores the resume token of the last flushed change event in one file.

    The file is read once at startup and overwritten wholesale after
    every flush.
    """

    def __init__(self, path: str | Path = "resume_token.json"):
        """
        Args:
            path: Location of the token file
        """
        self.path = Path(path)

    def load(self) -> Any | None:
        """
        Read the persisted resume token.

        Returns:
            The token, or None when no checkpoint has been written yet

        Raises:
            CheckpointLoadError: If the file exists but cannot be read or parsed
        """
        try:
            content = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.info(f"No resume token at {self.path}, starting from the current position")
            CHECKPOINT_OPERATIONS.labels(operation="load", status="missing").inc()
            return None
        except (OSError, UnicodeDecodeError) as e:
            CHECKPOINT_OPERATIONS.labels(operation="load", status="failed").inc()
            raise CheckpointLoadError(f"Cannot read resume token file {self.path}: {e}") from e

        try:
            token = json_util.loads(content, json_options=json_util.CANONICAL_JSON_OPTIONS)
        except (ValueError, BSONError) as e:
            CHECKPOINT_OPERATIONS.labels(operation="load", status="failed").inc()
            raise CheckpointLoadError(f"Corrupt resume token file {self.path}: {e}") from e

        CHECKPOINT_OPERATIONS.labels(operation="load", status="success").inc()
        logger.info(f"Loaded resume token from {self.path}")
        return token

    def save(self, token: Any) -> bool:
        """
        Overwrite the persisted resume token.

        Failures are logged and reported through the return value; they
        never propagate, so a transient disk error does not stop the
        pipeline.

        Returns:
            True if the token was written
        """
        with trace_operation("save_resume_token", kind=trace.SpanKind.INTERNAL, path=self.path):
            try:
                content = json_util.dumps(token, json_options=json_util.CANONICAL_JSON_OPTIONS)
                self.path.write_text(content, encoding="utf-8")
            except (OSError, TypeError, ValueError) as e:
                logger.error(f"Failed to write resume token file {self.path}: {e}")
                CHECKPOINT_OPERATIONS.labels(operation="save", status="failed").inc()
                return False

            CHECKPOINT_OPERATIONS.labels(operation="save", status="success").inc()
            logger.debug(f"Saved resume token to {self.path}")
            return True

    def clear(self) -> None:
        """Delete the persisted token so the next run starts fresh."""
        self.path.unlink(missing_ok=True)
        CHECKPOINT_OPERATIONS.labels(operation="clear", status="success").inc()
        logger.info(f"Cleared resume token at {self.path}")
