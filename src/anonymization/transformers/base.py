"""
Base transformer class and shared transformation metrics.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

from prometheus_client import Counter, Histogram

logger = logging.getLogger(__name__)


# Metrics
TRANSFORMATIONS_APPLIED = Counter(
    "anonymization_transformations_applied_total",
    "Field values replaced by a token",
    ["transformer_type", "field_path"],
)

TRANSFORMATION_TIME = Histogram(
    "anonymization_transformation_seconds",
    "Time to anonymize one record",
    buckets=[0.00001, 0.00005, 0.0001, 0.0005, 0.001, 0.005, 0.01],
)

TRANSFORMATION_ERRORS = Counter(
    "anonymization_transformation_errors_total",
    "Transformation errors",
    ["transformer_type", "error_type"],
)


class Transformer(ABC):
    """Base class for field transformers."""

    @abstractmethod
    def transform(self, value: Any, context: dict[str, Any]) -> Any:
        """
        Transform a single field value.

        Args:
            value: Value to transform
            context: Transformation context (field_path, ...)

        Returns:
            Transformed value
        """

    def get_type(self) -> str:
        """Get transformer type for metrics."""
        return self.__class__.__name__
