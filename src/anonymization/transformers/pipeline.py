"""
Path-based anonymization pipeline over nested records.
"""

import logging
from collections.abc import Mapping
from typing import Any

from .base import TRANSFORMATION_ERRORS, TRANSFORMATION_TIME, Transformer

logger = logging.getLogger(__name__)


class AnonymizationPipeline:
    """
    Apply transformers to fields addressed by dotted paths.

    Only top-level fields named by a registered path are emitted. A path
    such as ``address.line1`` makes ``address`` a group: the group is
    copied whole and only its registered sub-fields are rewritten.
    Everything else in the input (identifiers, timestamps, unknown
    fields) is left out of the result.
    """

    def __init__(self):
        self.field_transformers: dict[str, Transformer] = {}
        self._roots: dict[str, None] = {}

    def add_transformer(self, field_path: str, transformer: Transformer) -> None:
        """
        Register a transformer for one field path.

        Args:
            field_path: Top-level name ("email") or group path ("address.line1")
            transformer: Transformer applied to the value at that path
        """
        self.field_transformers[field_path] = transformer
        self._roots.setdefault(field_path.split(".", 1)[0])

        logger.debug(f"Added {transformer.get_type()} for '{field_path}'")

    @property
    def fields(self) -> list[str]:
        """Top-level fields this pipeline emits, in registration order."""
        return list(self._roots)

    def anonymize(self, record: Mapping[str, Any]) -> dict[str, Any]:
        """
        Anonymize the known fields present in ``record``.

        Partial input yields partial output; an absent field is simply
        not emitted. The input is not modified.
        """
        with TRANSFORMATION_TIME.time():
            result = {}

            for root in self._roots:
                if root not in record:
                    continue

                value = record[root]
                if root in self.field_transformers:
                    value = self._apply(root, value)
                elif isinstance(value, Mapping):
                    value = {
                        key: self._apply(f"{root}.{key}", nested)
                        for key, nested in value.items()
                    }

                result[root] = value

            return result

    def _apply(self, field_path: str, value: Any) -> Any:
        transformer = self.field_transformers.get(field_path)
        if transformer is None:
            return value

        try:
            return transformer.transform(value, {"field_path": field_path})
        except Exception as e:
            # Never fall back to the raw value: that would mirror PII
            TRANSFORMATION_ERRORS.labels(
                transformer_type=transformer.get_type(),
                error_type=type(e).__name__,
            ).inc()
            raise

    def get_transformer_count(self) -> int:
        return len(self.field_transformers)
