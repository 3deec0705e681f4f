"""
Reconstruction of partial updates from change-feed deltas.

The feed reports changed fields either as dotted paths
(``{"address.line1": "x"}``), as a whole nested object
(``{"address": {...}}``), or as a mix of both. Deltas are normalized into
a nested partial record, anonymized, and turned into one of two write
shapes:

- ``PartialFieldSet``: dotted paths, so untouched sub-fields in the
  mirror keep their values
- ``FullGroupReplace``: nested groups written whole, so sub-fields
  missing from the new object are dropped from the mirror
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol

from .exceptions import MalformedUpdateError

logger = logging.getLogger(__name__)

# Nested field groups of the customer schema
NESTED_GROUPS = frozenset({"address"})


class Anonymizer(Protocol):
    def anonymize(self, record: Mapping[str, Any]) -> dict[str, Any]: ...


@dataclass(frozen=True)
class PartialFieldSet:
    """Set individual field paths, nested fields in dotted notation."""

    fields: dict[str, Any]

    def to_set_document(self) -> dict[str, Any]:
        return dict(self.fields)


@dataclass(frozen=True)
class FullGroupReplace:
    """Set top-level fields, replacing nested groups as whole objects."""

    document: dict[str, Any]

    def to_set_document(self) -> dict[str, Any]:
        return dict(self.document)


FieldUpdate = PartialFieldSet | FullGroupReplace


@dataclass(frozen=True)
class ReconstructedDelta:
    """A delta folded back into record shape."""

    record: dict[str, Any]
    full_group_replace: bool = False


def reconstruct_delta(
    updated_fields: Mapping[str, Any] | None,
    groups: frozenset[str] = NESTED_GROUPS,
) -> ReconstructedDelta:
    """
    Fold a raw ``updatedFields`` mapping into a nested partial record.

    Dotted keys under a group are merged into that group. A bare group
    key replaces the group outright and wins over dotted keys for the
    same group, wherever they appear in the delta.

    Raises:
        MalformedUpdateError: If the delta is missing or empty
    """
    if not updated_fields:
        raise MalformedUpdateError("Update event carries no updated fields")

    record: dict[str, Any] = {}
    replaced: set[str] = set()

    for key, value in updated_fields.items():
        root, dot, path = key.partition(".")

        if dot and root in groups:
            if root not in replaced:
                record.setdefault(root, {})[path] = value
        elif key in groups:
            replaced.add(key)
            record[key] = value
        else:
            record[key] = value

    return ReconstructedDelta(record=record, full_group_replace=bool(replaced))


def to_dotted(
    document: Mapping[str, Any],
    groups: frozenset[str] = NESTED_GROUPS,
) -> dict[str, Any]:
    """Expand nested groups of ``document`` into dotted-path keys."""
    fields: dict[str, Any] = {}

    for key, value in document.items():
        if key in groups and isinstance(value, Mapping):
            for nested_key, nested_value in value.items():
                fields[f"{key}.{nested_key}"] = nested_value
        else:
            fields[key] = value

    return fields


def build_field_update(
    updated_fields: Mapping[str, Any] | None,
    anonymizer: Anonymizer,
) -> FieldUpdate | None:
    """
    Turn a raw update delta into the anonymized write for the mirror.

    Returns:
        The field update, or None when none of the changed fields is
        mirrored (e.g. only ``createdAt`` changed)

    Raises:
        MalformedUpdateError: If the delta is missing or empty
    """
    delta = reconstruct_delta(updated_fields)
    anonymized = anonymizer.anonymize(delta.record)

    if not anonymized:
        return None

    if delta.full_group_replace:
        return FullGroupReplace(anonymized)

    return PartialFieldSet(to_dotted(anonymized))
