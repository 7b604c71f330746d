from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace

from .fields import TargetField

"""ColumnMapping value object (target field -> optional source header).

The mapping is immutable. Every change goes through an explicit per-field
setter that returns a new value, so each operator override is a total,
traceable transition rather than a partial dict merge.
"""

__all__ = [
    "ColumnMapping",
]


@dataclass(frozen=True)
class ColumnMapping:
    """Source header chosen for each target field (None = unmapped)."""
    name: str | None = None
    quantity: str | None = None
    cost: str | None = None
    unit: str | None = None
    category: str | None = None
    supplier: str | None = None

    def header_for(self, field: TargetField) -> str | None:
        return getattr(self, field.value)

    def with_field(self, field: TargetField, header: str) -> ColumnMapping:
        """Return a copy with ``field`` mapped to ``header``."""
        return replace(self, **{field.value: header})

    def without_field(self, field: TargetField) -> ColumnMapping:
        """Return a copy with ``field`` unmapped."""
        return replace(self, **{field.value: None})

    def missing_required(self, headers: Iterable[str]) -> list[TargetField]:
        """Required fields that are unmapped or point at a header not in ``headers``.

        Returned in TargetField order so error messages are deterministic.
        """
        present = set(headers)
        return [
            field
            for field in TargetField
            if field.required and self.header_for(field) not in present
        ]

    def is_complete(self, headers: Iterable[str]) -> bool:
        return not self.missing_required(headers)

    def as_dict(self) -> dict[str, str | None]:
        return {field.value: self.header_for(field) for field in TargetField}
