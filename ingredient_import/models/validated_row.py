from __future__ import annotations

from dataclasses import dataclass

"""ValidatedRow model: a RawRow after field rules have been applied.

A validated row is a pure function of (RawRow, ColumnMapping). It carries the
parsed field values and an ordered tuple of human-readable errors; it is
importable only when that tuple is empty.
"""

__all__ = [
    "IngredientFields",
    "ValidatedRow",
]


@dataclass(frozen=True)
class IngredientFields:
    """Field values extracted from one row.

    Numbers that could not be parsed stay None; nothing is defaulted.
    """
    name: str
    quantity: float | None
    cost: float | None
    unit: str
    category: str | None = None
    supplier: str | None = None


@dataclass(frozen=True)
class ValidatedRow:
    """Validation outcome for one data row.

    Attributes:
        row_index: 1-based data line number (matches RawRow.row_number)
        fields: Parsed values (trimmed strings, floats or None)
        errors: One message per violated field, in field order
    """
    row_index: int
    fields: IngredientFields
    errors: tuple[str, ...] = ()

    @property
    def is_importable(self) -> bool:
        return not self.errors
