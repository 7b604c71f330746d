from __future__ import annotations

import math
import re
from collections.abc import Iterable

from ..models.column_mapping import ColumnMapping
from ..models.fields import TargetField
from ..models.raw_row import RawRow
from ..models.validated_row import IngredientFields, ValidatedRow

"""Row validator: RawRow + ColumnMapping -> ValidatedRow.

Stateless and deterministic. Each violated field contributes one message, in
field order (name, quantity, cost, unit), followed by one row-level message
when the line carried cells past the last header. Nothing is defaulted or
coerced: a blank required cell is an error, and numbers must be plain decimal
literals ("15,90", "12abc", "nan" and "inf" are all rejected).
"""

__all__ = [
    "VALID_UNITS",
    "NAME_MIN_LENGTH",
    "NAME_MAX_LENGTH",
    "MSG_NAME_LENGTH",
    "MSG_QUANTITY",
    "MSG_COST",
    "parse_number",
    "invalid_unit_message",
    "extra_cells_message",
    "validate_row",
    "validate_rows",
]

VALID_UNITS: tuple[str, ...] = ("g", "ml", "un")
NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 100

MSG_NAME_LENGTH = f"Name must be between {NAME_MIN_LENGTH} and {NAME_MAX_LENGTH} characters"
MSG_QUANTITY = "Quantity must be a positive number"
MSG_COST = "Cost must be a positive number"

# 符号 + 10進数 (+ 指数) のみ。カンマ区切り・16進・nan/inf は不可
_NUMBER_RE = re.compile(r"^[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?$")


def invalid_unit_message(unit: str) -> str:
    return f'Invalid unit: "{unit}". Use: {", ".join(VALID_UNITS)}'


def extra_cells_message(count: int) -> str:
    return f"Row has {count} more field(s) than the header; check for an unquoted delimiter"


def parse_number(raw: str | None) -> float | None:
    """Parse a trimmed decimal literal; None when absent, malformed or not finite."""
    if raw is None:
        return None
    text = raw.strip()
    if not _NUMBER_RE.match(text):
        return None
    value = float(text)
    if not math.isfinite(value):  # "1e400" -> inf
        return None
    return value


def _optional(raw: str | None) -> str | None:
    if raw is None:
        return None
    return raw.strip() or None


def validate_row(row: RawRow, mapping: ColumnMapping) -> ValidatedRow:
    errors: list[str] = []

    name = (row.get(mapping.name) or "").strip()
    if not NAME_MIN_LENGTH <= len(name) <= NAME_MAX_LENGTH:
        errors.append(MSG_NAME_LENGTH)

    quantity = parse_number(row.get(mapping.quantity))
    if quantity is None or quantity <= 0:
        errors.append(MSG_QUANTITY)

    cost = parse_number(row.get(mapping.cost))
    if cost is None or cost <= 0:
        errors.append(MSG_COST)

    unit = (row.get(mapping.unit) or "").strip().lower()
    if unit not in VALID_UNITS:
        errors.append(invalid_unit_message(unit))

    if row.extra:
        errors.append(extra_cells_message(len(row.extra)))

    fields = IngredientFields(
        name=name,
        quantity=quantity,
        cost=cost,
        unit=unit,
        category=_optional(row.get(mapping.header_for(TargetField.CATEGORY))),
        supplier=_optional(row.get(mapping.header_for(TargetField.SUPPLIER))),
    )
    return ValidatedRow(row_index=row.row_number, fields=fields, errors=tuple(errors))


def validate_rows(rows: Iterable[RawRow], mapping: ColumnMapping) -> tuple[ValidatedRow, ...]:
    return tuple(validate_row(r, mapping) for r in rows)
