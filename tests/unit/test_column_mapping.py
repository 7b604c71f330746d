from __future__ import annotations

import dataclasses

import pytest

from ingredient_import.models.column_mapping import ColumnMapping
from ingredient_import.models.fields import OPTIONAL_FIELDS, REQUIRED_FIELDS, TargetField


def test_required_and_optional_fields():
    assert REQUIRED_FIELDS == {TargetField.NAME, TargetField.QUANTITY, TargetField.COST, TargetField.UNIT}
    assert OPTIONAL_FIELDS == {TargetField.CATEGORY, TargetField.SUPPLIER}
    assert TargetField.NAME.required
    assert not TargetField.SUPPLIER.required


def test_aliases_are_lowercase():
    for field in TargetField:
        assert field.aliases
        assert all(a == a.strip().lower() for a in field.aliases)


def test_with_field_returns_new_value():
    m = ColumnMapping()
    m2 = m.with_field(TargetField.COST, "Preço")
    assert m.cost is None
    assert m2.cost == "Preço"
    assert m2.header_for(TargetField.COST) == "Preço"


def test_without_field():
    m = ColumnMapping(category="tipo")
    assert m.without_field(TargetField.CATEGORY).category is None
    assert m.category == "tipo"


def test_mapping_is_frozen():
    m = ColumnMapping()
    with pytest.raises(dataclasses.FrozenInstanceError):
        m.name = "x"  # type: ignore[misc]


def test_missing_required_in_field_order():
    m = ColumnMapping(cost="c")
    assert m.missing_required(["c"]) == [TargetField.NAME, TargetField.QUANTITY, TargetField.UNIT]
    assert not m.is_complete(["c"])
    full = ColumnMapping(name="n", quantity="q", cost="c", unit="u")
    assert full.is_complete(["n", "q", "c", "u"])
