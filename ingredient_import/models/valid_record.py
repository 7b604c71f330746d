from __future__ import annotations

from dataclasses import dataclass

from .validated_row import ValidatedRow

"""ValidRecord: the commit payload built from one importable ValidatedRow."""

__all__ = [
    "ValidRecord",
]


@dataclass(frozen=True)
class ValidRecord:
    """Ingredient record submitted to the catalog store.

    cost_per_unit is derived (cost / quantity) the same way the catalog
    exposes it on ingredient listings.
    """
    row_index: int
    name: str
    quantity: float
    cost: float
    unit: str
    category: str | None = None
    supplier: str | None = None

    @property
    def cost_per_unit(self) -> float:
        return self.cost / self.quantity

    @classmethod
    def from_row(cls, row: ValidatedRow) -> ValidRecord:
        """Build the payload for an importable row.

        Raises:
            ValueError: If the row still carries validation errors
        """
        f = row.fields
        # is_importable なら quantity / cost は正の有限値
        if not row.is_importable or f.quantity is None or f.cost is None:
            raise ValueError(f"row {row.row_index} is not importable: {'; '.join(row.errors)}")
        return cls(
            row_index=row.row_index,
            name=f.name,
            quantity=f.quantity,
            cost=f.cost,
            unit=f.unit,
            category=f.category,
            supplier=f.supplier,
        )
