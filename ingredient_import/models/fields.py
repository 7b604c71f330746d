from __future__ import annotations

from enum import Enum

"""Target fields of an ingredient record and their header aliases.

Each target field owns an ordered tuple of case-insensitive synonyms used by
auto-mapping. Aliases are keyed by the enum member (not by a free string) so
that a typo fails at import time instead of silently breaking detection.
"""

__all__ = [
    "TargetField",
    "HeaderClaimPolicy",
    "REQUIRED_FIELDS",
    "OPTIONAL_FIELDS",
]


class TargetField(Enum):
    """Ingredient fields a CSV column can be mapped onto.

    Iteration order is the order auto-detection evaluates fields in.
    """
    NAME = "name"
    QUANTITY = "quantity"
    COST = "cost"
    UNIT = "unit"
    CATEGORY = "category"
    SUPPLIER = "supplier"

    @property
    def aliases(self) -> tuple[str, ...]:
        return _FIELD_ALIASES[self]

    @property
    def required(self) -> bool:
        return self in REQUIRED_FIELDS


class HeaderClaimPolicy(Enum):
    """How auto-detection treats a header that matches more than one field.

    - INDEPENDENT: every field is evaluated on its own; one header may serve
      several fields (the last field processed does not take it away).
    - RESERVE: a header claimed by an earlier field is skipped for later ones.
    """
    INDEPENDENT = "independent"
    RESERVE = "reserve"


# 正規化済み (小文字) で保持。ヘッダ側も trim + lower して比較する
_FIELD_ALIASES: dict[TargetField, tuple[str, ...]] = {
    TargetField.NAME: ("nome", "name", "ingrediente", "ingredient", "produto", "product"),
    TargetField.QUANTITY: ("quantidade", "quantity", "qtd", "qtde", "quant"),
    TargetField.COST: ("custo", "cost", "preco", "preço", "price", "valor", "value"),
    TargetField.UNIT: ("unidade", "unit", "un", "medida", "measure"),
    TargetField.CATEGORY: ("categoria", "category", "cat", "tipo", "type"),
    TargetField.SUPPLIER: ("fornecedor", "supplier", "fornec"),
}

REQUIRED_FIELDS: frozenset[TargetField] = frozenset(
    {TargetField.NAME, TargetField.QUANTITY, TargetField.COST, TargetField.UNIT}
)
OPTIONAL_FIELDS: frozenset[TargetField] = frozenset({TargetField.CATEGORY, TargetField.SUPPLIER})
