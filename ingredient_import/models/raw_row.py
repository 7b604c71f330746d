from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

"""RawRow model: one data line of the uploaded CSV, exactly as parsed.

Cell values are kept untrimmed; trimming belongs to the row validator so that
messages can still refer to the raw input.
"""

__all__ = [
    "RawRow",
]


@dataclass(frozen=True)
class RawRow:
    """A single data row keyed by source header (file order preserved).

    row_number is 1-based and counts data lines after the header, so the
    first data line is row 1. ``extra`` holds the cells found past the last
    header (an unquoted delimiter inside a value, for instance); the row is
    kept and the validator reports it.
    """
    row_number: int
    values: Mapping[str, str]
    extra: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        # 読み取り専用ビューに差し替え (呼び出し側の dict を変更しても影響しない)
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))
        object.__setattr__(self, "extra", tuple(self.extra))

    def get(self, header: str | None) -> str | None:
        """Return the raw cell under ``header`` (None if unmapped or absent)."""
        if header is None:
            return None
        return self.values.get(header)
