from __future__ import annotations

from dataclasses import dataclass

from .raw_row import RawRow

"""ParsedFile model: the immutable output of the CSV reader."""

__all__ = [
    "ParsedFile",
]


@dataclass(frozen=True)
class ParsedFile:
    """Header set and ordered data rows of one uploaded file.

    Created once at parse time and never mutated; every later stage reads
    from it.
    """
    file_name: str
    headers: tuple[str, ...]  # ファイル記載順, 重複なし
    rows: tuple[RawRow, ...]  # 1..max_rows 行
    size_bytes: int = 0

    @property
    def row_count(self) -> int:
        return len(self.rows)
