from __future__ import annotations

import csv
import io
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pandas as pd

from ..models.parsed_file import ParsedFile
from ..models.raw_row import RawRow

"""CSV reader: raw bytes -> ParsedFile.

- 1 行目をヘッダ行、2 行目以降をデータ行として扱う
- セル値は trim しない (検証段階で行う)
- 完全な空行はスキップ
- ヘッダより列の多い行も保持 (超過セルは RawRow.extra)
- サイズ上限はトークナイズ前、行数上限はトークナイズ後に判定

pandas is used with every NA conversion disabled so that a cell always comes
back as the exact text the operator typed ("NA", "null" and "" included).
"""

__all__ = [
    "DEFAULT_MAX_BYTES",
    "DEFAULT_MAX_ROWS",
    "FileError",
    "FileTooLarge",
    "EmptyFile",
    "RowLimitExceeded",
    "ParseError",
    "DuplicateHeadersError",
    "read_csv_bytes",
    "read_csv_file",
]

DEFAULT_MAX_BYTES = 5 * 1024 * 1024
DEFAULT_MAX_ROWS = 500

_EXTRA_SEP = "\x1f"


class FileError(Exception):
    """Base class for file-level failures; the file is rejected as a whole."""


class FileTooLarge(FileError):
    def __init__(self, size_bytes: int, max_bytes: int) -> None:
        self.size_bytes = size_bytes
        self.max_bytes = max_bytes
        super().__init__(
            f"file too large: {size_bytes} bytes (max {max_bytes // (1024 * 1024)}MB)"
        )


class EmptyFile(FileError):
    def __init__(self, file_name: str) -> None:
        self.file_name = file_name
        super().__init__(f"file has no data rows: {file_name}")


class RowLimitExceeded(FileError):
    def __init__(self, row_count: int, max_rows: int) -> None:
        self.row_count = row_count
        self.max_rows = max_rows
        super().__init__(f"too many rows: {row_count} (max {max_rows})")


class ParseError(FileError):
    """Raised when the file cannot be tokenized as delimited text."""


class DuplicateHeadersError(ParseError):
    def __init__(self, duplicates: list[str]) -> None:
        self.duplicates = duplicates
        super().__init__(f"duplicate headers: {', '.join(repr(h) for h in duplicates)}")


def _decode(data: bytes, encoding: str) -> str:
    # UTF-8 の BOM は許容する
    codec = "utf-8-sig" if encoding.lower().replace("_", "-") in ("utf-8", "utf8") else encoding
    try:
        return data.decode(codec)
    except (UnicodeDecodeError, LookupError) as e:
        raise ParseError(f"cannot decode file as {encoding}: {e}") from e


def _cell(value: Any) -> str:
    # 短い行の不足セルは NaN で埋められる -> 空文字
    if isinstance(value, str):
        return value
    return ""


def _find_duplicates(headers: list[str]) -> list[str]:
    seen: set[str] = set()
    dups: list[str] = []
    for h in headers:
        if h in seen and h not in dups:
            dups.append(h)
        seen.add(h)
    return dups


def _fold_extra(width: int) -> Callable[[list[str]], list[str]]:
    # ヘッダ列数 + 1 を超える行: 超過分を最終列 1 セルにまとめる
    def handler(bad_line: list[str]) -> list[str]:
        return bad_line[:width] + [_EXTRA_SEP.join(bad_line[width:])]

    return handler


def _extra_cells(value: Any) -> tuple[str, ...]:
    cells = _cell(value).split(_EXTRA_SEP)
    # 末尾の区切り文字だけの場合 ("a,b,c,d,") は超過扱いしない
    while cells and cells[-1] == "":
        cells.pop()
    return tuple(cells)


def _tokenize(text: str, file_name: str, delimiter: str) -> list[list[Any]]:
    common = dict(
        header=None,
        sep=delimiter,
        keep_default_na=False,
        na_filter=False,
        skip_blank_lines=True,
    )
    try:
        # C エンジン: クォート不整合などトークナイズ不能なファイルを検出 (列数超過行は無視)
        checked = pd.read_csv(io.StringIO(text), dtype=str, on_bad_lines="skip", **common)
        width = checked.shape[1]
        # python エンジン: 列数超過行も保持し、超過セルを追加列に退避
        df = pd.read_csv(
            io.StringIO(text),
            engine="python",
            dtype=object,
            names=list(range(width + 1)),
            on_bad_lines=_fold_extra(width),
            **common,
        )
    except pd.errors.EmptyDataError as e:
        raise EmptyFile(file_name) from e
    except (pd.errors.ParserError, csv.Error, ValueError) as e:
        raise ParseError(f"cannot parse {file_name}: {e}") from e
    return df.values.tolist()


def read_csv_bytes(
    data: bytes,
    file_name: str = "upload.csv",
    *,
    max_bytes: int = DEFAULT_MAX_BYTES,
    max_rows: int = DEFAULT_MAX_ROWS,
    encoding: str = "utf-8",
    delimiter: str = ",",
) -> ParsedFile:
    """Parse an uploaded CSV payload.

    A data row with more cells than the header is kept: the surplus cells
    go to ``RawRow.extra`` and the row fails validation on its own.

    Raises:
        FileTooLarge: payload is larger than ``max_bytes``
        ParseError: payload cannot be decoded or tokenized
        DuplicateHeadersError: the header line repeats a column name
        EmptyFile: no data rows after the header (or no content at all)
        RowLimitExceeded: more than ``max_rows`` data rows
    """
    size = len(data)
    if size > max_bytes:
        raise FileTooLarge(size, max_bytes)

    text = _decode(data, encoding)
    if not text.strip():
        raise EmptyFile(file_name)

    records = _tokenize(text, file_name, delimiter)
    if not records:
        raise EmptyFile(file_name)

    headers = [_cell(h) for h in records[0][:-1]]
    dups = _find_duplicates(headers)
    if dups:
        raise DuplicateHeadersError(dups)

    body = records[1:]
    if not body:
        raise EmptyFile(file_name)
    if len(body) > max_rows:
        raise RowLimitExceeded(len(body), max_rows)

    rows = tuple(
        RawRow(
            row_number=i,
            values={h: _cell(v) for h, v in zip(headers, raw[:-1], strict=True)},
            extra=_extra_cells(raw[-1]),
        )
        for i, raw in enumerate(body, start=1)
    )
    return ParsedFile(file_name=file_name, headers=tuple(headers), rows=rows, size_bytes=size)


def read_csv_file(path: Path, **kwargs: Any) -> ParsedFile:
    """Read ``path`` from disk and parse it with :func:`read_csv_bytes`."""
    try:
        data = path.read_bytes()
    except OSError as e:
        raise FileError(f"cannot read file: {path} ({e.strerror})") from e
    return read_csv_bytes(data, path.name, **kwargs)
