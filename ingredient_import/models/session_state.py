from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .column_mapping import ColumnMapping
from .import_report import DuplicatePolicy, ImportReport
from .parsed_file import ParsedFile
from .valid_record import ValidRecord
from .validated_row import ValidatedRow

"""Import session states.

The session is a tagged union: each state class carries only the data that is
meaningful in it (a MappingState always has a parsed file, a PreviewState
always has validated rows, and so on). A failed upload or commit is
represented by the recoverable state (UploadState / PreviewState) carrying the
last error message, so there is no separate error state to exit from.
"""

__all__ = [
    "Stage",
    "UploadState",
    "MappingState",
    "PreviewState",
    "ImportingState",
    "CompleteState",
    "CancelledState",
    "SessionState",
]


class Stage(str, Enum):
    UPLOAD = "upload"
    MAPPING = "mapping"
    PREVIEW = "preview"
    IMPORTING = "importing"
    COMPLETE = "complete"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class UploadState:
    error: str | None = None

    stage = Stage.UPLOAD


@dataclass(frozen=True)
class MappingState:
    parsed: ParsedFile
    mapping: ColumnMapping
    error: str | None = None

    stage = Stage.MAPPING


@dataclass(frozen=True)
class PreviewState:
    """Validated rows awaiting the operator's commit decision."""
    parsed: ParsedFile
    mapping: ColumnMapping
    rows: tuple[ValidatedRow, ...]
    policy: DuplicatePolicy = DuplicatePolicy.SKIP
    error: str | None = None  # 直前のコミット失敗メッセージ

    stage = Stage.PREVIEW

    @property
    def valid_rows(self) -> tuple[ValidatedRow, ...]:
        return tuple(r for r in self.rows if r.is_importable)

    @property
    def invalid_rows(self) -> tuple[ValidatedRow, ...]:
        return tuple(r for r in self.rows if not r.is_importable)

    @property
    def valid_count(self) -> int:
        return len(self.valid_rows)

    @property
    def error_count(self) -> int:
        return len(self.invalid_rows)


@dataclass(frozen=True)
class ImportingState:
    preview: PreviewState
    records: tuple[ValidRecord, ...]

    stage = Stage.IMPORTING

    def __post_init__(self) -> None:
        if not self.records:
            raise ValueError("ImportingState requires at least one record")


@dataclass(frozen=True)
class CompleteState:
    file_name: str
    report: ImportReport
    invalid_rows: tuple[ValidatedRow, ...] = ()

    stage = Stage.COMPLETE


@dataclass(frozen=True)
class CancelledState:
    stage = Stage.CANCELLED


SessionState = (
    UploadState | MappingState | PreviewState | ImportingState | CompleteState | CancelledState
)
