"""Domain models for the ingredient CSV import pipeline.

Everything here is a plain value object; behaviour lives in
``ingredient_import.services`` and ``ingredient_import.db``.
"""

from .column_mapping import ColumnMapping
from .error_record import ErrorRecord
from .fields import HeaderClaimPolicy, TargetField
from .import_report import DuplicatePolicy, ImportReport, ReportBuilder, ReportEntry, SkippedEntry
from .parsed_file import ParsedFile
from .raw_row import RawRow
from .session_state import (
    CancelledState,
    CompleteState,
    ImportingState,
    MappingState,
    PreviewState,
    SessionState,
    Stage,
    UploadState,
)
from .valid_record import ValidRecord
from .validated_row import IngredientFields, ValidatedRow

__all__ = [
    # Input
    "RawRow",
    "ParsedFile",
    # Mapping
    "TargetField",
    "HeaderClaimPolicy",
    "ColumnMapping",
    # Validation
    "IngredientFields",
    "ValidatedRow",
    "ValidRecord",
    # Commit
    "DuplicatePolicy",
    "ImportReport",
    "ReportBuilder",
    "ReportEntry",
    "SkippedEntry",
    # Session
    "Stage",
    "SessionState",
    "UploadState",
    "MappingState",
    "PreviewState",
    "ImportingState",
    "CompleteState",
    "CancelledState",
    # Logging
    "ErrorRecord",
]
