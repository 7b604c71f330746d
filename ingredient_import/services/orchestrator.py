from __future__ import annotations

import logging
import re
import threading
import time
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import TypeVar

from ..config.loader import ImportConfig, LimitsConfig, default_config
from ..csvfile.reader import FileError, read_csv_bytes
from ..db.catalog_store import CatalogStore, CommitError
from ..logging.error_log import ErrorLogBuffer
from ..models.column_mapping import ColumnMapping
from ..models.error_record import FILE_LEVEL_ROW
from ..models.fields import HeaderClaimPolicy, TargetField
from ..models.import_report import DuplicatePolicy, ImportReport
from ..models.session_state import (
    CancelledState,
    CompleteState,
    ImportingState,
    MappingState,
    PreviewState,
    SessionState,
    Stage,
    UploadState,
)
from ..models.valid_record import ValidRecord
from ..models.validated_row import ValidatedRow
from .column_mapper import (
    MappingError,
    assign_header,
    auto_detect_mapping,
    ensure_complete,
    merge_aliases,
)
from .row_validator import validate_rows

"""Import session orchestration.

``ImportSession`` drives one file through upload -> mapping -> preview ->
importing -> complete. Every operation checks the current state and either
moves to the next one or raises; nothing is half-applied.

Failure handling:
- FileError on upload: stays in Upload with the message recorded
- MappingError on preview: stays in Mapping with the message recorded
- CommitError: back to Preview with every validated row intact (retry allowed)

``run_import`` is the non-interactive driver used by the CLI.
"""

__all__ = [
    "SessionError",
    "InvalidTransitionError",
    "CommitInProgressError",
    "NothingToImportError",
    "ImportSession",
    "ImportOutcome",
    "error_type_for",
    "run_import",
]

logger = logging.getLogger(__name__)

_S = TypeVar("_S", UploadState, MappingState, PreviewState)


class SessionError(Exception):
    pass


class InvalidTransitionError(SessionError):
    def __init__(self, operation: str, stage: Stage) -> None:
        self.operation = operation
        self.stage = stage
        super().__init__(f"cannot {operation} while in {stage.value} stage")


class CommitInProgressError(SessionError):
    def __init__(self) -> None:
        super().__init__("a commit is already in progress for this session")


class NothingToImportError(SessionError):
    def __init__(self) -> None:
        super().__init__("no valid rows to import")


class ImportSession:
    """State machine for one interactive import.

    The session owns its state exclusively; callers read it through
    :attr:`state` and change it only through the operations below.
    """

    def __init__(
        self,
        store: CatalogStore,
        *,
        limits: LimitsConfig | None = None,
        encoding: str = "utf-8",
        delimiter: str = ",",
        header_policy: HeaderClaimPolicy = HeaderClaimPolicy.INDEPENDENT,
        on_duplicate: DuplicatePolicy = DuplicatePolicy.SKIP,
        aliases: Mapping[TargetField, tuple[str, ...]] | None = None,
    ) -> None:
        self.store = store
        self.limits = limits or LimitsConfig()
        self.encoding = encoding
        self.delimiter = delimiter
        self.header_policy = header_policy
        self.default_policy = on_duplicate
        self.aliases = aliases
        self._state: SessionState = UploadState()
        self._commit_lock = threading.Lock()

    @classmethod
    def from_config(cls, store: CatalogStore, config: ImportConfig) -> ImportSession:
        return cls(
            store,
            limits=config.limits,
            encoding=config.encoding,
            delimiter=config.delimiter,
            header_policy=config.header_policy,
            on_duplicate=config.on_duplicate,
            aliases=merge_aliases(config.extra_aliases) if config.extra_aliases else None,
        )

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def stage(self) -> Stage:
        return self._state.stage

    def _require(self, operation: str, expected: type[_S]) -> _S:
        state = self._state
        if isinstance(state, ImportingState) and operation == "commit":
            raise CommitInProgressError()
        if not isinstance(state, expected):
            raise InvalidTransitionError(operation, state.stage)
        return state

    def _move(self, new_state: SessionState) -> None:
        logger.debug("session %s -> %s", self._state.stage.value, new_state.stage.value)
        self._state = new_state

    # Upload

    def upload(self, data: bytes, file_name: str) -> MappingState:
        """Parse ``data`` and propose a column mapping.

        Raises:
            FileError: the file was rejected; the session stays in Upload
        """
        self._require("upload", UploadState)
        try:
            parsed = read_csv_bytes(
                data,
                file_name,
                max_bytes=self.limits.max_file_bytes,
                max_rows=self.limits.max_rows,
                encoding=self.encoding,
                delimiter=self.delimiter,
            )
        except FileError as e:
            self._state = UploadState(error=str(e))
            raise
        mapping = auto_detect_mapping(parsed.headers, self.header_policy, self.aliases)
        logger.info(
            "parsed %s: %d rows, headers=%s", file_name, parsed.row_count, list(parsed.headers)
        )
        state = MappingState(parsed=parsed, mapping=mapping)
        self._move(state)
        return state

    # Mapping

    def assign(self, field: TargetField, header: str) -> MappingState:
        state = self._require("assign a column", MappingState)
        mapping = assign_header(state.mapping, field, header, state.parsed.headers)
        new_state = MappingState(parsed=state.parsed, mapping=mapping)
        self._state = new_state
        return new_state

    def unassign(self, field: TargetField) -> MappingState:
        state = self._require("unassign a column", MappingState)
        new_state = MappingState(parsed=state.parsed, mapping=state.mapping.without_field(field))
        self._state = new_state
        return new_state

    def back_to_upload(self) -> UploadState:
        self._require("go back to upload", MappingState)
        state = UploadState()
        self._move(state)
        return state

    def request_preview(self) -> PreviewState:
        """Validate every row with the current mapping.

        Raises:
            MissingRequiredMapping: a required field is unmapped; stays in Mapping
        """
        state = self._require("preview", MappingState)
        try:
            ensure_complete(state.mapping, state.parsed.headers)
        except MappingError as e:
            self._state = replace(state, error=str(e))
            raise
        rows = validate_rows(state.parsed.rows, state.mapping)
        preview = PreviewState(
            parsed=state.parsed,
            mapping=state.mapping,
            rows=rows,
            policy=self.default_policy,
        )
        logger.info("validated %d rows: %d valid, %d with errors", len(rows), preview.valid_count, preview.error_count)
        self._move(preview)
        return preview

    # Preview

    def set_policy(self, policy: DuplicatePolicy) -> PreviewState:
        state = self._require("change the duplicate policy", PreviewState)
        new_state = replace(state, policy=DuplicatePolicy(policy))
        self._state = new_state
        return new_state

    def back_to_mapping(self) -> MappingState:
        state = self._require("go back to mapping", PreviewState)
        # マッピングは保持、検証結果は破棄 (再プレビュー時に再計算)
        new_state = MappingState(parsed=state.parsed, mapping=state.mapping)
        self._move(new_state)
        return new_state

    def commit(self) -> ImportReport:
        """Submit every valid row to the store.

        Raises:
            NothingToImportError: the preview has no valid rows
            CommitInProgressError: another commit on this session has not returned
            CommitError: the store failed; the session is back in Preview
        """
        if not self._commit_lock.acquire(blocking=False):
            raise CommitInProgressError()
        try:
            preview = self._require("commit", PreviewState)
            records = tuple(ValidRecord.from_row(r) for r in preview.valid_rows)
            if not records:
                raise NothingToImportError()

            self._move(ImportingState(preview=replace(preview, error=None), records=records))
            logger.info("committing %d records (on_duplicate=%s)", len(records), preview.policy.value)
            try:
                report = self.store.bulk_create(records, preview.policy)
            except CommitError as e:
                logger.error("commit failed: %s", e)
                self._move(replace(preview, error=str(e)))
                raise
            except Exception as e:
                self._move(replace(preview, error=f"unexpected store failure: {e}"))
                raise

            self._move(
                CompleteState(
                    file_name=preview.parsed.file_name,
                    report=report,
                    invalid_rows=preview.invalid_rows,
                )
            )
            return report
        finally:
            self._commit_lock.release()

    def cancel(self) -> CancelledState:
        if not isinstance(self._state, (UploadState, MappingState, PreviewState)):
            raise InvalidTransitionError("cancel", self._state.stage)
        state = CancelledState()
        self._move(state)
        return state


@dataclass(frozen=True)
class ImportOutcome:
    """Result of one non-interactive run."""
    file_name: str
    mapping: ColumnMapping
    rows: tuple[ValidatedRow, ...]
    report: ImportReport | None
    elapsed_seconds: float
    dry_run: bool = False

    @property
    def total_rows(self) -> int:
        return len(self.rows)

    @property
    def invalid_rows(self) -> tuple[ValidatedRow, ...]:
        return tuple(r for r in self.rows if not r.is_importable)

    @property
    def valid_count(self) -> int:
        return self.total_rows - len(self.invalid_rows)

    @property
    def committed(self) -> bool:
        return self.report is not None


_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")


def error_type_for(exc: BaseException) -> str:
    """UPPER_SNAKE error type derived from the exception class (FileTooLarge -> FILE_TOO_LARGE)."""
    return _CAMEL_RE.sub("_", type(exc).__name__).upper()


def run_import(
    data: bytes,
    file_name: str,
    store: CatalogStore,
    *,
    config: ImportConfig | None = None,
    policy: DuplicatePolicy | None = None,
    overrides: Mapping[TargetField, str | None] | None = None,
    dry_run: bool = False,
    error_log: ErrorLogBuffer | None = None,
) -> ImportOutcome:
    """Upload -> (overrides) -> preview -> commit in one call.

    Every rejected file, unmet mapping, invalid row, per-row store failure
    and commit failure is appended to ``error_log`` (flushed before
    returning or raising). Nothing is committed when ``dry_run`` is set or
    when no row is valid.

    Args:
        overrides: Manual column assignments applied after auto-detection.
            A None header unassigns the field.

    Raises:
        FileError, MappingError, CommitError: fatal for this file
    """
    cfg = config or default_config()
    log = error_log if error_log is not None else ErrorLogBuffer()
    start = time.perf_counter()
    session = ImportSession.from_config(store, cfg)
    try:
        try:
            session.upload(data, file_name)
            for field, header in (overrides or {}).items():
                if header is None:
                    session.unassign(field)
                else:
                    session.assign(field, header)
            preview = session.request_preview()
        except (FileError, MappingError) as e:
            log.add(file_name, FILE_LEVEL_ROW, error_type_for(e), str(e))
            raise

        if policy is not None:
            preview = session.set_policy(policy)

        for row in preview.invalid_rows:
            log.add(file_name, row.row_index, "ROW_VALIDATION_ERROR", "; ".join(row.errors))

        report: ImportReport | None = None
        if dry_run:
            logger.info("dry run: %d valid rows not committed", preview.valid_count)
        elif preview.valid_count == 0:
            logger.warning("no valid rows in %s; nothing committed", file_name)
        else:
            try:
                report = session.commit()
            except CommitError as e:
                log.add(file_name, FILE_LEVEL_ROW, error_type_for(e), str(e))
                raise
            for skipped in report.failed:
                row_no = skipped.row_index if skipped.row_index is not None else FILE_LEVEL_ROW
                log.add(file_name, row_no, "ROW_WRITE_ERROR", f"{skipped.name}: {skipped.reason}")

        return ImportOutcome(
            file_name=file_name,
            mapping=preview.mapping,
            rows=preview.rows,
            report=report,
            elapsed_seconds=time.perf_counter() - start,
            dry_run=dry_run,
        )
    finally:
        path = log.flush()
        if path is not None:
            logger.info("error log written: %s", path)
