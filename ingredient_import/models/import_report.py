from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

"""ImportReport model: reconciliation result of one bulk commit.

The report is built once per commit (through ReportBuilder) and is immutable
afterwards. ``to_dict()`` renders the response shape the catalog API returns
for ``POST /v1/ingredients/bulk``::

    {"report": {"total", "created", "updated", "skipped"},
     "details": {"created": [{name, id}], "updated": [{name, id}],
                 "skipped": [{name, reason}]}}
"""

__all__ = [
    "DuplicatePolicy",
    "ReportEntry",
    "SkippedEntry",
    "ImportReport",
    "ReportBuilder",
    "REASON_ALREADY_EXISTS",
]

REASON_ALREADY_EXISTS = "already exists"


class DuplicatePolicy(str, Enum):
    """What to do with a record whose natural key already exists."""
    SKIP = "skip"
    UPDATE = "update"


@dataclass(frozen=True)
class ReportEntry:
    name: str
    id: str


@dataclass(frozen=True)
class SkippedEntry:
    name: str
    reason: str
    row_index: int | None = None  # ストア側で行番号が分かる場合のみ


@dataclass(frozen=True)
class ImportReport:
    """Outcome counts and per-record details of one commit.

    Invariant: total == created + updated + skipped (total is derived, so it
    cannot drift).
    """
    created: tuple[ReportEntry, ...] = ()
    updated: tuple[ReportEntry, ...] = ()
    skipped: tuple[SkippedEntry, ...] = ()

    @property
    def created_count(self) -> int:
        return len(self.created)

    @property
    def updated_count(self) -> int:
        return len(self.updated)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)

    @property
    def total(self) -> int:
        return self.created_count + self.updated_count + self.skipped_count

    @property
    def failed(self) -> tuple[SkippedEntry, ...]:
        """Skipped entries caused by a store failure rather than by policy."""
        return tuple(s for s in self.skipped if s.reason != REASON_ALREADY_EXISTS)

    def to_dict(self) -> dict[str, Any]:
        return {
            "report": {
                "total": self.total,
                "created": self.created_count,
                "updated": self.updated_count,
                "skipped": self.skipped_count,
            },
            "details": {
                "created": [{"name": e.name, "id": e.id} for e in self.created],
                "updated": [{"name": e.name, "id": e.id} for e in self.updated],
                "skipped": [{"name": s.name, "reason": s.reason} for s in self.skipped],
            },
        }


class ReportBuilder:
    """Mutable accumulator used by stores while a batch is written."""

    def __init__(self) -> None:
        self._created: list[ReportEntry] = []
        self._updated: list[ReportEntry] = []
        self._skipped: list[SkippedEntry] = []

    def add_created(self, name: str, id: Any) -> None:
        self._created.append(ReportEntry(name=name, id=str(id)))

    def add_updated(self, name: str, id: Any) -> None:
        self._updated.append(ReportEntry(name=name, id=str(id)))

    def add_skipped(self, name: str, reason: str, row_index: int | None = None) -> None:
        self._skipped.append(SkippedEntry(name=name, reason=reason, row_index=row_index))

    def build(self) -> ImportReport:
        return ImportReport(
            created=tuple(self._created),
            updated=tuple(self._updated),
            skipped=tuple(self._skipped),
        )
