from __future__ import annotations

import itertools
import logging
from collections.abc import Sequence
from dataclasses import dataclass, replace
from typing import Protocol

from ..models.import_report import REASON_ALREADY_EXISTS, DuplicatePolicy, ImportReport, ReportBuilder
from ..models.valid_record import ValidRecord
from ..services.progress import ProgressTracker

"""Catalog store contract and the in-memory implementation.

A store receives the whole batch of valid records in one call and answers
with an ImportReport. Reconciliation against existing records uses the
natural key (trimmed, case-insensitive name):

- no match                -> insert, reported as created
- match, policy "skip"    -> untouched, reported as skipped ("already exists")
- match, policy "update"  -> overwritten, reported as updated (existing id)
- per-row write failure   -> reported as skipped with the failure reason

Transport-level failures raise CommitError; the caller must then assume
nothing from the batch was persisted.
"""

__all__ = [
    "CatalogStore",
    "CatalogEntry",
    "CommitError",
    "RowWriteError",
    "MemoryCatalogStore",
    "natural_key",
]

logger = logging.getLogger(__name__)


class CommitError(Exception):
    """The store could not be reached or the batch could not be committed."""


class RowWriteError(Exception):
    """A single record could not be written; the batch continues."""


def natural_key(name: str) -> str:
    # SQL 側の lower(btrim(name)) と同じ正規化
    return name.strip().lower()


class CatalogStore(Protocol):
    def bulk_create(
        self, records: Sequence[ValidRecord], on_duplicate: DuplicatePolicy | str
    ) -> ImportReport: ...


@dataclass(frozen=True)
class CatalogEntry:
    id: str
    name: str
    quantity: float
    cost: float
    unit: str
    category: str | None = None
    supplier: str | None = None

    @property
    def cost_per_unit(self) -> float:
        return self.cost / self.quantity


class MemoryCatalogStore:
    """Dict-backed catalog used for dry runs, tests and DISABLE_DB_CONNECT=1.

    Set ``available = False`` to simulate an unreachable backend. Subclasses
    (or tests) may override :meth:`_write` to inject per-row failures.
    """

    def __init__(self, existing: Sequence[CatalogEntry] | None = None) -> None:
        self.available = True
        self._entries: dict[str, CatalogEntry] = {}
        self._ids = itertools.count(1)
        for entry in existing or ():
            self._entries[natural_key(entry.name)] = entry
        self.commits = 0

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, name: str, quantity: float, cost: float, unit: str, **extra: str | None) -> CatalogEntry:
        """Seed one entry (as if created earlier through the catalog UI)."""
        entry = CatalogEntry(
            id=self._next_id(), name=name, quantity=quantity, cost=cost, unit=unit, **extra
        )
        self._entries[natural_key(name)] = entry
        return entry

    def get(self, name: str) -> CatalogEntry | None:
        return self._entries.get(natural_key(name))

    def entries(self) -> list[CatalogEntry]:
        return list(self._entries.values())

    def _next_id(self) -> str:
        return f"ing-{next(self._ids)}"

    def _write(self, record: ValidRecord, existing: CatalogEntry | None) -> CatalogEntry:
        if existing is None:
            return CatalogEntry(
                id=self._next_id(),
                name=record.name,
                quantity=record.quantity,
                cost=record.cost,
                unit=record.unit,
                category=record.category,
                supplier=record.supplier,
            )
        return replace(
            existing,
            quantity=record.quantity,
            cost=record.cost,
            unit=record.unit,
            category=record.category,
            supplier=record.supplier,
        )

    def bulk_create(
        self, records: Sequence[ValidRecord], on_duplicate: DuplicatePolicy | str
    ) -> ImportReport:
        on_duplicate = DuplicatePolicy(on_duplicate)
        if not self.available:
            raise CommitError("catalog store unavailable")

        builder = ReportBuilder()
        # バッチ全体を作業コピー上で処理し、最後に差し替える
        staged = dict(self._entries)
        with ProgressTracker(len(records)) as progress:
            for record in records:
                key = natural_key(record.name)
                existing = staged.get(key)
                if existing is not None and on_duplicate is DuplicatePolicy.SKIP:
                    builder.add_skipped(record.name, REASON_ALREADY_EXISTS, record.row_index)
                    progress.advance("skipped")
                    continue
                try:
                    entry = self._write(record, existing)
                except RowWriteError as e:
                    logger.warning("row %d (%s) not written: %s", record.row_index, record.name, e)
                    builder.add_skipped(record.name, str(e), record.row_index)
                    progress.advance("skipped")
                    continue
                staged[key] = entry
                if existing is None:
                    builder.add_created(record.name, entry.id)
                    progress.advance("created")
                else:
                    builder.add_updated(record.name, entry.id)
                    progress.advance("updated")
        self._entries = staged
        self.commits += 1
        return builder.build()
