from __future__ import annotations

import logging
import os
import re
from collections.abc import Callable, Sequence
from typing import Any

import psycopg2

from ..config.loader import DatabaseConfig
from ..models.import_report import REASON_ALREADY_EXISTS, DuplicatePolicy, ImportReport, ReportBuilder
from ..models.valid_record import ValidRecord
from ..services.progress import ProgressTracker
from .catalog_store import CommitError

"""PostgreSQL catalog store (psycopg2).

トランザクション境界:
- バッチ全体で 1 トランザクション (最後に COMMIT)
- 行ごとに SAVEPOINT。行単位の DB エラーはその行だけ巻き戻して skipped 扱い
- 接続断 (OperationalError / InterfaceError) と SQL 不備 (ProgrammingError) はバッチ全体を ROLLBACK して CommitError

Natural-key uniqueness is enforced by a unique index on ``lower(btrim(name))``
and reconciled with ``INSERT ... ON CONFLICT`` so that concurrent sessions
importing the same name resolve at the database rather than in Python.
"""

__all__ = [
    "PostgresCatalogStore",
    "resolve_dsn",
]

logger = logging.getLogger(__name__)

_IDENT_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

_SAVEPOINT = "ingredient_row"


def resolve_dsn(db_cfg: DatabaseConfig) -> str:
    """Build the connection string.

    優先順位:
        1. DATABASE_URL / PGDSN (DSN 全体)
        2. config の database.dsn
        3. 個別 PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE (不足分は config -> 既定値)
    """
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if dsn:
        return dsn
    host = os.getenv("PGHOST", db_cfg.host or "localhost")
    port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
    user = os.getenv("PGUSER", db_cfg.user or "postgres")
    password = os.getenv("PGPASSWORD", db_cfg.password or "")
    database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn


def _error_reason(e: psycopg2.Error) -> str:
    return (e.pgerror or str(e) or type(e).__name__).strip()


class PostgresCatalogStore:
    """CatalogStore backed by one PostgreSQL table.

    Parameters
    ----------
    dsn: libpq 接続文字列
    table: 対象テーブル名 (識別子として検証済みのもののみ許可)
    connect: 接続ファクトリ (既定 psycopg2.connect, テストで差し替え)
    create_schema: True ならテーブル/ユニークインデックスが無い場合に作成
    """

    def __init__(
        self,
        dsn: str,
        *,
        table: str = "ingredients",
        connect: Callable[[str], Any] | None = None,
        create_schema: bool = True,
    ) -> None:
        if not _IDENT_RE.match(table):
            raise ValueError(f"invalid table name: {table!r}")
        self.dsn = dsn
        self.table = table
        self._connect = connect or psycopg2.connect
        self.create_schema = create_schema

    @classmethod
    def from_config(cls, db_cfg: DatabaseConfig, **kwargs: Any) -> PostgresCatalogStore:
        return cls(resolve_dsn(db_cfg), table=db_cfg.table, **kwargs)

    def ensure_schema(self, cursor: Any) -> None:
        t = self.table
        cursor.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {t} (
                id BIGSERIAL PRIMARY KEY,
                name TEXT NOT NULL,
                quantity NUMERIC NOT NULL CHECK (quantity > 0),
                cost NUMERIC NOT NULL CHECK (cost > 0),
                unit TEXT NOT NULL CHECK (unit IN ('g', 'ml', 'un')),
                cost_per_unit NUMERIC NOT NULL,
                category TEXT,
                supplier TEXT,
                created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
                updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
            )
            """
        )
        cursor.execute(
            f"CREATE UNIQUE INDEX IF NOT EXISTS {t}_name_key ON {t} (lower(btrim(name)))"
        )

    def _insert_sql(self, on_duplicate: DuplicatePolicy) -> str:
        base = (
            f"INSERT INTO {self.table} "
            "(name, quantity, cost, unit, cost_per_unit, category, supplier) "
            "VALUES (%s, %s, %s, %s, %s, %s, %s) "
            "ON CONFLICT ((lower(btrim(name)))) "
        )
        if on_duplicate is DuplicatePolicy.SKIP:
            return base + "DO NOTHING RETURNING id"
        return base + (
            "DO UPDATE SET quantity = EXCLUDED.quantity, cost = EXCLUDED.cost, "
            "unit = EXCLUDED.unit, cost_per_unit = EXCLUDED.cost_per_unit, "
            "category = EXCLUDED.category, supplier = EXCLUDED.supplier, "
            "updated_at = now() "
            "RETURNING id, (xmax = 0) AS inserted"
        )

    @staticmethod
    def _params(record: ValidRecord) -> tuple[Any, ...]:
        return (
            record.name,
            record.quantity,
            record.cost,
            record.unit,
            record.cost_per_unit,
            record.category,
            record.supplier,
        )

    def _write_rows(
        self,
        cursor: Any,
        records: Sequence[ValidRecord],
        on_duplicate: DuplicatePolicy,
        builder: ReportBuilder,
    ) -> None:
        sql = self._insert_sql(on_duplicate)
        with ProgressTracker(len(records)) as progress:
            for record in records:
                cursor.execute(f"SAVEPOINT {_SAVEPOINT}")
                try:
                    cursor.execute(sql, self._params(record))
                    row = cursor.fetchone()
                except (psycopg2.OperationalError, psycopg2.InterfaceError, psycopg2.ProgrammingError):
                    # 接続断・SQL 自体の不備 (ON CONFLICT 対象のインデックス欠如など) はバッチ全体の失敗
                    raise
                except psycopg2.Error as e:
                    cursor.execute(f"ROLLBACK TO SAVEPOINT {_SAVEPOINT}")
                    reason = _error_reason(e)
                    logger.warning("row %d (%s) not written: %s", record.row_index, record.name, reason)
                    builder.add_skipped(record.name, reason, record.row_index)
                    progress.advance("skipped")
                    continue
                cursor.execute(f"RELEASE SAVEPOINT {_SAVEPOINT}")

                if row is None:
                    # DO NOTHING で衝突 -> 既存
                    builder.add_skipped(record.name, REASON_ALREADY_EXISTS, record.row_index)
                    progress.advance("skipped")
                elif on_duplicate is DuplicatePolicy.UPDATE and not row[1]:
                    builder.add_updated(record.name, row[0])
                    progress.advance("updated")
                else:
                    builder.add_created(record.name, row[0])
                    progress.advance("created")

    def bulk_create(
        self, records: Sequence[ValidRecord], on_duplicate: DuplicatePolicy | str
    ) -> ImportReport:
        # "skip" / "update" の素の文字列も受け付ける
        on_duplicate = DuplicatePolicy(on_duplicate)
        try:
            conn = self._connect(self.dsn)
        except psycopg2.Error as e:
            raise CommitError(f"cannot connect to database: {e}") from e

        cursor = None
        builder = ReportBuilder()
        try:
            conn.autocommit = False
            cursor = conn.cursor()
            if self.create_schema:
                self.ensure_schema(cursor)
            self._write_rows(cursor, records, on_duplicate, builder)
            conn.commit()
        except psycopg2.Error as e:
            try:
                conn.rollback()
            except psycopg2.Error:  # pragma: no cover - connection already gone
                logger.debug("rollback failed after commit error", exc_info=True)
            raise CommitError(f"bulk commit failed: {_error_reason(e)}") from e
        finally:
            if cursor is not None:
                cursor.close()
            conn.close()

        report = builder.build()
        logger.debug(
            "committed %d records to %s (created=%d updated=%d skipped=%d)",
            len(records),
            self.table,
            report.created_count,
            report.updated_count,
            report.skipped_count,
        )
        return report
