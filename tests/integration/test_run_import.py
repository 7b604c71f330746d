from __future__ import annotations

from pathlib import Path

import pytest

from ingredient_import.config.loader import ImportConfig, LimitsConfig
from ingredient_import.csvfile.reader import RowLimitExceeded
from ingredient_import.db.catalog_store import CommitError, MemoryCatalogStore, RowWriteError
from ingredient_import.logging.error_log import ErrorLogBuffer
from ingredient_import.models.fields import HeaderClaimPolicy, TargetField
from ingredient_import.models.import_report import DuplicatePolicy
from ingredient_import.services.column_mapper import MissingRequiredMapping
from ingredient_import.services.orchestrator import run_import
from ingredient_import.services.template import render_template

"""End-to-end pipeline runs against the in-memory catalog."""

CSV = (
    "Nome,Qtd,Preço,Unidade,Categoria\n"
    "Farinha de Trigo,1000,5.50,g,Farinha\n"
    "Ovos,12,8.00,un,\n"
    "Leite,1000,4.50,ml,Laticínios\n"
    "Mel,500,\"15,90\",g,\n"
    "Sal,1000,2,KG,\n"
).encode("utf-8")


def test_full_run_creates_valid_rows_and_logs_invalid(tmp_path: Path):
    store = MemoryCatalogStore()
    log = ErrorLogBuffer(tmp_path)
    outcome = run_import(CSV, "ing.csv", store, error_log=log)
    assert outcome.total_rows == 5
    assert outcome.valid_count == 3
    assert [r.row_index for r in outcome.invalid_rows] == [4, 5]
    assert outcome.report is not None
    assert outcome.report.to_dict()["report"] == {"total": 3, "created": 3, "updated": 0, "skipped": 0}
    assert store.get("ovos").category is None
    assert store.get("leite").category == "Laticínios"
    logged = log.file_path.read_text(encoding="utf-8")
    assert logged.count("ROW_VALIDATION_ERROR") == 2


def test_second_run_skip_then_update(tmp_path: Path):
    store = MemoryCatalogStore()
    run_import(CSV, "ing.csv", store, error_log=ErrorLogBuffer(tmp_path))

    again = run_import(CSV, "ing.csv", store, error_log=ErrorLogBuffer(tmp_path))
    assert again.report.skipped_count == 3
    assert again.report.failed == ()

    changed = CSV.replace(b"Ovos,12,8.00", b"Ovos,30,21.00")
    updated = run_import(
        changed, "ing.csv", store, policy=DuplicatePolicy.UPDATE, error_log=ErrorLogBuffer(tmp_path)
    )
    assert updated.report.updated_count == 3
    assert store.get("Ovos").quantity == 30
    assert len(store) == 3


def test_config_policy_used_when_no_override(tmp_path: Path):
    store = MemoryCatalogStore()
    store.add("Ovos", 1, 1, "un")
    cfg = ImportConfig(on_duplicate=DuplicatePolicy.UPDATE)
    outcome = run_import(CSV, "ing.csv", store, config=cfg, error_log=ErrorLogBuffer(tmp_path))
    assert [e.name for e in outcome.report.updated] == ["Ovos"]


def test_overrides_applied_before_preview(tmp_path: Path):
    data = b"descricao,qtd,custo,un,tipo\nOvos,12,8,un,Frescos\n"
    with pytest.raises(MissingRequiredMapping):
        run_import(data, "x.csv", MemoryCatalogStore(), error_log=ErrorLogBuffer(tmp_path))
    outcome = run_import(
        data,
        "x.csv",
        MemoryCatalogStore(),
        overrides={TargetField.NAME: "descricao", TargetField.CATEGORY: None},
        error_log=ErrorLogBuffer(tmp_path),
    )
    assert outcome.mapping.name == "descricao"
    assert outcome.mapping.category is None
    assert outcome.valid_count == 1


def test_extra_aliases_and_reserve_policy(tmp_path: Path):
    data = b"descricao,qtd,custo,tipo\nOvos,12,8,un\n"
    cfg = ImportConfig(
        header_policy=HeaderClaimPolicy.RESERVE,
        extra_aliases={"name": ["descricao"], "unit": ["tipo"]},
    )
    outcome = run_import(data, "x.csv", MemoryCatalogStore(), config=cfg, error_log=ErrorLogBuffer(tmp_path))
    assert outcome.mapping.name == "descricao"
    assert outcome.mapping.unit == "tipo"
    assert outcome.mapping.category is None
    assert outcome.report.created_count == 1


def test_dry_run_and_no_valid_rows_do_not_commit(tmp_path: Path):
    store = MemoryCatalogStore()
    dry = run_import(CSV, "ing.csv", store, dry_run=True, error_log=ErrorLogBuffer(tmp_path))
    assert dry.report is None and not dry.committed
    none_valid = run_import(
        b"nome,qtd,custo,un\nOvos,0,8,un\n", "x.csv", store, error_log=ErrorLogBuffer(tmp_path)
    )
    assert none_valid.report is None
    assert store.commits == 0


def test_limits_from_config(tmp_path: Path):
    cfg = ImportConfig(limits=LimitsConfig(max_rows=4))
    log = ErrorLogBuffer(tmp_path)
    with pytest.raises(RowLimitExceeded):
        run_import(CSV, "ing.csv", MemoryCatalogStore(), config=cfg, error_log=log)
    assert "ROW_LIMIT_EXCEEDED" in log.file_path.read_text(encoding="utf-8")


def test_commit_error_logged_and_raised(tmp_path: Path):
    store = MemoryCatalogStore()
    store.available = False
    log = ErrorLogBuffer(tmp_path)
    with pytest.raises(CommitError):
        run_import(CSV, "ing.csv", store, error_log=log)
    text = log.file_path.read_text(encoding="utf-8")
    assert "COMMIT_ERROR" in text
    assert text.count("ROW_VALIDATION_ERROR") == 2


def test_row_write_failures_logged(tmp_path: Path):
    class Flaky(MemoryCatalogStore):
        def _write(self, record, existing):
            if record.name == "Leite":
                raise RowWriteError("disk full")
            return super()._write(record, existing)

    log = ErrorLogBuffer(tmp_path)
    outcome = run_import(CSV, "ing.csv", Flaky(), error_log=log)
    assert outcome.report.created_count == 2
    lines = [line for line in log.file_path.read_text(encoding="utf-8").splitlines() if "ROW_WRITE_ERROR" in line]
    assert len(lines) == 1
    assert '"row": 3' in lines[0] and "Leite: disk full" in lines[0]


def test_template_imports_cleanly(tmp_path: Path):
    store = MemoryCatalogStore()
    outcome = run_import(render_template(), "template-ingredientes.csv", store, error_log=ErrorLogBuffer(tmp_path))
    assert outcome.report.created_count == 4
    assert not list(tmp_path.glob("errors-*.log"))


def test_ragged_row_is_invalid_and_other_rows_import(tmp_path: Path):
    data = (
        b"nome,quantidade,custo,unidade\n"
        b"Manteiga,500,15.90,g\n"
        b"Farinha, tipo 1,1000,5.5,g\n"
        b"Leite,1000,4.5,ml\n"
    )
    store = MemoryCatalogStore()
    log = ErrorLogBuffer(tmp_path)
    outcome = run_import(data, "ing.csv", store, error_log=log)
    assert outcome.total_rows == 3
    assert [r.row_index for r in outcome.invalid_rows] == [2]
    assert outcome.report.created_count == 2
    assert store.get("manteiga") is not None and store.get("leite") is not None
    assert "more field(s) than the header" in log.file_path.read_text(encoding="utf-8")
