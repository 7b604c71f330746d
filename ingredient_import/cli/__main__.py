from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from ..config.loader import DEFAULT_CONFIG_PATH, ConfigError, ImportConfig, default_config, load_config
from ..csvfile.reader import FileError
from ..db.catalog_store import CatalogStore, CommitError, MemoryCatalogStore
from ..db.postgres_store import PostgresCatalogStore
from ..logging.error_log import ErrorLogBuffer
from ..logging.init import log_summary, set_debug, setup_logging
from ..models.fields import TargetField
from ..models.import_report import REASON_ALREADY_EXISTS, DuplicatePolicy, ImportReport
from ..services.column_mapper import MappingError
from ..services.orchestrator import ImportOutcome, run_import
from ..services.summary import render_summary_line
from ..services.template import write_template

"""CLI entrypoint.

Flow: load .env -> load config -> read CSV -> auto-map (+ --map overrides)
-> validate -> commit to the catalog store -> SUMMARY line.

Exit codes:
    0  every valid row was created, updated or skipped as an existing name
    2  partial: some rows were invalid or failed to write
    1  fatal: config, file, mapping or commit error, or no valid row at all
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1

SKIPPED_DETAIL_LIMIT = 5


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env with python-dotenv.

    override=True: .env の値で既存の環境変数を上書きし、DB 接続情報を最優先にする
    """
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_mapping_override(value: str) -> tuple[TargetField, str | None]:
    field_name, sep, header = value.partition("=")
    if not sep:
        raise argparse.ArgumentTypeError(f"expected FIELD=HEADER, got {value!r}")
    try:
        field = TargetField(field_name.strip().lower())
    except ValueError:
        choices = ", ".join(f.value for f in TargetField)
        raise argparse.ArgumentTypeError(f"unknown field {field_name!r} (choose from {choices})") from None
    # "category=" -> 割り当て解除
    return field, (header if header != "" else None)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="ingredient-import",
        description="Validate a CSV of ingredients and import it into the catalog",
    )
    p.add_argument("file", nargs="?", type=Path, help="CSV file to import")
    p.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help=f"YAML config (default: {DEFAULT_CONFIG_PATH}; built-in defaults if absent)",
    )
    p.add_argument(
        "--on-duplicate",
        choices=[d.value for d in DuplicatePolicy],
        help="What to do when an ingredient name already exists (overrides config)",
    )
    p.add_argument(
        "--map",
        dest="overrides",
        action="append",
        type=_parse_mapping_override,
        default=[],
        metavar="FIELD=HEADER",
        help="Map a field to a header manually (repeatable; empty HEADER unassigns)",
    )
    p.add_argument("--dry-run", action="store_true", help="Validate only; do not commit")
    p.add_argument("--template", type=Path, metavar="OUT", help="Write the CSV template to OUT and exit")
    p.add_argument("--logs-dir", type=Path, default=Path("logs"), help="Directory for the JSON Lines error log")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    args = p.parse_args(argv)
    if args.template is None and args.file is None:
        p.error("a CSV file is required (or use --template OUT)")
    return args


def _load_config(path: Path) -> ImportConfig:
    # 既定パスに設定ファイルが無い場合のみ組み込み既定値を使う
    if path == DEFAULT_CONFIG_PATH and not path.exists():
        return default_config()
    return load_config(path)


def _build_store(cfg: ImportConfig, dry_run: bool) -> tuple[CatalogStore, str]:
    # テスト等で DB 接続を完全に無効化したい場合 DISABLE_DB_CONNECT=1
    if dry_run or os.getenv("DISABLE_DB_CONNECT") == "1":
        return MemoryCatalogStore(), "memory"
    return PostgresCatalogStore.from_config(cfg.database), "postgres"


def _log_skipped(logger: logging.Logger, report: ImportReport) -> None:
    """List the first SKIPPED_DETAIL_LIMIT skipped records, then a count of the rest."""
    shown = report.skipped[:SKIPPED_DETAIL_LIMIT]
    for s in shown:
        if s.reason == REASON_ALREADY_EXISTS:
            logger.info(f"skipped: {s.name} ({s.reason})")
        else:
            logger.warning(f"not written: {s.name}: {s.reason}")
    remaining = report.skipped_count - len(shown)
    if remaining > 0:
        logger.info(f"... and {remaining} more skipped")


def _exit_code(outcome: ImportOutcome) -> int:
    if outcome.valid_count == 0:
        return EXIT_FATAL
    failed_writes = len(outcome.report.failed) if outcome.report else 0
    if outcome.invalid_rows or failed_writes:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # None のときのみ sys.argv を読む (テストで main([]) を呼んだ場合に pytest の引数が混入しないように)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)

    if args.debug:
        set_debug(True)
        logger.debug("debug mode enabled")

    if args.template is not None:
        out = write_template(args.template)
        logger.info(f"template written: {out}")
        return EXIT_SUCCESS_ALL

    _load_env_file(Path(".env"), override=True)
    try:
        cfg = _load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    path: Path = args.file
    try:
        data = path.read_bytes()
    except OSError as e:
        logger.error(f"file: cannot read {path}: {e.strerror}")
        return EXIT_FATAL

    store, mode = _build_store(cfg, args.dry_run)
    policy = DuplicatePolicy(args.on_duplicate) if args.on_duplicate else None
    overrides = dict(args.overrides)
    error_log = ErrorLogBuffer(args.logs_dir)

    logger.info(f"Importing {path.name} (store={mode})")
    try:
        outcome = run_import(
            data,
            path.name,
            store,
            config=cfg,
            policy=policy,
            overrides=overrides,
            dry_run=args.dry_run,
            error_log=error_log,
        )
    except FileError as e:
        logger.error(f"file: {e}")
        return EXIT_FATAL
    except MappingError as e:
        logger.error(f"mapping: {e}")
        return EXIT_FATAL
    except CommitError as e:
        logger.error(f"commit: {e}")
        return EXIT_FATAL

    for row in outcome.invalid_rows:
        logger.warning(f"row {row.row_index}: {'; '.join(row.errors)}")
    if outcome.report is not None:
        _log_skipped(logger, outcome.report)

    log_summary(render_summary_line(
        outcome.total_rows,
        len(outcome.invalid_rows),
        outcome.report,
        outcome.elapsed_seconds,
    )[len("SUMMARY "):])

    if outcome.valid_count == 0:
        logger.error(f"no valid rows in {path.name}")
    return _exit_code(outcome)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
