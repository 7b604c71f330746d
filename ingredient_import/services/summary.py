from __future__ import annotations

from ..models.import_report import ImportReport

"""SUMMARY line rendering.

Format (one line, fixed key order)::

    SUMMARY rows={rows} valid={valid} invalid={invalid} created={created}
    updated={updated} skipped={skipped} failed={failed} elapsed_sec={elapsed}

``skipped`` counts every record the store did not write (existing names
under the skip policy plus per-row failures); ``failed`` is the per-row
failure subset. With no report (dry run, nothing importable) the commit
counters are all 0.
"""

__all__ = [
    "render_summary_line",
]


def _format_elapsed(seconds: float) -> str:
    if seconds <= 0:
        return "0"
    if seconds == int(seconds):
        return str(int(seconds))
    if seconds < 0.01:
        # 指数表記を避ける
        return f"{seconds:.6f}".rstrip("0").rstrip(".")
    return f"{seconds:.3f}".rstrip("0").rstrip(".")


def render_summary_line(
    total_rows: int,
    invalid_rows: int,
    report: ImportReport | None,
    elapsed_seconds: float = 0.0,
) -> str:
    """Render the SUMMARY line.

    Examples:
        >>> render_summary_line(3, 1, None)
        'SUMMARY rows=3 valid=2 invalid=1 created=0 updated=0 skipped=0 failed=0 elapsed_sec=0'
    """
    created = report.created_count if report else 0
    updated = report.updated_count if report else 0
    skipped = report.skipped_count if report else 0
    failed = len(report.failed) if report else 0
    return (
        f"SUMMARY rows={total_rows} "
        f"valid={total_rows - invalid_rows} "
        f"invalid={invalid_rows} "
        f"created={created} "
        f"updated={updated} "
        f"skipped={skipped} "
        f"failed={failed} "
        f"elapsed_sec={_format_elapsed(elapsed_seconds)}"
    )
