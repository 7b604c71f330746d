from __future__ import annotations

from ingredient_import.models.import_report import ImportReport, ReportEntry, SkippedEntry
from ingredient_import.services.summary import render_summary_line


def test_summary_without_report():
    assert render_summary_line(3, 1, None) == (
        "SUMMARY rows=3 valid=2 invalid=1 created=0 updated=0 skipped=0 failed=0 elapsed_sec=0"
    )


def test_summary_with_report():
    report = ImportReport(
        created=(ReportEntry("Ovos", "1"), ReportEntry("Leite", "2")),
        updated=(ReportEntry("Sal", "3"),),
        skipped=(SkippedEntry("Farinha", "already exists"), SkippedEntry("Mel", "check violation")),
    )
    line = render_summary_line(6, 1, report, elapsed_seconds=1.5)
    assert line == (
        "SUMMARY rows=6 valid=5 invalid=1 created=2 updated=1 skipped=2 failed=1 elapsed_sec=1.5"
    )


def test_elapsed_formatting():
    assert render_summary_line(1, 0, None, 2.0).endswith("elapsed_sec=2")
    assert render_summary_line(1, 0, None, 0.001234).endswith("elapsed_sec=0.001234")
    assert render_summary_line(1, 0, None, 0.123456).endswith("elapsed_sec=0.123")
