from __future__ import annotations

from ingredient_import.models.import_report import REASON_ALREADY_EXISTS, ReportBuilder


def test_builder_and_wire_shape():
    b = ReportBuilder()
    b.add_created("Ovos", 10)
    b.add_updated("Sal", "abc")
    b.add_skipped("Farinha", REASON_ALREADY_EXISTS, 1)
    report = b.build()
    assert report.to_dict() == {
        "report": {"total": 3, "created": 1, "updated": 1, "skipped": 1},
        "details": {
            "created": [{"name": "Ovos", "id": "10"}],
            "updated": [{"name": "Sal", "id": "abc"}],
            "skipped": [{"name": "Farinha", "reason": "already exists"}],
        },
    }
    assert report.total == report.created_count + report.updated_count + report.skipped_count
    assert report.failed == ()


def test_built_report_is_independent_of_builder():
    b = ReportBuilder()
    b.add_created("Ovos", 1)
    report = b.build()
    b.add_created("Sal", 2)
    assert report.created_count == 1
