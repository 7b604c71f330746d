from __future__ import annotations

import re
from pathlib import Path

from ingredient_import.cli.__main__ import main as cli_main

"""SUMMARY line contract (single line, fixed key order)."""

SUMMARY_RE = re.compile(
    r"^SUMMARY rows=(\d+) valid=(\d+) invalid=(\d+) created=(\d+) updated=(\d+) "
    r"skipped=(\d+) failed=(\d+) elapsed_sec=(\d+(?:\.\d+)?)$"
)


def _summary(out: str) -> re.Match[str]:
    lines = [line for line in out.splitlines() if line.startswith("SUMMARY")]
    assert len(lines) == 1
    m = SUMMARY_RE.match(lines[0])
    assert m, lines[0]
    return m


def test_summary_counts(temp_workdir: Path, write_csv, capsys):
    path = write_csv("ing.csv", "nome,qtd,custo,un\nOvos,12,8,un\nOvos,12,9,un\nX,1,1,g\n")
    cli_main([str(path)])
    m = _summary(capsys.readouterr().out)
    rows, valid, invalid, created, updated, skipped, failed = map(int, m.groups()[:7])
    assert (rows, valid, invalid) == (3, 2, 1)
    assert (created, updated, skipped, failed) == (1, 0, 1, 0)
    assert created + updated + skipped == valid


def test_summary_emitted_on_dry_run(temp_workdir: Path, write_csv, capsys):
    path = write_csv("ing.csv", "nome,qtd,custo,un\nOvos,12,8,un\n")
    cli_main([str(path), "--dry-run"])
    m = _summary(capsys.readouterr().out)
    assert m.group(1) == "1" and m.group(4) == "0"
