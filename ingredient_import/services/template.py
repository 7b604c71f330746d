from __future__ import annotations

from pathlib import Path

import pandas as pd

"""Downloadable CSV template with the canonical headers and sample rows.

The template is guaranteed to round-trip: re-imported as-is it auto-maps every
required field and produces no validation errors.
"""

__all__ = [
    "TEMPLATE_FILE_NAME",
    "TEMPLATE_HEADERS",
    "TEMPLATE_ROWS",
    "render_template",
    "write_template",
]

TEMPLATE_FILE_NAME = "template-ingredientes.csv"

TEMPLATE_HEADERS: tuple[str, ...] = (
    "nome",
    "quantidade",
    "custo",
    "unidade",
    "categoria",
    "fornecedor",
)

TEMPLATE_ROWS: tuple[tuple[str, ...], ...] = (
    ("Farinha de Trigo", "1000", "5.50", "g", "Farinha", "Padaria Silva"),
    ("Açúcar Cristal", "1000", "3.20", "g", "Açúcar", "Mercado Local"),
    ("Ovos", "12", "8.00", "un", "Ovos", "Granja Santa Maria"),
    ("Leite Integral", "1000", "4.50", "ml", "Laticínios", "Cooperativa"),
)


def render_template() -> bytes:
    """Template file contents (UTF-8, LF line endings)."""
    df = pd.DataFrame(list(TEMPLATE_ROWS), columns=list(TEMPLATE_HEADERS))
    return df.to_csv(index=False, lineterminator="\n").encode("utf-8")


def write_template(path: Path) -> Path:
    """Write the template to ``path`` (a directory gets the default file name)."""
    if path.is_dir():
        path = path / TEMPLATE_FILE_NAME
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(render_template())
    return path
