# Shared pytest fixtures
from __future__ import annotations

import tempfile
from pathlib import Path

import pytest

from ingredient_import.logging.init import reset_logging


@pytest.fixture(autouse=True)
def _fresh_logging():
    # StreamHandler は生成時の sys.stdout を掴むので、capsys ごとに作り直す
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        monkeypatch.setenv("DISABLE_DB_CONNECT", "1")
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """limits:
  max_file_bytes: 5242880
  max_rows: 500
on_duplicate: skip
header_policy: independent
encoding: utf-8
delimiter: ","
database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: appdb
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def sample_csv() -> bytes:
    return (
        "nome,quantidade,custo,unidade,categoria,fornecedor\n"
        "Farinha de Trigo,1000,5.50,g,Farinha,Padaria Silva\n"
        "Ovos,12,8.00,un,Ovos,Granja Santa Maria\n"
        "Leite Integral,1000,4.50,ml,Laticínios,Cooperativa\n"
    ).encode("utf-8")


@pytest.fixture()
def write_csv(temp_workdir: Path):
    def _write(name: str, content: str | bytes) -> Path:
        path = temp_workdir / "data" / name
        if isinstance(content, str):
            content = content.encode("utf-8")
        path.write_bytes(content)
        return path
    return _write
