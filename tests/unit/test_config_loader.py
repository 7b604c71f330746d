from __future__ import annotations

from pathlib import Path

import pytest

from ingredient_import.config.loader import ConfigError, default_config, load_config
from ingredient_import.models.fields import HeaderClaimPolicy
from ingredient_import.models.import_report import DuplicatePolicy


def test_load_config_success(write_config: Path):
    cfg = load_config(write_config)
    assert cfg.limits.max_file_bytes == 5 * 1024 * 1024
    assert cfg.limits.max_rows == 500
    assert cfg.on_duplicate is DuplicatePolicy.SKIP
    assert cfg.header_policy is HeaderClaimPolicy.INDEPENDENT
    assert cfg.database.host == "localhost"
    assert cfg.database.port == 5432
    assert cfg.database.table == "ingredients"


def test_defaults_for_optional_keys(write_config: Path):
    write_config.write_text(
        "limits: {max_file_bytes: 1000, max_rows: 10}\ndatabase: {}\n", encoding="utf-8"
    )
    cfg = load_config(write_config)
    assert cfg.limits.max_rows == 10
    assert cfg.encoding == "utf-8"
    assert cfg.delimiter == ","
    assert cfg.extra_aliases == {}
    assert cfg.database.dsn is None


def test_update_policy_and_reserve(write_config: Path):
    text = write_config.read_text(encoding="utf-8")
    text = text.replace("on_duplicate: skip", "on_duplicate: update")
    text = text.replace("header_policy: independent", "header_policy: reserve")
    text += "extra_aliases:\n  name: [descricao]\n"
    write_config.write_text(text, encoding="utf-8")
    cfg = load_config(write_config)
    assert cfg.on_duplicate is DuplicatePolicy.UPDATE
    assert cfg.header_policy is HeaderClaimPolicy.RESERVE
    assert cfg.extra_aliases == {"name": ["descricao"]}


def test_load_config_missing_file(temp_workdir: Path):
    with pytest.raises(ConfigError):
        load_config(temp_workdir / "config" / "not_exists.yml")


def test_load_config_missing_required(write_config: Path):
    text = write_config.read_text(encoding="utf-8").replace(
        "limits:\n  max_file_bytes: 5242880\n  max_rows: 500\n", ""
    )
    write_config.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_config(write_config)
    assert "config validation failed" in str(e.value) and "required property" in str(e.value)


@pytest.mark.parametrize("limit", ["max_rows: 501", "max_file_bytes: 5242881", "max_rows: 0"])
def test_limits_cannot_exceed_hard_maxima(write_config: Path, limit: str):
    key = limit.split(":")[0]
    lines = [
        f"  {limit}" if line.strip().startswith(key + ":") else line
        for line in write_config.read_text(encoding="utf-8").splitlines()
    ]
    write_config.write_text("\n".join(lines) + "\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="config validation failed"):
        load_config(write_config)


def test_invalid_policy_value(write_config: Path):
    text = write_config.read_text(encoding="utf-8").replace("on_duplicate: skip", "on_duplicate: merge")
    write_config.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError, match="config validation failed"):
        load_config(write_config)


def test_unknown_alias_field_rejected(write_config: Path):
    write_config.write_text(
        write_config.read_text(encoding="utf-8") + "extra_aliases:\n  weight: [peso]\n", encoding="utf-8"
    )
    with pytest.raises(ConfigError):
        load_config(write_config)


def test_load_config_extra_field(write_config: Path):
    text = write_config.read_text(encoding="utf-8") + "\nextra_field: not_allowed\n"
    write_config.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_config(write_config)
    assert "config validation failed" in str(e.value)


def test_invalid_yaml(write_config: Path):
    write_config.write_text("limits: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="invalid yaml"):
        load_config(write_config)


def test_non_mapping_yaml(write_config: Path):
    write_config.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(write_config)


def test_default_config_matches_hard_limits():
    cfg = default_config()
    assert cfg.limits.max_file_bytes == 5 * 1024 * 1024
    assert cfg.limits.max_rows == 500
    assert cfg.on_duplicate is DuplicatePolicy.SKIP
