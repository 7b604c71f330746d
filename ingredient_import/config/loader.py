from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..csvfile.reader import DEFAULT_MAX_BYTES, DEFAULT_MAX_ROWS
from ..models.fields import HeaderClaimPolicy
from ..models.import_report import DuplicatePolicy

"""Config loader.

Responsibilities:
- Load YAML (default ``config/import.yml``)
- Validate against the bundled ``config_schema.json``
- Apply defaults for optional keys (on_duplicate=skip, header_policy=independent,
  encoding=utf-8, delimiter=",")

Limits may be lowered but never raised above 5MB / 500 rows; the schema
enforces the maxima.
"""

__all__ = [
    "SCHEMA_PATH",
    "DEFAULT_CONFIG_PATH",
    "ConfigError",
    "DatabaseConfig",
    "LimitsConfig",
    "ImportConfig",
    "default_config",
    "load_config",
]

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/import.yml")


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class DatabaseConfig:
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None
    table: str = "ingredients"


@dataclass(frozen=True)
class LimitsConfig:
    max_file_bytes: int = DEFAULT_MAX_BYTES
    max_rows: int = DEFAULT_MAX_ROWS


@dataclass(frozen=True)
class ImportConfig:
    limits: LimitsConfig = field(default_factory=LimitsConfig)
    on_duplicate: DuplicatePolicy = DuplicatePolicy.SKIP
    header_policy: HeaderClaimPolicy = HeaderClaimPolicy.INDEPENDENT
    encoding: str = "utf-8"
    delimiter: str = ","
    extra_aliases: dict[str, list[str]] = field(default_factory=dict)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)


def default_config() -> ImportConfig:
    """Configuration used when no config file is present (hard limits, skip policy)."""
    return ImportConfig()


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: If the schema file is missing or not valid JSON, or if the
            config data violates the schema (missing keys, wrong types,
            unknown keys, limits above the hard maxima)
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def load_config(path: Path) -> ImportConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config validation failed: top level must be a mapping, got {type(data).__name__}")

    _validate_config_schema(data)

    limits_raw = data["limits"]
    db_raw = data.get("database") or {}
    db = DatabaseConfig(
        host=db_raw.get("host"),
        port=db_raw.get("port"),
        user=db_raw.get("user"),
        password=db_raw.get("password"),
        database=db_raw.get("database"),
        dsn=db_raw.get("dsn"),
        table=db_raw.get("table", "ingredients"),
    )
    return ImportConfig(
        limits=LimitsConfig(
            max_file_bytes=limits_raw["max_file_bytes"],
            max_rows=limits_raw["max_rows"],
        ),
        on_duplicate=DuplicatePolicy(data.get("on_duplicate", "skip")),
        header_policy=HeaderClaimPolicy(data.get("header_policy", "independent")),
        encoding=data.get("encoding", "utf-8"),
        delimiter=data.get("delimiter", ","),
        extra_aliases={k: list(v) for k, v in (data.get("extra_aliases") or {}).items()},
        database=db,
    )
