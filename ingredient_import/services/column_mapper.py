from __future__ import annotations

import logging
import unicodedata
from collections.abc import Mapping, Sequence

from ..models.column_mapping import ColumnMapping
from ..models.fields import HeaderClaimPolicy, TargetField

"""Column mapper: header auto-detection and manual overrides.

Auto-detection normalizes every header (NFC, trim, lowercase) and, for each
target field in enum order, picks the first header in file order whose
normalized form appears in the field's alias list. Fields with no match stay
unmapped; the operator assigns them by hand.

Headers are compared in NFC form so that "preço" typed with a combining
cedilla matches the precomposed alias.
"""

__all__ = [
    "MappingError",
    "MissingRequiredMapping",
    "UnknownHeaderError",
    "normalize_header",
    "auto_detect_mapping",
    "assign_header",
    "ensure_complete",
    "merge_aliases",
]

logger = logging.getLogger(__name__)


class MappingError(Exception):
    pass


class MissingRequiredMapping(MappingError):
    def __init__(self, fields: list[TargetField]) -> None:
        self.fields = fields
        names = ", ".join(f.value for f in fields)
        super().__init__(f"required fields not mapped: {names}")


class UnknownHeaderError(MappingError):
    def __init__(self, header: str) -> None:
        self.header = header
        super().__init__(f"header not present in file: {header!r}")


def normalize_header(header: str) -> str:
    return unicodedata.normalize("NFC", header).strip().lower()


def auto_detect_mapping(
    headers: Sequence[str],
    policy: HeaderClaimPolicy = HeaderClaimPolicy.INDEPENDENT,
    aliases: Mapping[TargetField, Sequence[str]] | None = None,
) -> ColumnMapping:
    """Propose a mapping from the header line.

    Args:
        headers: Header line in file order
        policy: INDEPENDENT lets one header serve several fields whose alias
            lists overlap; RESERVE hides a header from later fields once an
            earlier field has taken it
        aliases: Alias table to use instead of the built-in one (see
            :func:`merge_aliases`)
    """
    normalized = [(h, normalize_header(h)) for h in headers]
    claimed: set[str] = set()
    mapping = ColumnMapping()
    for field in TargetField:
        field_aliases = aliases[field] if aliases is not None else field.aliases
        for original, norm in normalized:
            if policy is HeaderClaimPolicy.RESERVE and original in claimed:
                continue
            if norm in field_aliases:
                mapping = mapping.with_field(field, original)
                claimed.add(original)
                break
    logger.debug("auto-detected mapping: %s", mapping.as_dict())
    return mapping


def assign_header(
    mapping: ColumnMapping,
    field: TargetField,
    header: str,
    headers: Sequence[str],
) -> ColumnMapping:
    """Operator override: map ``field`` to ``header``.

    Raises:
        UnknownHeaderError: ``header`` is not one of the file's headers
    """
    if header not in headers:
        raise UnknownHeaderError(header)
    return mapping.with_field(field, header)


def ensure_complete(mapping: ColumnMapping, headers: Sequence[str]) -> None:
    """Raise MissingRequiredMapping unless every required field maps to a present header."""
    missing = mapping.missing_required(headers)
    if missing:
        raise MissingRequiredMapping(missing)


def merge_aliases(extra: Mapping[str, Sequence[str]] | None) -> dict[TargetField, tuple[str, ...]]:
    """Built-in alias table extended with operator-supplied synonyms.

    Extra aliases are normalized like headers and appended after the built-in
    ones, so built-in matches keep their precedence.
    """
    table = {field: field.aliases for field in TargetField}
    for key, values in (extra or {}).items():
        field = TargetField(key)
        added = tuple(normalize_header(v) for v in values if normalize_header(v) not in table[field])
        table[field] = table[field] + added
    return table
