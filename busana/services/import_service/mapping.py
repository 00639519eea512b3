"""Column resolution: spreadsheet headers to canonical fields."""

import re
from typing import Any, Mapping

from busana.models.import_batch import ImportType

from .constants import BLANK_MARKERS, HEADER_ALIASES, REQUIRED_FIELDS, CanonicalField

HeaderMap = dict[CanonicalField, list[str]]

_SEPARATORS = re.compile(r"[\s_\-]+")


def normalize_header(header: str) -> str:
    """Lowercase a header and collapse underscores, dashes and whitespace to single spaces."""
    return _SEPARATORS.sub(" ", header).strip().lower()


def resolve_headers(headers: list[str], import_type: ImportType) -> HeaderMap:
    """Work out which headers feed each canonical field of an import type.

    For every field, in the field order of the alias table, exact header
    matches come first (in alias order), followed by headers that only
    match after normalization. A header claimed by an earlier field is not
    offered to later ones. The result depends only on the set of headers,
    not on their order in the sheet.

    Args:
        headers: Header row of the spreadsheet.
        import_type: Which alias table to use.

    Returns:
        Dict of canonical field -> candidate headers, best first. Fields
        with no matching header are omitted.
    """
    aliases = HEADER_ALIASES[import_type]
    available = sorted(set(headers))
    claimed: set[str] = set()
    header_map: HeaderMap = {}

    for field, field_aliases in aliases.items():
        matches: list[str] = []

        for alias in field_aliases:
            if alias in available and alias not in claimed and alias not in matches:
                matches.append(alias)

        for alias in field_aliases:
            wanted = normalize_header(alias)
            for header in available:
                if header in claimed or header in matches:
                    continue
                if normalize_header(header) == wanted:
                    matches.append(header)

        if matches:
            header_map[field] = matches
            claimed.update(matches)

    return header_map


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip().lower() in BLANK_MARKERS
    return False


def resolve_row(row: Mapping[str, Any], header_map: HeaderMap) -> dict[CanonicalField, Any]:
    """Pick the value of each canonical field from a raw row.

    The first non-blank cell among a field's candidate headers wins; fields
    whose cells are all blank are left out.
    """
    resolved: dict[CanonicalField, Any] = {}
    for field, candidates in header_map.items():
        for header in candidates:
            value = row.get(header)
            if not _is_blank(value):
                resolved[field] = value.strip() if isinstance(value, str) else value
                break
    return resolved


def missing_required_columns(header_map: HeaderMap, import_type: ImportType) -> list[CanonicalField]:
    """Required fields of the import type that no header resolved to."""
    return [field for field in REQUIRED_FIELDS[import_type] if field not in header_map]


def suggest_column_mapping(headers: list[str], import_type: ImportType) -> dict[str, str]:
    """Auto-suggest column mapping based on header names.

    Returns:
        Dict mapping header name -> canonical field name or "custom:<header>".
    """
    header_map = resolve_headers(headers, import_type)
    by_header = {header: field.value for field, matched in header_map.items() for header in matched}
    return {header: by_header.get(header, f"custom:{header}") for header in headers}
