"""Source row normalisation: identifier resolution, join keys and value parsing.

Every source is reduced to a list of ``dict`` rows before reconciliation. The
same candidate-list lookups are used for every source so that the indexed side
(localisations, effectifs) and the looked-up side (IPS rows) agree on keys.
"""

from __future__ import annotations

import math
import re
from typing import Any, Iterable, Mapping

from ipsmap.common.errors import SourceShapeError

_ROW_WRAPPER_KEYS = ("rows", "results", "records", "data")
# Plain ASCII decimal, with an optional decimal comma and exponent.
_NUMBER_RE = re.compile(r"[+-]?(?:\d+(?:[.,]\d*)?|[.,]\d+)(?:[eE][+-]?\d+)?", re.ASCII)


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, float):
        return math.isnan(value)
    return False


def first_present(row: Mapping[str, Any], candidates: Iterable[str]) -> Any:
    """Return the value of the first candidate field that is neither null nor empty."""
    for field in candidates:
        value = row.get(field)
        if not _is_blank(value):
            return value
    return None


def resolve_identifier(row: Mapping[str, Any], candidates: Iterable[str]) -> str:
    value = first_present(row, candidates)
    if value is None:
        return ""
    return str(value)


def normalize_key(identifier: Any) -> str:
    if identifier is None:
        return ""
    return str(identifier).strip().upper()


def parse_float(value: Any) -> float | None:
    if _is_blank(value) or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not _NUMBER_RE.fullmatch(value):
            return None
        # French exports sometimes carry a decimal comma.
        value = value.replace(",", ".")
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(parsed):
        return None
    return parsed


def parse_int(value: Any) -> int | None:
    parsed = parse_float(value)
    if parsed is None or not parsed.is_integer():
        return None
    return int(parsed)


def text_value(row: Mapping[str, Any], candidates: Iterable[str], default: str = "") -> str:
    value = first_present(row, candidates)
    if value is None:
        return default
    return str(value).strip()


def parse_csv_text(text: str) -> list[dict[str, str]]:
    """Parse simple comma separated text into row mappings.

    The first line is the header. Quoted fields are not supported: a comma
    inside a value splits it.
    """
    lines = [line for line in text.splitlines() if line.strip()]
    if not lines:
        return []

    header = [name.strip() for name in lines[0].split(",")]
    rows: list[dict[str, str]] = []
    for line in lines[1:]:
        cells = [cell.strip() for cell in line.split(",")]
        row = {}
        for idx, name in enumerate(header):
            row[name] = cells[idx] if idx < len(cells) else ""
        rows.append(row)
    return rows


def coerce_rows(source: Any, name: str) -> list[dict[str, Any]]:
    """Turn one parsed source into a list of row mappings.

    Accepts a list of mappings, a mapping wrapping such a list, or CSV text.
    Raises ``SourceShapeError`` for anything else.
    """
    if isinstance(source, bytes):
        source = source.decode("utf-8-sig")
    if isinstance(source, str):
        return parse_csv_text(source)

    if isinstance(source, Mapping):
        for key in _ROW_WRAPPER_KEYS:
            if isinstance(source.get(key), list):
                source = source[key]
                break
        else:
            raise SourceShapeError(f"Source {name} is a mapping without a row list")

    if not isinstance(source, (list, tuple)):
        raise SourceShapeError(f"Source {name} must be a list of rows, got {type(source).__name__}")

    rows: list[dict[str, Any]] = []
    for idx, row in enumerate(source):
        if not isinstance(row, Mapping):
            raise SourceShapeError(f"Source {name} row {idx} is not a mapping")
        # Open-data portals sometimes nest the payload under "fields".
        if isinstance(row.get("fields"), Mapping):
            row = {**row["fields"], **{k: v for k, v in row.items() if k != "fields"}}
        rows.append(dict(row))
    return rows
