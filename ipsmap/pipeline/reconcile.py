"""Reconcile IPS, localisation and enrollment sources into canonical establishments."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Sequence

from ipsmap.common.constants import DEFAULT_FIELDS, DEFAULT_SECTOR
from ipsmap.common.models import IPS_SOURCE_BY_TYPE, CanonicalEstablishment, ComparisonIps, EstablishmentType
from ipsmap.pipeline.normalizer import (
    coerce_rows,
    first_present,
    normalize_key,
    parse_float,
    parse_int,
    resolve_identifier,
    text_value,
)

logger = logging.getLogger(__name__)

DROP_REASONS = (
    "missing_identifier",
    "no_localization",
    "missing_coordinates",
    "missing_ips",
    "invalid_ips",
)


@dataclass
class ReconcileResult:
    establishments: list[CanonicalEstablishment]
    rows_in: dict[str, int] = field(default_factory=dict)
    rows_out: dict[str, int] = field(default_factory=dict)
    dropped: dict[str, dict[str, int]] = field(default_factory=dict)
    enrollment_misses: int = 0
    localization_index_size: int = 0
    enrollment_index_size: int = 0


def build_index(rows: Iterable[Mapping[str, Any]], candidates: Sequence[str]) -> dict[str, Mapping[str, Any]]:
    """Index rows by normalised identifier. Later duplicates overwrite earlier ones."""
    index: dict[str, Mapping[str, Any]] = {}
    for row in rows:
        key = normalize_key(resolve_identifier(row, candidates))
        if not key:
            continue
        index[key] = row
    return index


def _comparison_ips(row: Mapping[str, Any], record_fields: dict) -> ComparisonIps | None:
    comparison = ComparisonIps(
        commune=parse_float(first_present(row, record_fields.get("ips_commune", []))),
        department=parse_float(first_present(row, record_fields.get("ips_department", []))),
        academy=parse_float(first_present(row, record_fields.get("ips_academy", []))),
        national=parse_float(first_present(row, record_fields.get("ips_national", []))),
    )
    return None if comparison.is_empty() else comparison


def _merge_row(
    row: Mapping[str, Any],
    establishment_type: EstablishmentType,
    fields: dict,
    loc_index: dict[str, Mapping[str, Any]],
    eff_index: dict[str, Mapping[str, Any]],
) -> tuple[CanonicalEstablishment | None, str | None, bool]:
    """Merge one raw IPS row.

    Returns ``(establishment, drop_reason, enrollment_found)``; exactly one of
    the first two is ``None``.
    """
    source_fields = fields[IPS_SOURCE_BY_TYPE[establishment_type]]
    loc_fields = fields["localisations"]
    eff_fields = fields["effectifs"]
    record_fields = fields.get("ips_record", {})

    key = normalize_key(resolve_identifier(row, source_fields["identifier"]))
    if not key:
        return None, "missing_identifier", False

    loc = loc_index.get(key)
    if loc is None:
        return None, "no_localization", False

    latitude = parse_float(first_present(loc, loc_fields["latitude"]))
    longitude = parse_float(first_present(loc, loc_fields["longitude"]))
    if latitude is None or longitude is None:
        return None, "missing_coordinates", False

    raw_ips = first_present(row, source_fields["ips"])
    if raw_ips is None:
        return None, "missing_ips", False
    ips = parse_float(raw_ips)
    if ips is None:
        return None, "invalid_ips", False

    eff = eff_index.get(key)
    student_count = class_count = None
    if eff is not None:
        student_count = parse_int(first_present(eff, eff_fields.get("students", [])))
        class_count = parse_int(first_present(eff, eff_fields.get("classes", [])))

    display_name = text_value(loc, loc_fields.get("denomination", []))
    if not display_name:
        display_name = text_value(row, record_fields.get("denomination", []))

    def located(name: str, default: str = "") -> str:
        value = text_value(loc, loc_fields.get(name, []))
        return value or text_value(row, record_fields.get(name, []), default)

    establishment = CanonicalEstablishment(
        identifier=key,
        establishment_type=establishment_type,
        ips=ips,
        latitude=latitude,
        longitude=longitude,
        display_name=display_name,
        sector=located("sector", DEFAULT_SECTOR),
        commune=located("commune"),
        department=located("department"),
        region=located("region"),
        student_count=student_count,
        class_count=class_count,
        comparison_ips=_comparison_ips(row, record_fields),
    )
    return establishment, None, eff is not None


def run_reconcile(
    ips_schools: Any,
    ips_colleges: Any,
    ips_high_schools: Any,
    localizations: Any,
    enrollments: Any,
    *,
    fields: dict | None = None,
) -> ReconcileResult:
    """Join the three IPS sources against the localisation and enrollment indices.

    Each source may be a list of row mappings or CSV text. A source with any
    other shape raises ``SourceShapeError``; bad individual rows are only
    counted and skipped.
    """
    fields = fields or DEFAULT_FIELDS
    loc_index = build_index(coerce_rows(localizations, "localisations"), fields["localisations"]["identifier"])
    eff_index = build_index(coerce_rows(enrollments, "effectifs"), fields["effectifs"]["identifier"])

    sources = {
        EstablishmentType.SCHOOL: coerce_rows(ips_schools, "ips_ecoles"),
        EstablishmentType.COLLEGE: coerce_rows(ips_colleges, "ips_colleges"),
        EstablishmentType.HIGH_SCHOOL: coerce_rows(ips_high_schools, "ips_lycees"),
    }

    result = ReconcileResult(
        establishments=[],
        localization_index_size=len(loc_index),
        enrollment_index_size=len(eff_index),
    )
    for establishment_type, rows in sources.items():
        dropped: Counter[str] = Counter()
        rows_in = 0
        rows_out = 0
        for row in rows:
            rows_in += 1
            establishment, reason, enrollment_found = _merge_row(
                row, establishment_type, fields, loc_index, eff_index
            )
            if establishment is None:
                dropped[reason] += 1
                continue
            if not enrollment_found:
                result.enrollment_misses += 1
            result.establishments.append(establishment)
            rows_out += 1

        name = establishment_type.value
        result.rows_in[name] = rows_in
        result.rows_out[name] = rows_out
        result.dropped[name] = {reason: dropped.get(reason, 0) for reason in DROP_REASONS}
        logger.debug(
            "reconciled %s: %d in, %d out, dropped %s",
            name,
            rows_in,
            rows_out,
            dict(dropped),
        )

    return result


def reconcile(
    ips_schools: Any,
    ips_colleges: Any,
    ips_high_schools: Any,
    localizations: Any,
    enrollments: Any,
    *,
    fields: dict | None = None,
) -> list[CanonicalEstablishment]:
    return run_reconcile(
        ips_schools,
        ips_colleges,
        ips_high_schools,
        localizations,
        enrollments,
        fields=fields,
    ).establishments
