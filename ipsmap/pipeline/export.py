"""GeoJSON and CSV export of canonical establishments."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

from ipsmap.common.errors import StageError
from ipsmap.common.fs import read_json, write_csv, write_json
from ipsmap.common.models import CanonicalEstablishment
from ipsmap.pipeline.styling import marker_style

CANONICAL_HEADERS = [
    "identifier",
    "establishment_type",
    "display_name",
    "sector",
    "commune",
    "department",
    "region",
    "latitude",
    "longitude",
    "ips",
    "ips_commune",
    "ips_department",
    "ips_academy",
    "ips_national",
    "student_count",
    "class_count",
]


def _serialize_row(establishment: CanonicalEstablishment) -> dict:
    row = establishment.to_dict()
    return {key: "" if row.get(key) is None else row[key] for key in CANONICAL_HEADERS}


def to_feature(
    establishment: CanonicalEstablishment,
    *,
    zoom: float | None = None,
    styling: dict | None = None,
) -> dict:
    properties = establishment.to_dict()
    properties.pop("latitude")
    properties.pop("longitude")
    if zoom is not None:
        properties["marker"] = marker_style(establishment, zoom, styling).to_dict()
    return {
        "type": "Feature",
        "id": establishment.identifier,
        "geometry": {
            "type": "Point",
            "coordinates": [establishment.longitude, establishment.latitude],
        },
        "properties": properties,
    }


def to_geojson(
    establishments: Iterable[CanonicalEstablishment],
    *,
    zoom: float | None = None,
    styling: dict | None = None,
) -> dict:
    return {
        "type": "FeatureCollection",
        "features": [to_feature(e, zoom=zoom, styling=styling) for e in establishments],
    }


def write_geojson(
    path: Path,
    establishments: Iterable[CanonicalEstablishment],
    *,
    zoom: float | None = None,
    styling: dict | None = None,
) -> Path:
    write_json(path, to_geojson(establishments, zoom=zoom, styling=styling))
    return path


def write_canonical_csv(path: Path, establishments: Iterable[CanonicalEstablishment]) -> Path:
    write_csv(path, CANONICAL_HEADERS, [_serialize_row(e) for e in establishments])
    return path


def write_intermediate(path: Path, establishments: Iterable[CanonicalEstablishment], *, run_id: str) -> Path:
    write_json(path, {"run_id": run_id, "rows": [e.to_dict() for e in establishments]})
    return path


def read_intermediate(path: Path) -> list[CanonicalEstablishment]:
    if not path.exists():
        raise StageError(f"Missing reconciled establishments: {path}")
    try:
        return [CanonicalEstablishment.from_dict(row) for row in read_json(path).get("rows", [])]
    except (ValueError, KeyError, TypeError, AttributeError) as exc:
        raise StageError(f"Unreadable reconciled establishments: {path}: {exc}") from exc
