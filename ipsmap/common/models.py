"""Data models used across the pipeline."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any


class EstablishmentType(str, Enum):
    SCHOOL = "ecole"
    COLLEGE = "college"
    HIGH_SCHOOL = "lycee"

    @classmethod
    def parse(cls, value: str) -> "EstablishmentType":
        try:
            return cls(value.strip().lower())
        except ValueError:
            pass
        try:
            return cls[value.strip().upper().replace("-", "_")]
        except KeyError as exc:
            raise ValueError(f"Unknown establishment type: {value!r}") from exc


# Raw IPS source feeding each establishment type, in output order.
IPS_SOURCE_BY_TYPE = {
    EstablishmentType.SCHOOL: "ips_ecoles",
    EstablishmentType.COLLEGE: "ips_colleges",
    EstablishmentType.HIGH_SCHOOL: "ips_lycees",
}


COMPARISON_KEYS = ("commune", "department", "academy", "national")


@dataclass(frozen=True)
class ComparisonIps:
    commune: float | None = None
    department: float | None = None
    academy: float | None = None
    national: float | None = None

    def is_empty(self) -> bool:
        return all(value is None for value in asdict(self).values())


@dataclass(frozen=True)
class CanonicalEstablishment:
    """One reconciled establishment.

    ``ips``, ``latitude`` and ``longitude`` are always finite floats; rows that
    cannot provide them never become a ``CanonicalEstablishment``.
    """

    identifier: str
    establishment_type: EstablishmentType
    ips: float
    latitude: float
    longitude: float
    display_name: str = ""
    sector: str = "Public"
    commune: str = ""
    department: str = ""
    region: str = ""
    student_count: int | None = None
    class_count: int | None = None
    comparison_ips: ComparisonIps | None = None

    def to_dict(self) -> dict[str, Any]:
        out = asdict(self)
        out["establishment_type"] = self.establishment_type.value
        comparison = out.pop("comparison_ips") or {}
        for key in COMPARISON_KEYS:
            out[f"ips_{key}"] = comparison.get(key)
        return out

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "CanonicalEstablishment":
        comparison = ComparisonIps(**{key: payload.get(f"ips_{key}") for key in COMPARISON_KEYS})
        return cls(
            identifier=payload["identifier"],
            establishment_type=EstablishmentType(payload["establishment_type"]),
            ips=float(payload["ips"]),
            latitude=float(payload["latitude"]),
            longitude=float(payload["longitude"]),
            display_name=payload.get("display_name", ""),
            sector=payload.get("sector", "Public"),
            commune=payload.get("commune", ""),
            department=payload.get("department", ""),
            region=payload.get("region", ""),
            student_count=payload.get("student_count"),
            class_count=payload.get("class_count"),
            comparison_ips=None if comparison.is_empty() else comparison,
        )
