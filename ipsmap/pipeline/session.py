"""Immutable data session and the pure establishment filter."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from ipsmap.common.models import CanonicalEstablishment, EstablishmentType
from ipsmap.common.time_utils import utc_timestamp_iso
from ipsmap.pipeline.reconcile import ReconcileResult


@dataclass(frozen=True)
class DataSession:
    """The reconciled collection of one load.

    Reloading builds a new session; nothing mutates an existing one.
    """

    establishments: tuple[CanonicalEstablishment, ...]
    run_id: str = ""
    loaded_at: str = ""

    def __len__(self) -> int:
        return len(self.establishments)

    def regions(self) -> list[str]:
        return sorted({e.region for e in self.establishments if e.region})

    def departments(self, region: str | None = None) -> list[str]:
        return sorted(
            {
                e.department
                for e in self.establishments
                if e.department and (region is None or e.region == region)
            }
        )

    def sectors(self) -> list[str]:
        return sorted({e.sector for e in self.establishments if e.sector})

    def ips_bounds(self) -> tuple[float, float] | None:
        if not self.establishments:
            return None
        values = [e.ips for e in self.establishments]
        return min(values), max(values)


@dataclass(frozen=True)
class FilterCriteria:
    """Empty collections and ``None`` bounds mean "no constraint"."""

    types: frozenset[EstablishmentType] = field(default_factory=frozenset)
    sectors: frozenset[str] = field(default_factory=frozenset)
    regions: frozenset[str] = field(default_factory=frozenset)
    departments: frozenset[str] = field(default_factory=frozenset)
    ips_min: float | None = None
    ips_max: float | None = None

    @classmethod
    def build(
        cls,
        *,
        types: Iterable[str | EstablishmentType] = (),
        sectors: Iterable[str] = (),
        regions: Iterable[str] = (),
        departments: Iterable[str] = (),
        ips_min: float | None = None,
        ips_max: float | None = None,
    ) -> "FilterCriteria":
        return cls(
            types=frozenset(t if isinstance(t, EstablishmentType) else EstablishmentType.parse(t) for t in types),
            sectors=frozenset(sectors),
            regions=frozenset(regions),
            departments=frozenset(departments),
            ips_min=ips_min,
            ips_max=ips_max,
        )

    def matches(self, establishment: CanonicalEstablishment) -> bool:
        if self.types and establishment.establishment_type not in self.types:
            return False
        if self.sectors and establishment.sector not in self.sectors:
            return False
        if self.regions and establishment.region not in self.regions:
            return False
        if self.departments and establishment.department not in self.departments:
            return False
        if self.ips_min is not None and establishment.ips < self.ips_min:
            return False
        if self.ips_max is not None and establishment.ips > self.ips_max:
            return False
        return True


def build_session(result: ReconcileResult | Iterable[CanonicalEstablishment], run_id: str = "") -> DataSession:
    establishments = result.establishments if isinstance(result, ReconcileResult) else result
    return DataSession(
        establishments=tuple(establishments),
        run_id=run_id,
        loaded_at=utc_timestamp_iso(),
    )


def filter_establishments(session: DataSession, criteria: FilterCriteria) -> tuple[CanonicalEstablishment, ...]:
    return tuple(e for e in session.establishments if criteria.matches(e))
