import pytest

from ipsmap.common.models import CanonicalEstablishment, EstablishmentType
from ipsmap.pipeline.reconcile import run_reconcile
from ipsmap.pipeline.session import DataSession, FilterCriteria, build_session, filter_establishments


def _est(identifier, kind, ips, sector="Public", region="Bretagne", department="Finistère"):
    return CanonicalEstablishment(
        identifier=identifier,
        establishment_type=kind,
        ips=ips,
        latitude=48.0,
        longitude=-4.0,
        sector=sector,
        region=region,
        department=department,
    )


def _session():
    return DataSession(
        establishments=(
            _est("E1", EstablishmentType.SCHOOL, 85.0),
            _est("C1", EstablishmentType.COLLEGE, 101.0, sector="Privé"),
            _est("L1", EstablishmentType.HIGH_SCHOOL, 120.0, region="Normandie", department="Calvados"),
            _est("E2", EstablishmentType.SCHOOL, 100.0, department="Morbihan"),
        )
    )


def test_empty_criteria_keeps_everything_in_order():
    session = _session()
    assert filter_establishments(session, FilterCriteria()) == session.establishments


def test_filter_by_type_sector_and_place():
    session = _session()
    by_type = filter_establishments(session, FilterCriteria.build(types=["ecole", "lycee"]))
    assert [e.identifier for e in by_type] == ["E1", "L1", "E2"]

    private = filter_establishments(session, FilterCriteria.build(sectors=["Privé"]))
    assert [e.identifier for e in private] == ["C1"]

    normandie = filter_establishments(session, FilterCriteria.build(regions=["Normandie"]))
    assert [e.identifier for e in normandie] == ["L1"]

    morbihan = filter_establishments(session, FilterCriteria.build(departments=["Morbihan"]))
    assert [e.identifier for e in morbihan] == ["E2"]


def test_ips_range_is_inclusive():
    session = _session()
    selected = filter_establishments(session, FilterCriteria.build(ips_min=85.0, ips_max=101.0))
    assert [e.identifier for e in selected] == ["E1", "C1", "E2"]
    assert filter_establishments(session, FilterCriteria.build(ips_min=121)) == ()


def test_unknown_type_filter_is_a_value_error():
    with pytest.raises(ValueError):
        FilterCriteria.build(types=["university"])


def test_filter_does_not_mutate_session():
    session = _session()
    before = session.establishments
    filter_establishments(session, FilterCriteria.build(types=[EstablishmentType.COLLEGE]))
    assert session.establishments is before
    assert len(session) == 4


def test_filter_is_idempotent():
    session = _session()
    criteria = FilterCriteria.build(sectors=["Public"], ips_max=110)
    assert filter_establishments(session, criteria) == filter_establishments(session, criteria)


def test_session_option_lists():
    session = _session()
    assert session.regions() == ["Bretagne", "Normandie"]
    assert session.departments() == ["Calvados", "Finistère", "Morbihan"]
    assert session.departments(region="Normandie") == ["Calvados"]
    assert session.sectors() == ["Privé", "Public"]
    assert session.ips_bounds() == (85.0, 120.0)
    assert DataSession(establishments=()).ips_bounds() is None


def test_build_session_from_reconcile_result():
    result = run_reconcile(
        [{"uai": "A1", "ips": "100"}],
        [],
        [],
        [{"numero_uai": "A1", "latitude": 1.0, "longitude": 2.0}],
        [],
    )
    session = build_session(result, run_id="run-1")
    assert len(session) == 1
    assert session.run_id == "run-1"
    assert session.loaded_at
