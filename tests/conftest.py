import json
from pathlib import Path

import pytest

SOURCES_YAML = """sources:
  ips_ecoles: {location: sources/ips_ecoles.json, format: json}
  ips_colleges: {location: sources/ips_colleges.json, format: auto}
  ips_lycees: {location: sources/ips_lycees.csv, format: csv}
  localisations: {location: sources/localisations.json, format: json}
  effectifs: {location: sources/effectifs.json, format: json}
http:
  timeout_seconds: 10
  max_attempts: 1
"""

LOCALISATIONS = [
    {
        "numero_uai": "0010001X",
        "latitude": 48.8,
        "longitude": 2.3,
        "denomination_principale": "Ecole Test",
        "secteur_public_prive_libe": "Public",
        "libelle_commune": "Paris",
        "libelle_departement": "Paris",
        "libelle_region": "Ile-de-France",
    },
    {
        "numero_uai": " 0690002b ",
        "latitude": "45.76",
        "longitude": "4.83",
        "denomination_principale": "College Lumiere",
        "secteur_public_prive_libe": "Privé",
        "libelle_commune": "Lyon",
        "libelle_departement": "Rhône",
        "libelle_region": "Auvergne-Rhône-Alpes",
    },
    {"numero_uai": "0350003C", "latitude": 48.11, "longitude": -1.68, "libelle_region": "Bretagne"},
    {"numero_uai": "0290004D", "latitude": None, "longitude": None},
]

IPS_ECOLES = [
    {"uai": "0010001X", "ips": "102.5"},
    {"uai": "0290004D", "ips": "99"},
    {"uai": "9999999Z", "ips": "100"},
    {"numero_ecole": "0010001X", "ips": "NC"},
]

IPS_COLLEGES = {"results": [{"numero_college": "0690002B", "ips": 121.3, "ips_national": "103.1"}]}

IPS_LYCEES_CSV = "uai,nom_de_l_etablissement,ips_etab,ips_ensemble_gt_pro\n0350003C,Lycee Breton,,88.4\n"

EFFECTIFS = [
    {"numero_uai": "0010001x", "nombre_total_eleves": 200, "nombre_total_classes": 8},
    {"numero_uai": "0690002B", "nombre_total_eleves": "540", "nombre_total_classes": "20"},
]


@pytest.fixture
def sample_config_dir(tmp_path: Path) -> Path:
    config_dir = tmp_path / "config"
    sources = config_dir / "sources"
    sources.mkdir(parents=True)
    (config_dir / "sources.yml").write_text(SOURCES_YAML, encoding="utf-8")
    (sources / "ips_ecoles.json").write_text(json.dumps(IPS_ECOLES), encoding="utf-8")
    (sources / "ips_colleges.json").write_text(json.dumps(IPS_COLLEGES), encoding="utf-8")
    (sources / "ips_lycees.csv").write_text(IPS_LYCEES_CSV, encoding="utf-8")
    (sources / "localisations.json").write_text(json.dumps(LOCALISATIONS, ensure_ascii=False), encoding="utf-8")
    (sources / "effectifs.json").write_text(json.dumps(EFFECTIFS), encoding="utf-8")
    return config_dir
