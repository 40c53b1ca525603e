from pathlib import Path

import pytest

from ipsmap.common.config_loader import load_all_configs
from ipsmap.common.constants import DEFAULT_FIELDS
from ipsmap.common.errors import ConfigError

SOURCES_YAML = """sources:
  ips_ecoles: {location: ips_ecoles.json, format: json}
  ips_colleges: {location: ips_colleges.json, format: json}
  ips_lycees: {location: ips_lycees.csv, format: csv}
  localisations: {location: localisations.json, format: auto}
  effectifs: {location: effectifs.json, format: json}
http:
  timeout_seconds: 30
  max_attempts: 2
"""


def _write_base(base: Path) -> None:
    base.mkdir(parents=True, exist_ok=True)
    (base / "sources.yml").write_text(SOURCES_YAML, encoding="utf-8")


def test_load_all_configs_from_repo_config_dir():
    bundle = load_all_configs(Path("config"))
    assert set(bundle.sources["sources"]) == set(DEFAULT_FIELDS) - {"ips_record"}
    assert bundle.fields["ips_lycees"]["ips"] == ["ips_etab", "ips_ensemble_gt_pro"]
    assert bundle.styling["shapes"]["lycee"] == "diamond"


def test_missing_optional_files_fall_back_to_defaults(tmp_path: Path):
    _write_base(tmp_path)
    bundle = load_all_configs(tmp_path)
    assert bundle.fields == DEFAULT_FIELDS
    assert bundle.styling["icon"]["max_size"] == 18


def test_missing_sources_file_is_a_config_error(tmp_path: Path):
    with pytest.raises(ConfigError):
        load_all_configs(tmp_path)


def test_fields_file_overrides_single_candidate_list(tmp_path: Path):
    _write_base(tmp_path)
    (tmp_path / "fields.yml").write_text(
        """fields:
  ips_ecoles:
    identifier: [code_uai]
""",
        encoding="utf-8",
    )
    bundle = load_all_configs(tmp_path)
    assert bundle.fields["ips_ecoles"]["identifier"] == ["code_uai"]
    assert bundle.fields["ips_ecoles"]["ips"] == ["ips"]
    assert bundle.fields["localisations"] == DEFAULT_FIELDS["localisations"]


def test_overlay_values_are_deep_merged(tmp_path: Path):
    base = tmp_path / "base"
    overlay = tmp_path / "overlay"
    _write_base(base)
    overlay.mkdir()
    (overlay / "sources.yml").write_text(
        """sources:
  effectifs:
    location: https://example.test/effectifs.json
""",
        encoding="utf-8",
    )
    (overlay / "styling.yml").write_text("icon:\n  max_size: 24\n", encoding="utf-8")

    bundle = load_all_configs(base, overlay_config_dir=overlay)

    assert bundle.sources["sources"]["effectifs"]["location"] == "https://example.test/effectifs.json"
    assert bundle.sources["sources"]["effectifs"]["format"] == "json"
    assert bundle.sources["sources"]["ips_ecoles"]["location"] == "ips_ecoles.json"
    assert bundle.styling["icon"]["max_size"] == 24
    assert bundle.styling["icon"]["min_size"] == 8


def test_empty_overlay_file_is_ignored(tmp_path: Path):
    base = tmp_path / "base"
    overlay = tmp_path / "overlay"
    _write_base(base)
    overlay.mkdir()
    (overlay / "sources.yml").write_text("", encoding="utf-8")

    bundle = load_all_configs(base, overlay_config_dir=overlay)
    assert bundle.sources["http"]["max_attempts"] == 2


def test_non_mapping_overlay_is_rejected(tmp_path: Path):
    base = tmp_path / "base"
    overlay = tmp_path / "overlay"
    _write_base(base)
    overlay.mkdir()
    (overlay / "sources.yml").write_text("- not\n- a\n- mapping\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_all_configs(base, overlay_config_dir=overlay)
