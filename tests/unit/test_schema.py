import copy

import pytest

from ipsmap.common.config_loader import default_styling
from ipsmap.common.constants import DEFAULT_FIELDS, SOURCE_NAMES
from ipsmap.common.errors import ConfigError
from ipsmap.common.schema import validate_fields_config, validate_sources_config, validate_styling_config

BASE_SOURCES = {
    "sources": {name: {"location": f"{name}.json", "format": "json"} for name in SOURCE_NAMES},
    "http": {"timeout_seconds": 30, "max_attempts": 3},
}


def test_validate_sources_config_accepts_valid_shape():
    validated = validate_sources_config(copy.deepcopy(BASE_SOURCES))
    assert validated["sources"]["effectifs"]["format"] == "json"


def test_validate_sources_config_rejects_missing_source():
    bad = copy.deepcopy(BASE_SOURCES)
    del bad["sources"]["effectifs"]
    with pytest.raises(ConfigError):
        validate_sources_config(bad)


def test_validate_sources_config_rejects_unknown_format():
    bad = copy.deepcopy(BASE_SOURCES)
    bad["sources"]["ips_lycees"]["format"] = "xlsx"
    with pytest.raises(ConfigError):
        validate_sources_config(bad)


def test_validate_sources_config_rejects_unknown_key_by_default():
    bad = copy.deepcopy(BASE_SOURCES)
    bad["unexpected"] = True
    with pytest.raises(ConfigError):
        validate_sources_config(bad)
    validate_sources_config(bad, allow_unknown=True)


def test_validate_fields_config_rejects_empty_candidates():
    fields = copy.deepcopy(DEFAULT_FIELDS)
    fields["effectifs"]["students"] = []
    with pytest.raises(ConfigError):
        validate_fields_config({"fields": fields})


def test_validate_fields_config_requires_identifier_candidates():
    fields = copy.deepcopy(DEFAULT_FIELDS)
    del fields["ips_colleges"]["identifier"]
    with pytest.raises(ConfigError):
        validate_fields_config({"fields": fields})


def test_validate_styling_config_requires_catch_all_band():
    styling = default_styling()
    styling["ips_bands"] = [{"max": 90, "color": "red"}]
    with pytest.raises(ConfigError):
        validate_styling_config(styling)


def test_validate_styling_config_requires_ascending_bands():
    styling = default_styling()
    styling["ips_bands"] = [{"max": 100, "color": "a"}, {"max": 90, "color": "b"}, {"color": "c"}]
    with pytest.raises(ConfigError):
        validate_styling_config(styling)
