"""Minimal strict schemas for YAML config validation."""

from __future__ import annotations

from ipsmap.common.constants import SOURCE_NAMES
from ipsmap.common.errors import ConfigError

SOURCE_FORMATS = {"json", "csv", "auto"}


def _assert_mapping(obj, ctx: str) -> None:
    if not isinstance(obj, dict):
        raise ConfigError(f"{ctx} must be a mapping")


def _assert_required_keys(obj: dict, required: set[str], ctx: str) -> None:
    _assert_mapping(obj, ctx)
    missing = required - set(obj)
    if missing:
        missing_str = ", ".join(sorted(missing))
        raise ConfigError(f"Missing keys in {ctx}: {missing_str}")


def _assert_no_unknown_keys(obj: dict, known: set[str], ctx: str, allow_unknown: bool) -> None:
    if allow_unknown:
        return
    unknown = set(obj) - known
    if unknown:
        unknown_str = ", ".join(sorted(unknown))
        raise ConfigError(f"Unknown keys in {ctx}: {unknown_str}")


def validate_sources_config(cfg: dict, *, allow_unknown: bool = False) -> dict:
    _assert_required_keys(cfg, {"sources", "http"}, "sources config")
    _assert_no_unknown_keys(cfg, {"sources", "http"}, "sources config", allow_unknown)

    _assert_required_keys(cfg["sources"], set(SOURCE_NAMES), "sources")
    _assert_no_unknown_keys(cfg["sources"], set(SOURCE_NAMES), "sources", allow_unknown)
    for name in SOURCE_NAMES:
        source = cfg["sources"][name]
        _assert_required_keys(source, {"location", "format"}, f"sources.{name}")
        if source["format"] not in SOURCE_FORMATS:
            raise ConfigError(f"sources.{name}.format must be one of {sorted(SOURCE_FORMATS)}")

    _assert_required_keys(cfg["http"], {"timeout_seconds", "max_attempts"}, "http")
    if int(cfg["http"]["max_attempts"]) < 1:
        raise ConfigError("http.max_attempts must be at least 1")
    return cfg


def validate_fields_config(cfg: dict, *, allow_unknown: bool = False) -> dict:
    _assert_required_keys(cfg, {"fields"}, "fields config")
    fields = cfg["fields"]
    _assert_mapping(fields, "fields")
    known_sources = {*SOURCE_NAMES, "ips_record"}
    _assert_no_unknown_keys(fields, known_sources, "fields", allow_unknown)

    for source, candidates_by_field in fields.items():
        _assert_mapping(candidates_by_field, f"fields.{source}")
        if source in SOURCE_NAMES:
            _assert_required_keys(candidates_by_field, {"identifier"}, f"fields.{source}")
        for field, candidates in candidates_by_field.items():
            if not isinstance(candidates, list) or not candidates:
                raise ConfigError(f"fields.{source}.{field} must be a non-empty list")
            if not all(isinstance(c, str) and c for c in candidates):
                raise ConfigError(f"fields.{source}.{field} must only hold field names")
    return cfg


def validate_styling_config(cfg: dict) -> dict:
    _assert_required_keys(cfg, {"ips_bands", "shapes", "icon"}, "styling")

    bands = cfg["ips_bands"]
    if not isinstance(bands, list) or not bands:
        raise ConfigError("styling.ips_bands must be a non-empty list")
    for idx, band in enumerate(bands):
        _assert_required_keys(band, {"color"}, f"ips_bands[{idx}]")
    if "max" in bands[-1]:
        raise ConfigError("styling.ips_bands must end with a catch-all band without 'max'")
    maxima = [float(band["max"]) for band in bands[:-1]]
    if maxima != sorted(maxima):
        raise ConfigError("styling.ips_bands maxima must be ascending")

    _assert_required_keys(cfg["shapes"], {"ecole", "college", "lycee"}, "styling.shapes")
    _assert_required_keys(cfg["icon"], {"min_size", "max_size", "min_zoom", "max_zoom"}, "styling.icon")
    if cfg["icon"]["max_zoom"] <= cfg["icon"]["min_zoom"]:
        raise ConfigError("styling.icon.max_zoom must be greater than min_zoom")
    return cfg
