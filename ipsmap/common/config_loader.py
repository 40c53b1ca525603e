"""Configuration loading and validation."""

from __future__ import annotations

import copy
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ipsmap.common.constants import DEFAULT_FIELDS, DEFAULT_ICON, DEFAULT_IPS_BANDS, DEFAULT_SHAPES
from ipsmap.common.errors import ConfigError
from ipsmap.common.fs import read_yaml
from ipsmap.common.schema import validate_fields_config, validate_sources_config, validate_styling_config


@dataclass(frozen=True)
class ConfigBundle:
    sources: dict
    fields: dict[str, dict[str, list[str]]]
    styling: dict


def default_styling() -> dict:
    return {
        "ips_bands": [dict(band) for band in DEFAULT_IPS_BANDS],
        "shapes": dict(DEFAULT_SHAPES),
        "icon": dict(DEFAULT_ICON),
    }


def _deep_merge(base: Any, overlay: Any) -> Any:
    if isinstance(base, dict) and isinstance(overlay, dict):
        merged = dict(base)
        for key, value in overlay.items():
            if key in merged:
                merged[key] = _deep_merge(merged[key], value)
            else:
                merged[key] = value
        return merged
    return overlay


def _read_mapping(path: Path) -> dict:
    payload = read_yaml(path)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ConfigError(f"Config file must hold a mapping: {path}")
    return payload


def _load_yaml_with_overlay(path: Path, overlay_path: Path | None, *, required: bool = True) -> dict:
    if path.exists():
        base = _read_mapping(path)
    elif required:
        raise ConfigError(f"Missing config file: {path}")
    else:
        base = {}
    if overlay_path is None or not overlay_path.exists():
        return base
    return _deep_merge(base, _read_mapping(overlay_path))


def load_all_configs(
    config_dir: Path,
    *,
    allow_unknown: bool = False,
    overlay_config_dir: Path | None = None,
) -> ConfigBundle:
    def overlay_for(name: str) -> Path | None:
        return overlay_config_dir / name if overlay_config_dir is not None else None

    sources = validate_sources_config(
        _load_yaml_with_overlay(config_dir / "sources.yml", overlay_for("sources.yml")),
        allow_unknown=allow_unknown,
    )

    # fields.yml and styling.yml only need to hold what differs from the defaults.
    fields_cfg = _deep_merge(
        {"fields": copy.deepcopy(DEFAULT_FIELDS)},
        _load_yaml_with_overlay(config_dir / "fields.yml", overlay_for("fields.yml"), required=False),
    )
    fields = validate_fields_config(fields_cfg, allow_unknown=allow_unknown)["fields"]

    styling = validate_styling_config(
        _deep_merge(
            default_styling(),
            _load_yaml_with_overlay(config_dir / "styling.yml", overlay_for("styling.yml"), required=False),
        )
    )
    return ConfigBundle(sources=sources, fields=fields, styling=styling)
