"""Marker style derived from canonical establishments.

The map layer re-styles markers on zoom from the record itself, so nothing
here ever reads back rendered popup content.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from ipsmap.common.config_loader import default_styling
from ipsmap.common.models import CanonicalEstablishment, EstablishmentType


@dataclass(frozen=True)
class MarkerStyle:
    shape: str
    color: str
    size: int

    def to_dict(self) -> dict:
        return {"shape": self.shape, "color": self.color, "size": self.size}


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def icon_size(zoom: float, icon: dict | None = None) -> int:
    icon = icon or default_styling()["icon"]
    min_size, max_size = icon["min_size"], icon["max_size"]
    min_zoom, max_zoom = icon["min_zoom"], icon["max_zoom"]
    if zoom <= min_zoom:
        return int(min_size)
    if zoom >= max_zoom:
        return int(max_size)
    size = min_size + ((zoom - min_zoom) / (max_zoom - min_zoom)) * (max_size - min_size)
    return _round_half_up(size)


def color_for_ips(ips: float, bands: list[dict] | None = None) -> str:
    bands = bands or default_styling()["ips_bands"]
    for band in bands:
        if "max" not in band or ips < float(band["max"]):
            return band["color"]
    return bands[-1]["color"]


def shape_for_type(establishment_type: EstablishmentType, shapes: dict | None = None) -> str:
    shapes = shapes or default_styling()["shapes"]
    return shapes.get(establishment_type.value, "circle")


def marker_style(
    establishment: CanonicalEstablishment,
    zoom: float,
    styling: dict | None = None,
) -> MarkerStyle:
    styling = styling or default_styling()
    return MarkerStyle(
        shape=shape_for_type(establishment.establishment_type, styling["shapes"]),
        color=color_for_ips(establishment.ips, styling["ips_bands"]),
        size=icon_size(zoom, styling["icon"]),
    )
