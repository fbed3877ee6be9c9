"""Default nearby-search categories for marine infrastructure."""
from __future__ import annotations

from typing import List

from fishing_map.core.models import SearchCategory


DEFAULT_CATEGORIES: List[SearchCategory] = [
    SearchCategory(keywords=["fishing", "marina", "harbor"], category="marina"),
    SearchCategory(keywords=["fishing", "spot", "pier", "jetty"], category="fishing_spot"),
    SearchCategory(keywords=["bait", "tackle", "fishing", "shop"], category="bait_shop"),
    SearchCategory(keywords=["coast guard", "marine safety"], category="safety_station"),
    SearchCategory(keywords=["port", "harbor", "dock"], category="port"),
    SearchCategory(keywords=["fishing", "charter", "boat tours"], category="fishing_charter"),
    SearchCategory(keywords=["boat", "ramp", "launch"], category="boat_ramp"),
]
