"""Centralized settings for the fishing-map backend."""
from __future__ import annotations

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_prefix": "FISHING_MAP_"}

    # Maps/Places credential — empty string means not configured
    google_maps_api_key: str = ""
    places_provider: str = "google"   # "google" | "mock"

    # Engine loading
    engine_max_retries: int = 3
    engine_retry_delay_ms: int = 2000
    engine_settle_ms: int = 100       # absorbs load-signal-before-API races
    engine_poll_ms: int = 100

    # Location
    location_timeout_ms: int = 15000
    location_max_age_ms: int = 60000  # a cached fix up to 1 min old is fine
    fallback_lat: float = 13.0827     # Chennai
    fallback_lng: float = 80.2707
    fixed_lat: Optional[float] = None
    fixed_lng: Optional[float] = None

    # EEZ boundary (Marine Regions WFS)
    boundary_endpoint: str = "https://geo.vliz.be/geoserver/wfs"
    boundary_typename: str = "MarineRegions:eez"
    boundary_mrgid: int = 8480        # Indian EEZ

    # Nearby search
    search_radius_km: float = 25.0
    search_max_per_category: int = Field(default=3, ge=1, le=10)  # ids use a stride of 10
    search_stagger_ms: int = 200
    photo_max_width: int = 300
    photo_max_height: int = 200

    # HTTP
    http_timeout_s: int = 25
    user_agent: str = "FishingMap/0.1.0 (contact: you@example.com)"


settings = Settings()
