"""
models/snapshots.py — Pydantic models for the snapshot tables.

Snapshots are point-in-time, denormalised aggregates keyed by marche_id.
They are inserted once per collection run and never updated in place.
"""

from __future__ import annotations

from datetime import date
from typing import Any

from pydantic import BaseModel, Field


class _Snapshot(BaseModel):
    marche_id: str
    latitude: float
    longitude: float

    @classmethod
    def from_db_row(cls, row: dict[str, Any]):
        return cls(**row)

    def to_insert_dict(self) -> dict[str, Any]:
        # Nulls are left out so column defaults apply
        return self.model_dump(mode="json", exclude_none=True)


class BiodiversitySnapshot(_Snapshot):
    """Matches the biodiversity_snapshots table row."""

    radius_meters: int
    total_species: int = 0
    birds_count: int = 0
    plants_count: int = 0
    fungi_count: int = 0
    others_count: int = 0
    recent_observations: int = 0
    species_data: list[dict[str, Any]] = Field(default_factory=list)
    sources_data: Any = None
    methodology: Any = None
    snapshot_date: date | None = None


class WeatherSnapshot(_Snapshot):
    """Matches the weather_snapshots table row."""

    temperature_avg: float | None = None
    temperature_min: float | None = None
    temperature_max: float | None = None
    humidity_avg: float | None = None
    humidity_min: float | None = None
    humidity_max: float | None = None
    precipitation_total: float | None = None
    precipitation_days: int | None = None
    wind_speed_avg: float | None = None
    sunshine_hours: float | None = None
    raw_data: dict[str, Any] | None = None


class RealEstateSnapshot(_Snapshot):
    """Matches the real_estate_snapshots table row.

    LEXICON data is point-based; radius_meters stays 0 for compatibility
    with rows written by older radius-based collectors.
    """

    radius_meters: int = 0
    transactions_count: int = 0
    transactions_data: list[dict[str, Any]] | None = None
    avg_price_m2: float | None = None
    median_price_m2: float | None = None
    total_volume: float | None = None
    raw_data: Any = None
    source: str = "lexicon"
