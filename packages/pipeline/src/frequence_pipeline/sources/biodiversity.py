"""
sources/biodiversity.py — biodiversity-data edge function.

Aggregates GBIF / iNaturalist / eBird observations around a point.

Request:
  {"latitude": 44.84, "longitude": -0.57, "radius": 500, "mode": "batch"}

Response shape (fields the collectors read):
  {
    "species": [
      {"commonName": "...", "scientificName": "...", "kingdom": "Animalia",
       "family": "...", "source": "ebird", ...},
      ...
    ],
    "summary": {"totalSpecies": 42, "birds": 12, "plants": 20, "fungi": 3,
                "others": 7, "recentObservations": 118},
    "hotspots": [...],
    "methodology": {...}
  }

Usage:
    source = BiodiversitySource(mode="interactive")
    payload = await source.fetch(44.84, -0.57)
"""

from __future__ import annotations

from typing import Any

from frequence_shared.config import settings
from frequence_shared.constants import BIODIVERSITY_SNAPSHOTS_TABLE
from frequence_pipeline.sources.base import EdgeFunctionSource


class BiodiversitySource(EdgeFunctionSource):
    """Species observations within a radius of a marche."""

    function_name = "biodiversity-data"
    collection_type = "biodiversity"
    table = BIODIVERSITY_SNAPSHOTS_TABLE

    def __init__(
        self,
        *,
        radius: int | None = None,
        mode: str = "batch",
        **kwargs: Any,
    ) -> None:
        kwargs.setdefault("timeout", settings.biodiversity_timeout_s)
        super().__init__(**kwargs)
        self.radius = radius if radius is not None else settings.biodiversity_radius_m
        self.mode = mode

    def build_body(self, latitude: float, longitude: float) -> dict[str, Any]:
        return {
            "latitude": latitude,
            "longitude": longitude,
            "radius": self.radius,
            "mode": self.mode,
        }
