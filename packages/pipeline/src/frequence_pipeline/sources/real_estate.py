"""
sources/real_estate.py — lexicon-proxy edge function.

Returns the land-registry (DVF) transactions of the parcel containing
the point. Transactions appear either at the top level or nested:

  {"transactions": [{"prix_m2": 2450, ...}, ...]}
  {"success": true, "data": {"transactions": {"rows": [...]}}}
"""

from __future__ import annotations

from typing import Any

from frequence_shared.config import settings
from frequence_shared.constants import REAL_ESTATE_SNAPSHOTS_TABLE
from frequence_pipeline.sources.base import EdgeFunctionSource


class RealEstateSource(EdgeFunctionSource):
    """Real-estate transactions at a marche location."""

    function_name = "lexicon-proxy"
    collection_type = "real_estate"
    table = REAL_ESTATE_SNAPSHOTS_TABLE

    def __init__(self, **kwargs: Any) -> None:
        kwargs.setdefault("timeout", settings.real_estate_timeout_s)
        super().__init__(**kwargs)

    def build_body(self, latitude: float, longitude: float) -> dict[str, Any]:
        return {"latitude": latitude, "longitude": longitude}
