"""
frequence_pipeline.sources — edge-function data sources.

Each source wraps one Supabase edge function:
  BiodiversitySource — biodiversity-data (species around a point)
  WeatherSource      — open-meteo-data (30-day weather aggregates)
  RealEstateSource   — lexicon-proxy (parcel transactions)
"""

from frequence_pipeline.sources.base import EdgeFunctionSource
from frequence_pipeline.sources.biodiversity import BiodiversitySource
from frequence_pipeline.sources.real_estate import RealEstateSource
from frequence_pipeline.sources.weather import WeatherSource

__all__ = [
    "EdgeFunctionSource",
    "BiodiversitySource",
    "WeatherSource",
    "RealEstateSource",
]
