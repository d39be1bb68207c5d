"""
transforms/snapshots.py — Map edge-function payloads to snapshot rows.

Pure functions, no I/O. Both the batch collector and the step collectors
build their rows here so the two paths write identical snapshots.

Usage:
    from frequence_pipeline.transforms.snapshots import build_biodiversity_snapshot

    snapshot = build_biodiversity_snapshot(marche.id, lat, lon, payload, radius=500)
    loader.insert_snapshot(BIODIVERSITY_SNAPSHOTS_TABLE, snapshot)
"""

from __future__ import annotations

import math
from datetime import date
from statistics import median
from typing import Any

from frequence_shared.models.snapshots import (
    BiodiversitySnapshot,
    RealEstateSnapshot,
    WeatherSnapshot,
)
from frequence_pipeline.errors import NoDataError

# Fields tried in order for a transaction's price per square metre
PRICE_FIELDS: tuple[str, ...] = ("prix_m2", "price_per_m2", "price")


# ---------------------------------------------------------------------------
# Biodiversity
# ---------------------------------------------------------------------------

def _text(value: Any) -> str:
    return str(value).lower() if value else ""


def is_bird(species: dict[str, Any]) -> bool:
    """Heuristic used when the upstream summary has no bird count."""
    kingdom = _text(species.get("kingdom"))
    if kingdom and kingdom != "animalia":
        return False
    family = _text(species.get("family"))
    common = _text(species.get("commonName") or species.get("common_name"))
    scientific = _text(species.get("scientificName") or species.get("scientific_name"))
    return (
        _text(species.get("source")) == "ebird"
        or "aves" in family
        or "bird" in family
        or "oiseau" in common
        or "bird" in common
        or "aves" in scientific
    )


def _kingdom_count(species: list[dict[str, Any]], kingdom: str) -> int:
    return sum(1 for s in species if _text(s.get("kingdom")) == kingdom)


def derive_biodiversity_counts(
    species: list[dict[str, Any]] | None,
    summary: dict[str, Any] | None,
) -> dict[str, int]:
    """
    Return total/birds/plants/fungi/others/recent counts.

    Each upstream summary value is used when present and truthy; a
    missing or zero value is recomputed from the species list.
    """
    species = species or []
    summary = summary or {}

    total = summary.get("totalSpecies") or len(species)
    birds = summary.get("birds") or sum(1 for s in species if is_bird(s))
    plants = summary.get("plants") or _kingdom_count(species, "plantae")
    fungi = summary.get("fungi") or _kingdom_count(species, "fungi")
    others = summary.get("others") or max(total - birds - plants - fungi, 0)

    return {
        "total_species": int(total),
        "birds_count": int(birds),
        "plants_count": int(plants),
        "fungi_count": int(fungi),
        "others_count": int(others),
        "recent_observations": int(summary.get("recentObservations") or 0),
    }


def build_biodiversity_snapshot(
    marche_id: str,
    latitude: float,
    longitude: float,
    payload: dict[str, Any],
    *,
    radius: int,
    snapshot_date: date | None = None,
) -> BiodiversitySnapshot:
    species = payload.get("species") or []
    counts = derive_biodiversity_counts(species, payload.get("summary"))
    return BiodiversitySnapshot(
        marche_id=marche_id,
        latitude=latitude,
        longitude=longitude,
        radius_meters=radius,
        species_data=species,
        sources_data=payload.get("hotspots") or payload.get("methodology") or {},
        methodology=payload.get("methodology"),
        snapshot_date=snapshot_date,
        **counts,
    )


# ---------------------------------------------------------------------------
# Weather
# ---------------------------------------------------------------------------

def build_weather_snapshot(
    marche_id: str,
    latitude: float,
    longitude: float,
    payload: dict[str, Any],
) -> WeatherSnapshot:
    data = payload.get("data")
    if not data:
        raise NoDataError("weather payload has no data")
    agg = data.get("aggregated") or {}
    temperature = agg.get("temperature") or {}
    humidity = agg.get("humidity") or {}
    precipitation = agg.get("precipitation") or {}
    return WeatherSnapshot(
        marche_id=marche_id,
        latitude=latitude,
        longitude=longitude,
        temperature_avg=temperature.get("avg"),
        temperature_min=temperature.get("min"),
        temperature_max=temperature.get("max"),
        humidity_avg=humidity.get("avg"),
        humidity_min=humidity.get("min"),
        humidity_max=humidity.get("max"),
        precipitation_total=precipitation.get("total"),
        precipitation_days=precipitation.get("days"),
        wind_speed_avg=(agg.get("wind") or {}).get("avg"),
        sunshine_hours=(agg.get("sunshine") or {}).get("total"),
        raw_data=data,
    )


# ---------------------------------------------------------------------------
# Real estate
# ---------------------------------------------------------------------------

def extract_transactions(payload: dict[str, Any]) -> list[dict[str, Any]]:
    """Transactions at the top level, else under data.transactions.rows."""
    top_level = payload.get("transactions")
    if isinstance(top_level, list):
        return top_level
    nested = ((payload.get("data") or {}).get("transactions") or {})
    if isinstance(nested, dict):
        return nested.get("rows") or []
    return nested if isinstance(nested, list) else []


def transaction_price(transaction: dict[str, Any]) -> float | None:
    for field in PRICE_FIELDS:
        value = transaction.get(field)
        if isinstance(value, bool):
            continue
        try:
            price = float(value)
        except (TypeError, ValueError):
            continue
        if price > 0:
            return price
    return None


def price_metrics(
    transactions: list[dict[str, Any]],
) -> tuple[float | None, float | None, float | None]:
    """
    Return (avg, median, total_volume) over positive prices.

    All three are None when no transaction carries a usable price.
    """
    prices = [p for p in (transaction_price(t) for t in transactions) if p is not None]
    if not prices:
        return None, None, None
    total = sum(prices)
    # statistics.median averages the two central values for even counts
    return total / len(prices), float(median(prices)), total


def build_real_estate_snapshot(
    marche_id: str,
    latitude: float,
    longitude: float,
    payload: dict[str, Any],
) -> RealEstateSnapshot:
    transactions = extract_transactions(payload)
    avg, med, volume = price_metrics(transactions)
    return RealEstateSnapshot(
        marche_id=marche_id,
        latitude=latitude,
        longitude=longitude,
        transactions_count=len(transactions),
        transactions_data=transactions or None,
        avg_price_m2=avg,
        median_price_m2=med,
        total_volume=volume,
        raw_data=payload.get("data") or payload,
        source="lexicon",
    )


# ---------------------------------------------------------------------------
# Run statistics
# ---------------------------------------------------------------------------

def percentage(part: float, total: float) -> int:
    """Whole percentage rounded half up, 0 when total is 0."""
    if total <= 0:
        return 0
    return math.floor(part / total * 100 + 0.5)


def success_rate(total: int, errors: int) -> int:
    """Percentage of marches without error, 0 for an empty run."""
    return percentage(total - errors, total)
