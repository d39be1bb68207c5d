"""
progress.py — Human-readable view of a data_collection_logs row.

Turns the raw progress record into what the admin panel shows: a
percentage, the marche and data type being processed (with fallbacks
when summary_stats is sparse), and time estimates.

Usage:
    from frequence_pipeline.progress import describe_progress

    view = describe_progress(log_row, ["biodiversity", "weather"])
    print(f"{view.progress}% — {view.current_marche_name}")
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from frequence_shared.constants import COLLECTION_TIME_ESTIMATES
from frequence_shared.models.collection import DataCollectionLog
from frequence_shared.time_utils import parse_datetime, utc_now
from frequence_pipeline.transforms.snapshots import percentage

DEFAULT_SECONDS_PER_MARCHE = 3


@dataclass(frozen=True)
class CollectionProgress:
    progress: int
    current_marche_name: str
    current_data_type: str
    is_completed: bool
    estimated_time_remaining_s: int | None
    initial_estimate_s: int | None


def initial_estimate(total_marches: int, collection_types: Sequence[str]) -> int | None:
    """Seconds for the whole run from the average per-type cost per marche."""
    if not total_marches or not collection_types:
        return None
    per_marche = sum(
        COLLECTION_TIME_ESTIMATES.get(t, DEFAULT_SECONDS_PER_MARCHE) for t in collection_types
    ) / len(collection_types)
    return math.ceil(total_marches * per_marche)


def _marche_name(stats: dict, processed: int, total: int) -> str:
    name = stats.get("current_marche_name") or stats.get("next_marche")
    if name:
        return str(name)
    if processed < total:
        return f"Marché {processed + 1}/{total}"
    if processed == total:
        return "Finalisation..."
    return "En attente..."


def _data_type(stats: dict, status: str, processed: int, total: int) -> str:
    if stats.get("current_data_type"):
        return str(stats["current_data_type"])
    if status == "running":
        if processed == 0:
            return "Initialisation..."
        if processed < total:
            return f"Collecte en cours ({processed}/{total})"
        return "Finalisation..."
    if status == "completed":
        return "Collecte terminée ✅"
    if status == "failed":
        return "Erreur ❌"
    if status == "pending":
        return "En attente de démarrage..."
    return f"Status: {status}"


def describe_progress(
    log: DataCollectionLog,
    collection_types: Sequence[str] | None = None,
    now: datetime | None = None,
) -> CollectionProgress:
    processed = log.marches_processed
    total = log.marches_total
    stats = log.summary_stats

    remaining: int | None = None
    if processed > 0 and log.status == "running" and log.started_at is not None:
        elapsed = ((now or utc_now()) - parse_datetime(log.started_at)).total_seconds()
        per_marche = max(elapsed, 0) / processed
        remaining = math.ceil((total - processed) * per_marche)

    types = collection_types if collection_types is not None else log.collection_types
    return CollectionProgress(
        progress=percentage(processed, total),
        current_marche_name=_marche_name(stats, processed, total),
        current_data_type=_data_type(stats, log.status, processed, total),
        is_completed=log.status in ("completed", "failed"),
        estimated_time_remaining_s=remaining,
        initial_estimate_s=initial_estimate(total, types),
    )
