"""
pipelines/batch_collector.py — Collect biodiversity, weather and real-estate
snapshots for many marches in one background run.

Steps:
  1. start()   — create the data_collection_logs row, fetch marches
                 (optionally filtered), drop those without coordinates,
                 publish the initial progress.
  2. collect() — visit marches sequentially; for each requested type call
                 its edge function, build the snapshot, insert it. A
                 heartbeat refreshes last_ping while a call is in flight.
  3. finalise  — mark the log completed with results and success rate.

A failing marche adds exactly one to errors_count however many of its
types failed; the loop always carries on to the next marche and always
reaches finalisation.

Usage:
    from frequence_pipeline.pipelines.batch_collector import run

    result = await run(BatchCollectionRequest(collectionTypes=["weather"]))
    print(result.success_rate)
"""

from __future__ import annotations

import asyncio
import contextlib
import time
from collections.abc import AsyncIterator, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

import structlog

from frequence_shared.config import settings
from frequence_shared.constants import COLLECTING_LABELS, COLLECTION_TYPES
from frequence_shared.models.collection import BatchCollectionRequest, DataCollectionLog
from frequence_shared.models.marches import Marche
from frequence_shared.time_utils import elapsed_seconds, utc_now
from frequence_pipeline.loaders.supabase_loader import SupabaseLoader
from frequence_pipeline.sources import (
    BiodiversitySource,
    EdgeFunctionSource,
    RealEstateSource,
    WeatherSource,
)
from frequence_pipeline.transforms.snapshots import (
    build_biodiversity_snapshot,
    build_real_estate_snapshot,
    build_weather_snapshot,
    success_rate,
)

log = structlog.get_logger(__name__)

READY_LABEL = "Prêt à démarrer..."
INIT_MARCHE_NAME = "Initialisation"
MARCHE_INIT_LABEL = "Initialisation..."
MARCHE_DONE_LABEL = "Marché terminé ✅"
WAITING_LABEL = "En attente..."
COMPLETED_LABEL = "Collection terminée ✅"
ALL_DONE_MARCHE_NAME = "Tous les marchés traités"


@dataclass
class CollectionResult:
    """Outcome of one batch run, mirrored in the finalised log row."""

    log_id: str
    marches_total: int
    marches_processed: int = 0
    errors_count: int = 0
    results: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    duration_seconds: int = 0

    @property
    def success_rate(self) -> int:
        return success_rate(self.marches_total, self.errors_count)


def default_sources(*, batch_mode: bool = True) -> dict[str, EdgeFunctionSource]:
    return {
        "biodiversity": BiodiversitySource(mode="batch" if batch_mode else "interactive"),
        "weather": WeatherSource(),
        "real_estate": RealEstateSource(),
    }


def _snapshot_for(
    collection_type: str,
    source: EdgeFunctionSource,
    marche: Marche,
    payload: dict[str, Any],
):
    lat, lon = float(marche.latitude), float(marche.longitude)  # type: ignore[arg-type]
    if collection_type == "biodiversity":
        return build_biodiversity_snapshot(
            marche.id,
            lat,
            lon,
            payload,
            radius=getattr(source, "radius", settings.biodiversity_radius_m),
            snapshot_date=utc_now().date(),
        )
    if collection_type == "weather":
        return build_weather_snapshot(marche.id, lat, lon, payload)
    return build_real_estate_snapshot(marche.id, lat, lon, payload)


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------

async def _publish(loader: SupabaseLoader, log_id: str, fields: dict[str, Any]) -> None:
    """Best-effort progress update: failures are logged, never raised."""
    try:
        await loader.update_collection_log(log_id, fields)
    except Exception as exc:
        log.warning("progress_update_failed", log_id=log_id, error=str(exc))


@contextlib.asynccontextmanager
async def heartbeat(
    loader: SupabaseLoader,
    log_id: str,
    interval_s: float,
    stats: Callable[[], dict[str, Any]] | None = None,
) -> AsyncIterator[None]:
    """Refresh last_ping every interval_s seconds while the block runs."""
    if interval_s <= 0:
        yield
        return

    async def beat() -> None:
        while True:
            await asyncio.sleep(interval_s)
            fields: dict[str, Any] = {"last_ping": utc_now().isoformat()}
            if stats is not None:
                fields["summary_stats"] = stats()
            await _publish(loader, log_id, fields)

    task = asyncio.create_task(beat())
    try:
        yield
    finally:
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task


# ---------------------------------------------------------------------------
# Run
# ---------------------------------------------------------------------------

async def start(
    request: BatchCollectionRequest,
    loader: SupabaseLoader,
) -> tuple[DataCollectionLog, list[Marche]]:
    """
    Create the log row and resolve the marches to visit.

    Raises:
        CollectionLogError: the log row could not be created.
        Exception:          fetching marches failed (run aborted).
    """
    collection_log = await loader.create_collection_log(request.collection_types, request.mode)
    run_log = log.bind(log_id=collection_log.id)

    marches = await loader.fetch_marches(request.marches_filter)
    valid = [m for m in marches if m.has_coordinates]
    if len(valid) < len(marches):
        run_log.warning("marches_without_coordinates", skipped=len(marches) - len(valid))

    await _publish(
        loader,
        collection_log.id,
        {
            "marches_total": len(valid),
            "marches_processed": 0,
            "summary_stats": {
                "processed": 0,
                "total_marches": len(valid),
                "current_data_type": READY_LABEL,
                "current_marche_name": INIT_MARCHE_NAME,
            },
        },
    )
    run_log.info(
        "batch_collection_start",
        marches=len(valid),
        types=request.collection_types,
        mode=request.mode,
    )
    return collection_log.model_copy(update={"marches_total": len(valid)}), valid


async def collect(
    collection_log: DataCollectionLog,
    marches: Sequence[Marche],
    collection_types: Sequence[str],
    *,
    loader: SupabaseLoader,
    sources: dict[str, EdgeFunctionSource] | None = None,
    delay_s: float | None = None,
    heartbeat_s: float | None = None,
) -> CollectionResult:
    """
    Visit every marche sequentially and finalise the log.

    Per-marche failures are logged and counted, never raised.
    """
    sources = sources or default_sources()
    delay = settings.collection_delay_s if delay_s is None else delay_s
    beat_every = settings.heartbeat_interval_s if heartbeat_s is None else heartbeat_s
    types = [t for t in COLLECTION_TYPES if t in set(collection_types)]

    log_id = collection_log.id
    total = len(marches)
    result = CollectionResult(
        log_id=log_id,
        marches_total=total,
        results={t: [] for t in types},
    )
    run_log = log.bind(log_id=log_id)
    t0 = time.monotonic()

    for i, marche in enumerate(marches):
        name = marche.display_name
        marche_start = utc_now().isoformat()

        def stats(label: str, processed: int) -> dict[str, Any]:
            return {
                "current_marche_name": name,
                "current_data_type": label,
                "marche_start_time": marche_start,
                "processed": processed,
                "total_marches": total,
            }

        await _publish(
            loader,
            log_id,
            {"marches_processed": i, "summary_stats": stats(MARCHE_INIT_LABEL, i)},
        )
        run_log.info("marche_collect_start", marche_id=marche.id, position=i + 1, total=total)

        marche_failed = False
        for collection_type in types:
            label = COLLECTING_LABELS[collection_type]
            await _publish(loader, log_id, {"summary_stats": stats(label, i)})
            source = sources[collection_type]
            try:
                async with heartbeat(
                    loader,
                    log_id,
                    beat_every,
                    lambda: stats(f"{label} (en cours)", i),
                ):
                    payload = await source.fetch(marche.latitude, marche.longitude)  # type: ignore[arg-type]
                snapshot = _snapshot_for(collection_type, source, marche, payload)
                await loader.insert_snapshot(source.table, snapshot)
                result.results[collection_type].append(
                    {"marche_id": marche.id, "success": True}
                )
            except Exception as exc:
                marche_failed = True
                result.results[collection_type].append(
                    {"marche_id": marche.id, "success": False, "error": str(exc)}
                )
                run_log.error(
                    "marche_collect_failed",
                    marche_id=marche.id,
                    collection_type=collection_type,
                    error=str(exc),
                )

        if marche_failed:
            result.errors_count += 1
        result.marches_processed = i + 1

        await _publish(
            loader,
            log_id,
            {"marches_processed": i + 1, "summary_stats": stats(MARCHE_DONE_LABEL, i + 1)},
        )

        if i < total - 1:
            await asyncio.sleep(delay)
            nxt = marches[i + 1]
            await _publish(
                loader,
                log_id,
                {
                    "last_ping": utc_now().isoformat(),
                    "summary_stats": {
                        "current_marche_name": f"Préparation marché {i + 2}/{total}",
                        "current_data_type": WAITING_LABEL,
                        "processed": i + 1,
                        "total_marches": total,
                        "next_marche": nxt.nom_marche or nxt.ville,
                    },
                },
            )

    if collection_log.started_at is not None:
        result.duration_seconds = elapsed_seconds(collection_log.started_at)
    else:
        result.duration_seconds = int(time.monotonic() - t0)

    await _finalise(loader, result)
    run_log.info(
        "batch_collection_complete",
        processed=result.marches_processed,
        errors=result.errors_count,
        success_rate=result.success_rate,
        duration_s=result.duration_seconds,
    )
    return result


async def _finalise(loader: SupabaseLoader, result: CollectionResult) -> None:
    summary = {
        "results": result.results,
        "total_marches": result.marches_total,
        "processed": result.marches_processed,
        "errors": result.errors_count,
        "success_rate": result.success_rate,
        "current_data_type": COMPLETED_LABEL,
        "current_marche_name": ALL_DONE_MARCHE_NAME,
    }
    try:
        await loader.finish_collection_log(
            result.log_id,
            marches_processed=result.marches_processed,
            errors_count=result.errors_count,
            duration_seconds=result.duration_seconds,
            summary_stats=summary,
        )
    except Exception as exc:
        log.error("collection_finalise_failed", log_id=result.log_id, error=str(exc))


async def run(
    request: BatchCollectionRequest,
    *,
    loader: SupabaseLoader | None = None,
    sources: dict[str, EdgeFunctionSource] | None = None,
    delay_s: float | None = None,
    heartbeat_s: float | None = None,
) -> CollectionResult:
    """start() + collect() in the foreground (CLI entry point)."""
    loader = loader or SupabaseLoader()
    collection_log, marches = await start(request, loader)
    return await collect(
        collection_log,
        marches,
        request.collection_types,
        loader=loader,
        sources=sources or default_sources(batch_mode=request.batch_mode),
        delay_s=delay_s,
        heartbeat_s=heartbeat_s,
    )
