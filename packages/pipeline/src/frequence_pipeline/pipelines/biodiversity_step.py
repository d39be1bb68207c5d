"""
pipelines/biodiversity_step.py — Collect the biodiversity snapshot of one
marche inside an externally driven run.

The admin UI drives step collections itself: it creates the log row,
then calls this collector once per marche. Each call:

  1. announces the marche on the log (current_marche_name, last_ping), best effort
  2. calls biodiversity-data, up to 3 attempts, linear backoff 0.4 s x attempt
  3. inserts the snapshot (counts derived when the summary lacks them)
  4. bumps marches_processed and appends the marche to processed_ids

On failure the log's errors_count grows by one and a 500 result is
returned; the run itself is never marked terminal here.
"""

from __future__ import annotations

from typing import Any

import structlog

from frequence_shared.config import settings
from frequence_shared.constants import BIODIVERSITY_SNAPSHOTS_TABLE
from frequence_shared.models.collection import StepCollectionRequest
from frequence_shared.time_utils import utc_now
from frequence_pipeline.loaders.supabase_loader import SupabaseLoader
from frequence_pipeline.pipelines.step_result import StepResult
from frequence_pipeline.sources.biodiversity import BiodiversitySource
from frequence_pipeline.transforms.snapshots import build_biodiversity_snapshot
from frequence_pipeline.utils.retry import retry_call

log = structlog.get_logger(__name__)

DATA_TYPE = "biodiversity"


async def run(
    request: StepCollectionRequest,
    *,
    loader: SupabaseLoader | None = None,
    source: BiodiversitySource | None = None,
    max_attempts: int | None = None,
    retry_delay_s: float | None = None,
) -> StepResult:
    loader = loader or SupabaseLoader()
    source = source or BiodiversitySource()
    step_log = log.bind(log_id=request.log_id, marche_id=request.marche_id)
    step_log.info("biodiversity_step_start", marche_name=request.marche_name)

    current: dict[str, Any] = {
        "current_marche_name": request.marche_name,
        "current_data_type": DATA_TYPE,
    }

    try:
        await loader.update_collection_log(
            request.log_id,
            {"last_ping": utc_now().isoformat(), "summary_stats": current},
        )
    except Exception as exc:
        step_log.warning("progress_update_failed", error=str(exc))

    try:
        payload = await retry_call(
            lambda: source.fetch(request.latitude, request.longitude),
            max_attempts=max_attempts or settings.step_max_attempts,
            base_delay=settings.step_retry_delay_s if retry_delay_s is None else retry_delay_s,
            backoff="linear",
            name=source.function_name,
        )

        snapshot = build_biodiversity_snapshot(
            request.marche_id,
            request.latitude,
            request.longitude,
            payload,
            radius=source.radius,
            snapshot_date=utc_now().date(),
        )
        await loader.insert_snapshot(BIODIVERSITY_SNAPSHOTS_TABLE, snapshot)

        try:
            updated = await loader.record_marche_processed(
                request.log_id, request.marche_id, extra_stats=current
            )
            step_log.info(
                "biodiversity_step_complete",
                species=snapshot.total_species,
                processed=updated.marches_processed,
                total=updated.marches_total,
            )
        except Exception as exc:
            step_log.warning("progress_update_failed", error=str(exc))

        return StepResult.ok()

    except Exception as exc:
        step_log.error("biodiversity_step_failed", error=str(exc))
        try:
            await loader.increment_log_errors(request.log_id)
        except Exception as log_exc:
            step_log.warning("error_count_update_failed", error=str(log_exc))
        return StepResult.failed(str(exc) or "Unknown error occurred")
