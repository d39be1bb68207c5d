"""
pipelines/real_estate_step.py — Collect the real-estate snapshot of one
marche inside an externally driven run.

Same skeleton as the biodiversity step, against lexicon-proxy:
3 attempts with exponential backoff (0.4 s, 0.8 s).

When every attempt fails the marche still counts as handled: the log
gets errors_count + 1 and marches_processed + 1, and the result is a
non-success with HTTP 200 so the driving UI moves on. A snapshot insert
failure, on the other hand, is a 500.
"""

from __future__ import annotations

import structlog

from frequence_shared.config import settings
from frequence_shared.constants import COLLECTING_LABELS, REAL_ESTATE_SNAPSHOTS_TABLE
from frequence_shared.models.collection import StepCollectionRequest
from frequence_shared.time_utils import utc_now
from frequence_pipeline.loaders.supabase_loader import SupabaseLoader
from frequence_pipeline.pipelines.step_result import StepResult
from frequence_pipeline.sources.real_estate import RealEstateSource
from frequence_pipeline.transforms.snapshots import build_real_estate_snapshot
from frequence_pipeline.utils.retry import retry_call

log = structlog.get_logger(__name__)

UNKNOWN_MARCHE_NAME = "Marché inconnu"
ERROR_LABEL = "Erreur ❌"
DONE_LABEL = "🏠 Immobilier traité ✅"


async def run(
    request: StepCollectionRequest,
    *,
    loader: SupabaseLoader | None = None,
    source: RealEstateSource | None = None,
    max_attempts: int | None = None,
    retry_delay_s: float | None = None,
) -> StepResult:
    loader = loader or SupabaseLoader()
    source = source or RealEstateSource()
    step_log = log.bind(log_id=request.log_id, marche_id=request.marche_id)
    step_log.info("real_estate_step_start", marche_name=request.marche_name)

    try:
        now = utc_now().isoformat()
        await loader.update_collection_log(
            request.log_id,
            {
                "last_ping": now,
                "summary_stats": {
                    "current_marche_name": request.marche_name or UNKNOWN_MARCHE_NAME,
                    "current_data_type": COLLECTING_LABELS["real_estate"],
                    "marche_start_time": now,
                },
            },
        )
    except Exception as exc:
        step_log.warning("progress_update_failed", error=str(exc))

    try:
        payload = await retry_call(
            lambda: source.fetch(request.latitude, request.longitude),
            max_attempts=max_attempts or settings.step_max_attempts,
            base_delay=settings.step_retry_delay_s if retry_delay_s is None else retry_delay_s,
            backoff="exponential",
            name=source.function_name,
        )
    except Exception as exc:
        step_log.error("real_estate_step_exhausted", error=str(exc))
        try:
            await loader.record_marche_processed(
                request.log_id,
                request.marche_id,
                extra_stats={"current_data_type": ERROR_LABEL, "error": str(exc)},
                count_error=True,
            )
        except Exception as log_exc:
            step_log.warning("error_count_update_failed", error=str(log_exc))
        return StepResult.failed(str(exc), status_code=200)

    try:
        snapshot = build_real_estate_snapshot(
            request.marche_id, request.latitude, request.longitude, payload
        )
        await loader.insert_snapshot(REAL_ESTATE_SNAPSHOTS_TABLE, snapshot)
    except Exception as exc:
        step_log.error("snapshot_insert_failed", error=str(exc))
        return StepResult.failed(str(exc))

    try:
        await loader.record_marche_processed(
            request.log_id,
            request.marche_id,
            extra_stats={
                "current_data_type": DONE_LABEL,
                "transactions_found": snapshot.transactions_count,
            },
        )
    except Exception as exc:
        step_log.warning("progress_update_failed", error=str(exc))

    step_log.info(
        "real_estate_step_complete",
        transactions=snapshot.transactions_count,
        avg_price_m2=snapshot.avg_price_m2,
    )
    return StepResult.ok(
        transactionsCount=snapshot.transactions_count,
        avgPriceM2=snapshot.avg_price_m2,
        medianPriceM2=snapshot.median_price_m2,
    )
