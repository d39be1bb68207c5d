"""
Collector endpoints, mounted where the admin UI calls its edge functions.

    POST /functions/v1/batch-data-collector      starts a background batch run
    POST /functions/v1/collect-biodiversity-step one marche, biodiversity
    POST /functions/v1/collect-real-estate-step  one marche, real estate
    GET  /functions/v1/collection-logs           recent runs with progress
    GET  /functions/v1/collection-logs/{log_id}  one run with progress
"""

from __future__ import annotations

from dataclasses import asdict

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from fastapi.responses import JSONResponse

from frequence_shared.config import settings
from frequence_shared.models import BatchCollectionRequest, DataCollectionLog, StepCollectionRequest
from frequence_pipeline.loaders.supabase_loader import SupabaseLoader
from frequence_pipeline.pipelines import batch_collector, biodiversity_step, real_estate_step
from frequence_pipeline.progress import describe_progress

from frequence_api.dependencies import get_loader
from frequence_api.responses import error_response, wrap_response

logger = structlog.get_logger()

router = APIRouter(prefix=settings.functions_path, tags=["functions"])


def _log_with_progress(collection_log: DataCollectionLog) -> dict:
    return {
        **collection_log.model_dump(mode="json"),
        "progress": asdict(describe_progress(collection_log)),
    }


@router.post("/batch-data-collector")
async def batch_data_collector(
    request: BatchCollectionRequest,
    background_tasks: BackgroundTasks,
    loader: SupabaseLoader = Depends(get_loader),
) -> JSONResponse:
    try:
        collection_log, marches = await batch_collector.start(request, loader)
    except Exception as exc:
        logger.error("batch_collection_setup_failed", error=str(exc))
        return error_response(str(exc))

    background_tasks.add_task(
        batch_collector.collect,
        collection_log,
        marches,
        request.collection_types,
        loader=loader,
        sources=batch_collector.default_sources(batch_mode=request.batch_mode),
    )
    return JSONResponse(
        {
            "success": True,
            "logId": collection_log.id,
            "message": "Collection started in background",
            "total_marches": len(marches),
        }
    )


@router.post("/collect-biodiversity-step")
async def collect_biodiversity_step(
    request: StepCollectionRequest,
    loader: SupabaseLoader = Depends(get_loader),
) -> JSONResponse:
    result = await biodiversity_step.run(request, loader=loader)
    return JSONResponse(result.to_response(), status_code=result.status_code)


@router.post("/collect-real-estate-step")
async def collect_real_estate_step(
    request: StepCollectionRequest,
    loader: SupabaseLoader = Depends(get_loader),
) -> JSONResponse:
    result = await real_estate_step.run(request, loader=loader)
    return JSONResponse(result.to_response(), status_code=result.status_code)


@router.get("/collection-logs")
async def list_collection_logs(
    limit: int = Query(20, ge=1, le=100),
    loader: SupabaseLoader = Depends(get_loader),
) -> dict:
    logs = await loader.list_collection_logs(limit)
    return wrap_response([_log_with_progress(row) for row in logs], total_count=len(logs))


@router.get("/collection-logs/{log_id}")
async def get_collection_log(
    log_id: str,
    loader: SupabaseLoader = Depends(get_loader),
) -> dict:
    collection_log = await loader.get_collection_log(log_id)
    if collection_log is None:
        raise HTTPException(status_code=404, detail=f"Collection log {log_id} not found")
    return wrap_response(_log_with_progress(collection_log))
