"""Tests for the collector endpoints under /functions/v1."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

from frequence_pipeline.pipelines import batch_collector, biodiversity_step, real_estate_step
from frequence_pipeline.pipelines.step_result import StepResult

FUNCTIONS = "/functions/v1"
STEP_BODY = {
    "logId": "log-1",
    "marcheId": "m1",
    "latitude": 44.84,
    "longitude": -0.57,
    "marcheName": "Marche des Berges",
}


# ---------------------------------------------------------------------------
# Batch collector
# ---------------------------------------------------------------------------

def test_batch_starts_background_collection(client, loader, running_log, sample_marches):
    """POST /batch-data-collector answers at once and schedules collect()."""
    start = AsyncMock(return_value=(running_log, sample_marches))
    collect = AsyncMock()
    with patch.object(batch_collector, "start", start), patch.object(batch_collector, "collect", collect):
        response = client.post(
            f"{FUNCTIONS}/batch-data-collector",
            json={"collectionTypes": ["weather", "biodiversity"], "mode": "scheduled"},
        )

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "logId": "log-1",
        "message": "Collection started in background",
        "total_marches": 2,
    }
    request = start.await_args.args[0]
    assert request.collection_types == ["biodiversity", "weather"]
    assert request.mode == "scheduled"

    collect.assert_awaited_once()
    args, kwargs = collect.await_args
    assert args == (running_log, sample_marches, ["biodiversity", "weather"])
    assert kwargs["loader"] is loader
    assert set(kwargs["sources"]) == {"biodiversity", "weather", "real_estate"}


def test_batch_setup_failure_is_500(client):
    start = AsyncMock(side_effect=RuntimeError("marches query failed"))
    with patch.object(batch_collector, "start", start):
        response = client.post(
            f"{FUNCTIONS}/batch-data-collector",
            json={"collectionTypes": ["weather"]},
        )

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "marches query failed"}


def test_batch_rejects_unknown_type(client):
    response = client.post(
        f"{FUNCTIONS}/batch-data-collector",
        json={"collectionTypes": ["traffic"]},
    )
    assert response.status_code == 422


def test_batch_requires_a_type(client):
    response = client.post(f"{FUNCTIONS}/batch-data-collector", json={"collectionTypes": []})
    assert response.status_code == 422


# ---------------------------------------------------------------------------
# Step collectors
# ---------------------------------------------------------------------------

def test_biodiversity_step_success(client, loader):
    run = AsyncMock(return_value=StepResult.ok())
    with patch.object(biodiversity_step, "run", run):
        response = client.post(f"{FUNCTIONS}/collect-biodiversity-step", json=STEP_BODY)

    assert response.status_code == 200
    assert response.json() == {"success": True}
    request = run.await_args.args[0]
    assert request.marche_id == "m1"
    assert run.await_args.kwargs["loader"] is loader


def test_biodiversity_step_failure_is_500(client):
    run = AsyncMock(return_value=StepResult.failed("biodiversity-data failed (HTTP 503): down"))
    with patch.object(biodiversity_step, "run", run):
        response = client.post(f"{FUNCTIONS}/collect-biodiversity-step", json=STEP_BODY)

    assert response.status_code == 500
    assert response.json()["success"] is False


def test_real_estate_exhaustion_is_200(client):
    run = AsyncMock(return_value=StepResult.failed("lexicon-proxy failed: timed out", status_code=200))
    with patch.object(real_estate_step, "run", run):
        response = client.post(f"{FUNCTIONS}/collect-real-estate-step", json=STEP_BODY)

    assert response.status_code == 200
    assert response.json() == {"success": False, "error": "lexicon-proxy failed: timed out"}


def test_real_estate_metrics(client):
    result = StepResult.ok(transactionsCount=3, avgPriceM2=2800.0, medianPriceM2=2700.0)
    with patch.object(real_estate_step, "run", AsyncMock(return_value=result)):
        response = client.post(f"{FUNCTIONS}/collect-real-estate-step", json=STEP_BODY)

    assert response.json()["transactionsCount"] == 3


def test_step_requires_coordinates(client):
    body = {k: v for k, v in STEP_BODY.items() if k != "latitude"}
    response = client.post(f"{FUNCTIONS}/collect-real-estate-step", json=body)
    assert response.status_code == 422


# ---------------------------------------------------------------------------
# Collection logs
# ---------------------------------------------------------------------------

def test_list_collection_logs(client, loader, running_log):
    loader.list_collection_logs.return_value = [running_log]
    response = client.get(f"{FUNCTIONS}/collection-logs?limit=5")

    assert response.status_code == 200
    body = response.json()
    assert body["meta"]["total_count"] == 1
    assert body["data"][0]["id"] == "log-1"
    assert body["data"][0]["progress"]["progress"] == 25
    loader.list_collection_logs.assert_awaited_once_with(5)


def test_get_collection_log_with_progress(client, loader, running_log):
    loader.get_collection_log.return_value = running_log
    response = client.get(f"{FUNCTIONS}/collection-logs/log-1")

    assert response.status_code == 200
    progress = response.json()["data"]["progress"]
    assert progress["current_marche_name"] == "Marche des Berges"
    assert progress["is_completed"] is False


def test_get_collection_log_not_found(client, loader):
    loader.get_collection_log.return_value = None
    response = client.get(f"{FUNCTIONS}/collection-logs/missing")
    assert response.status_code == 404


def test_collection_logs_limit_bounds(client):
    assert client.get(f"{FUNCTIONS}/collection-logs?limit=0").status_code == 422
