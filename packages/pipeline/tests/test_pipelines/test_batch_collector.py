"""
tests/test_pipelines/test_batch_collector.py — Batch collection end to end
with fake sources and a mocked loader.
"""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from frequence_shared.constants import (
    BIODIVERSITY_SNAPSHOTS_TABLE,
    REAL_ESTATE_SNAPSHOTS_TABLE,
    WEATHER_SNAPSHOTS_TABLE,
)
from frequence_shared.models import BatchCollectionRequest, Marche
from frequence_pipeline.errors import EdgeFunctionError
from frequence_pipeline.pipelines import batch_collector
from frequence_pipeline.pipelines.batch_collector import COMPLETED_LABEL, MARCHE_DONE_LABEL, WAITING_LABEL

BIODIVERSITY_PAYLOAD = {"species": [{"kingdom": "Plantae"}], "summary": {"totalSpecies": 1}}
WEATHER_PAYLOAD = {"success": True, "data": {"aggregated": {"temperature": {"avg": 12.0}}}}
REAL_ESTATE_PAYLOAD = {"transactions": [{"prix_m2": 2500}]}


class FakeSource:
    """Stands in for an EdgeFunctionSource: records calls, fails on chosen marches."""

    def __init__(
        self,
        table: str,
        payload: dict[str, Any],
        *,
        fail_at: set[float] = frozenset(),
        delay_s: float = 0,
    ) -> None:
        self.table = table
        self.payload = payload
        self.fail_at = fail_at
        self.delay_s = delay_s
        self.radius = 500
        self.calls: list[tuple[float, float]] = []

    async def fetch(self, latitude: float, longitude: float) -> dict[str, Any]:
        self.calls.append((latitude, longitude))
        if self.delay_s:
            await asyncio.sleep(self.delay_s)
        if latitude in self.fail_at:
            raise EdgeFunctionError("fake", "upstream down", status_code=503)
        return self.payload


def make_sources(**overrides: FakeSource) -> dict[str, FakeSource]:
    sources = {
        "biodiversity": FakeSource(BIODIVERSITY_SNAPSHOTS_TABLE, BIODIVERSITY_PAYLOAD),
        "weather": FakeSource(WEATHER_SNAPSHOTS_TABLE, WEATHER_PAYLOAD),
        "real_estate": FakeSource(REAL_ESTATE_SNAPSHOTS_TABLE, REAL_ESTATE_PAYLOAD),
    }
    sources.update(overrides)
    return sources


def _published(mock_loader) -> list[dict[str, Any]]:
    return [c.args[1] for c in mock_loader.update_collection_log.call_args_list]


async def _collect(log_row, marches, types, mock_loader, sources, **kwargs):
    return await batch_collector.collect(
        log_row,
        marches,
        types,
        loader=mock_loader,
        sources=sources,
        delay_s=0,
        heartbeat_s=kwargs.pop("heartbeat_s", 0),
        **kwargs,
    )


# ---------------------------------------------------------------------------
# collect()
# ---------------------------------------------------------------------------

class TestCollect:
    @pytest.mark.asyncio
    async def test_all_succeed(self, log_row, marches, mock_loader):
        sources = make_sources()
        result = await _collect(log_row, marches, ["biodiversity", "weather"], mock_loader, sources)

        assert result.marches_processed == 2
        assert result.errors_count == 0
        assert result.success_rate == 100
        assert mock_loader.insert_snapshot.await_count == 4
        assert sources["real_estate"].calls == []
        assert [r["success"] for r in result.results["weather"]] == [True, True]

        finish = mock_loader.finish_collection_log.await_args
        assert finish.kwargs["marches_processed"] == 2
        assert finish.kwargs["errors_count"] == 0
        assert finish.kwargs["summary_stats"]["success_rate"] == 100
        assert finish.kwargs["summary_stats"]["current_data_type"] == COMPLETED_LABEL

    @pytest.mark.asyncio
    async def test_marche_counted_once_when_several_types_fail(self, log_row, marches, mock_loader):
        failing_lat = marches[0].latitude
        sources = make_sources(
            biodiversity=FakeSource(BIODIVERSITY_SNAPSHOTS_TABLE, BIODIVERSITY_PAYLOAD, fail_at={failing_lat}),
            weather=FakeSource(WEATHER_SNAPSHOTS_TABLE, WEATHER_PAYLOAD, fail_at={failing_lat}),
        )
        result = await _collect(log_row, marches, ["biodiversity", "weather"], mock_loader, sources)

        assert result.errors_count == 1
        assert result.marches_processed == 2
        assert result.success_rate == 50
        assert result.results["biodiversity"][0]["success"] is False
        assert "HTTP 503" in result.results["biodiversity"][0]["error"]
        assert result.results["biodiversity"][1]["success"] is True
        # Second marche still collected
        assert len(sources["weather"].calls) == 2

    @pytest.mark.asyncio
    async def test_insert_failure_is_a_marche_error(self, log_row, marches, mock_loader):
        mock_loader.insert_snapshot.side_effect = [RuntimeError("insert failed"), None]
        result = await _collect(log_row, marches, ["weather"], mock_loader, make_sources())
        assert result.errors_count == 1
        assert result.results["weather"][0]["error"] == "insert failed"

    @pytest.mark.asyncio
    async def test_types_run_in_processing_order(self, log_row, marches, mock_loader):
        order: list[str] = []
        sources = make_sources()
        for name, source in sources.items():
            original = source.fetch

            async def tracked(lat, lon, _name=name, _original=original):
                order.append(_name)
                return await _original(lat, lon)

            source.fetch = tracked

        await _collect(log_row, marches[:1], ["real_estate", "biodiversity"], mock_loader, sources)
        assert order == ["biodiversity", "real_estate"]

    @pytest.mark.asyncio
    async def test_progress_failures_do_not_abort(self, log_row, marches, mock_loader):
        mock_loader.update_collection_log.side_effect = RuntimeError("network")
        result = await _collect(log_row, marches, ["weather"], mock_loader, make_sources())
        assert result.marches_processed == 2
        mock_loader.finish_collection_log.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_progress_updates(self, log_row, marches, mock_loader):
        await _collect(log_row, marches, ["weather"], mock_loader, make_sources())
        published = _published(mock_loader)

        done = [p for p in published if p.get("summary_stats", {}).get("current_data_type") == MARCHE_DONE_LABEL]
        assert [p["marches_processed"] for p in done] == [1, 2]
        assert done[0]["summary_stats"]["current_marche_name"] == "Marche des Berges"

        waiting = [p for p in published if p.get("summary_stats", {}).get("current_data_type") == WAITING_LABEL]
        assert len(waiting) == 1
        assert waiting[0]["summary_stats"]["next_marche"] == "Périgueux"
        assert waiting[0]["summary_stats"]["current_marche_name"] == "Préparation marché 2/2"

    @pytest.mark.asyncio
    async def test_heartbeat_refreshes_last_ping_during_slow_call(self, log_row, marches, mock_loader):
        sources = make_sources(
            weather=FakeSource(WEATHER_SNAPSHOTS_TABLE, WEATHER_PAYLOAD, delay_s=0.2),
        )
        await _collect(log_row, marches[:1], ["weather"], mock_loader, sources, heartbeat_s=0.02)

        beats = [
            p for p in _published(mock_loader)
            if "last_ping" in p and p.get("summary_stats", {}).get("current_data_type", "").endswith("(en cours)")
        ]
        assert beats

    @pytest.mark.asyncio
    async def test_empty_run_finalises(self, log_row, mock_loader):
        result = await _collect(log_row, [], ["weather"], mock_loader, make_sources())
        assert result.marches_total == 0
        assert result.success_rate == 0
        mock_loader.finish_collection_log.assert_awaited_once()


# ---------------------------------------------------------------------------
# start() / run()
# ---------------------------------------------------------------------------

class TestStart:
    @pytest.mark.asyncio
    async def test_marches_without_coordinates_are_skipped(self, mock_loader, marches):
        mock_loader.fetch_marches.return_value = [
            *marches,
            Marche(id="m3", nom_marche="Sans GPS", latitude=None, longitude=None),
            Marche(id="m4", nom_marche="Zéro", latitude=0, longitude=-0.5),
        ]
        request = BatchCollectionRequest(collectionTypes=["weather"])

        collection_log, valid = await batch_collector.start(request, mock_loader)

        assert [m.id for m in valid] == ["m1", "m2"]
        assert collection_log.marches_total == 2
        mock_loader.create_collection_log.assert_awaited_once_with(["weather"], "manual")
        first = _published(mock_loader)[0]
        assert first["marches_total"] == 2
        assert first["summary_stats"]["current_marche_name"] == "Initialisation"

    @pytest.mark.asyncio
    async def test_run_wires_start_and_collect(self, mock_loader, marches):
        mock_loader.fetch_marches.return_value = marches
        request = BatchCollectionRequest(
            collectionTypes=["weather", "weather"],
            marchesFilter={"region": "Nouvelle-Aquitaine"},
        )

        result = await batch_collector.run(
            request, loader=mock_loader, sources=make_sources(), delay_s=0, heartbeat_s=0
        )

        assert request.collection_types == ["weather"]
        assert result.marches_processed == 2
        assert mock_loader.fetch_marches.await_args.args[0].region == "Nouvelle-Aquitaine"

    @pytest.mark.asyncio
    async def test_run_skips_missing_coordinates_and_counts_failure(self, mock_loader, marches):
        located = marches[0]
        mock_loader.fetch_marches.return_value = [
            located,
            Marche(id="m9", nom_marche="Sans GPS", latitude=None, longitude=None),
        ]
        sources = make_sources(
            weather=FakeSource(WEATHER_SNAPSHOTS_TABLE, WEATHER_PAYLOAD, fail_at={located.latitude}),
        )

        result = await batch_collector.run(
            BatchCollectionRequest(collectionTypes=["weather"]),
            loader=mock_loader,
            sources=sources,
            delay_s=0,
            heartbeat_s=0,
        )

        assert result.marches_total == 1
        assert result.marches_processed == 1
        assert result.errors_count == 1
        assert result.success_rate == 0
        assert sources["weather"].calls == [(located.latitude, located.longitude)]
        finish = mock_loader.finish_collection_log.await_args
        assert finish.kwargs["marches_processed"] == 1
        assert finish.kwargs["errors_count"] == 1

    def test_request_requires_a_type(self):
        with pytest.raises(ValueError):
            BatchCollectionRequest(collectionTypes=[])
