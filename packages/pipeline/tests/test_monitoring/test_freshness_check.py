"""
tests/test_monitoring/test_freshness_check.py — Snapshot freshness and
stalled-run report.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

import freshness_check
from frequence_shared.constants import (
    BIODIVERSITY_SNAPSHOTS_TABLE,
    COLLECTION_LOGS_TABLE,
    REAL_ESTATE_SNAPSHOTS_TABLE,
)

NOW = datetime(2025, 6, 14, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def report(table_rows, mock_supabase_client):
    table_rows(BIODIVERSITY_SNAPSHOTS_TABLE, [{"created_at": "2025-06-01T08:00:00+00:00"}], count=12)
    table_rows(REAL_ESTATE_SNAPSHOTS_TABLE, [{"created_at": "2025-01-01T08:00:00+00:00"}], count=3)
    table_rows(
        COLLECTION_LOGS_TABLE,
        [
            {"id": "fresh", "last_ping": "2025-06-14T11:55:00+00:00"},
            {"id": "stalled", "last_ping": "2025-06-14T11:00:00+00:00", "marches_total": 10},
            {"id": "never", "started_at": "2025-06-14T11:30:00+00:00"},
        ],
    )
    return freshness_check.generate_report(mock_supabase_client, now=NOW)


def _table(report, name):
    return next(t for t in report["tables"] if t["table"] == name)


def test_fresh_table(report):
    row = _table(report, BIODIVERSITY_SNAPSHOTS_TABLE)
    assert row["record_count"] == 12
    assert row["latest_date"] == "2025-06-01"
    assert row["days_since_latest"] == 13
    assert row["is_stale"] is False


def test_empty_table_is_stale(report):
    row = _table(report, "weather_snapshots")
    assert row["record_count"] == 0
    assert row["is_stale"] is True


def test_old_table_is_stale(report):
    row = _table(report, REAL_ESTATE_SNAPSHOTS_TABLE)
    assert row["days_since_latest"] == 164
    assert row["is_stale"] is True


def test_stalled_runs(report):
    stalled = {run["id"]: run for run in report["stalled_runs"]}
    assert set(stalled) == {"stalled", "never"}
    assert stalled["stalled"]["minutes_since_ping"] == 60
    assert stalled["never"]["minutes_since_ping"] == 30


def test_has_problems(report):
    assert freshness_check.has_problems(report)
    healthy = {"tables": [{"is_stale": False}], "stalled_runs": []}
    assert not freshness_check.has_problems(healthy)


def test_query_error_recorded(mock_supabase_client):
    mock_supabase_client.table(BIODIVERSITY_SNAPSHOTS_TABLE).select.side_effect = RuntimeError("timeout")
    row = freshness_check._query_table_freshness(
        mock_supabase_client,
        BIODIVERSITY_SNAPSHOTS_TABLE,
        freshness_check.FRESHNESS_CONFIG[BIODIVERSITY_SNAPSHOTS_TABLE],
        NOW.date(),
    )
    assert row["error"] == "timeout"


def test_json_report_written(report, tmp_path):
    path = tmp_path / "out" / "freshness.json"
    freshness_check.write_json_report(report, path)
    assert '"stalled_runs"' in path.read_text()
