"""
freshness_check.py — Snapshot freshness and stalled-run monitor.

Queries each snapshot table in Supabase to find how recent its latest
row is, lists collection runs still marked "running" whose last_ping is
older than STALL_AFTER, prints a report table and writes it as JSON.
Exits with status 1 when a table is stale or a run is stalled, so the
script can gate a cron job or CI step.

Usage:
    python monitoring/freshness_check.py
    python monitoring/freshness_check.py --report /tmp/freshness.json
"""

from __future__ import annotations

import json
import sys
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Any

import click

from frequence_shared.constants import (
    BIODIVERSITY_SNAPSHOTS_TABLE,
    COLLECTION_LOGS_TABLE,
    REAL_ESTATE_SNAPSHOTS_TABLE,
    WEATHER_SNAPSHOTS_TABLE,
)
from frequence_shared.db import get_supabase_client
from frequence_shared.time_utils import parse_datetime, utc_now

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

FRESHNESS_CONFIG: dict[str, dict[str, Any]] = {
    BIODIVERSITY_SNAPSHOTS_TABLE: {
        "max_stale_days": 45,
        "date_column": "created_at",
        "description": "Biodiversity snapshots (GBIF, iNaturalist, eBird)",
    },
    WEATHER_SNAPSHOTS_TABLE: {
        "max_stale_days": 45,
        "date_column": "created_at",
        "description": "Weather snapshots",
    },
    REAL_ESTATE_SNAPSHOTS_TABLE: {
        "max_stale_days": 120,
        "date_column": "created_at",
        "description": "Real-estate snapshots (LEXICON)",
    },
}

STALL_AFTER = timedelta(minutes=10)

DEFAULT_REPORT_PATH = Path(__file__).resolve().parent / "freshness_report.json"

# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


def _query_table_freshness(
    supabase: Any,
    table: str,
    cfg: dict[str, Any],
    today: date,
) -> dict[str, Any]:
    """Return freshness info for a single table."""
    result: dict[str, Any] = {
        "table": table,
        "description": cfg["description"],
        "record_count": 0,
        "latest_date": None,
        "days_since_latest": None,
        "max_stale_days": cfg["max_stale_days"],
        "is_stale": False,
    }

    try:
        count_resp = (
            supabase.table(table)
            .select("*", count="exact")
            .limit(0)
            .execute()
        )
        result["record_count"] = count_resp.count or 0
        if result["record_count"] == 0:
            # An empty table has never been collected
            result["is_stale"] = True
            return result

        date_col = cfg["date_column"]
        row = (
            supabase.table(table)
            .select(date_col)
            .order(date_col, desc=True)
            .limit(1)
            .execute()
        ).data
        if row:
            latest = date.fromisoformat(str(row[0][date_col])[:10])
            days_since = (today - latest).days
            result["latest_date"] = latest.isoformat()
            result["days_since_latest"] = days_since
            result["is_stale"] = days_since > cfg["max_stale_days"]

    except Exception as exc:
        result["error"] = str(exc)

    return result


def find_stalled_runs(supabase: Any, now: datetime) -> list[dict[str, Any]]:
    """Running collection logs whose heartbeat (or start) is older than STALL_AFTER."""
    rows = (
        supabase.table(COLLECTION_LOGS_TABLE)
        .select("id,collection_type,started_at,last_ping,marches_processed,marches_total")
        .eq("status", "running")
        .execute()
    ).data or []

    stalled = []
    for row in rows:
        seen = parse_datetime(row.get("last_ping")) or parse_datetime(row.get("started_at"))
        if seen is None or now - seen > STALL_AFTER:
            stalled.append(
                {
                    **row,
                    "minutes_since_ping": (
                        None if seen is None else int((now - seen).total_seconds() // 60)
                    ),
                }
            )
    return stalled


# ---------------------------------------------------------------------------
# Report generation
# ---------------------------------------------------------------------------


def generate_report(supabase: Any | None = None, now: datetime | None = None) -> dict[str, Any]:
    supabase = supabase or get_supabase_client(service_role=True)
    now = now or utc_now()
    tables = [
        _query_table_freshness(supabase, table, cfg, now.date())
        for table, cfg in FRESHNESS_CONFIG.items()
    ]
    return {
        "generated_at": now.isoformat(),
        "tables": tables,
        "stalled_runs": find_stalled_runs(supabase, now),
    }


def has_problems(report: dict[str, Any]) -> bool:
    return bool(report["stalled_runs"]) or any(
        t["is_stale"] or t.get("error") for t in report["tables"]
    )


def print_report_table(report: dict[str, Any]) -> None:
    header = (
        f"{'Table':<24} {'Description':<48} {'Records':>8} "
        f"{'Latest Date':>12} {'Days Ago':>9} {'Max':>5} {'Stale?':>7}"
    )
    sep = "-" * len(header)
    click.echo()
    click.echo(header)
    click.echo(sep)

    for row in report["tables"]:
        stale_flag = "YES" if row["is_stale"] else ""
        if row.get("error"):
            stale_flag = "ERROR"
        latest = row["latest_date"] or "—"
        days = row["days_since_latest"] if row["days_since_latest"] is not None else "—"
        click.echo(
            f"{row['table']:<24} {row['description']:<48} "
            f"{row['record_count']:>8} {latest:>12} {str(days):>9} "
            f"{row['max_stale_days']:>5} {stale_flag:>7}"
        )
    click.echo(sep)

    for run in report["stalled_runs"]:
        minutes = run["minutes_since_ping"]
        click.echo(
            f"⚠ Stalled run {run['id']} ({run.get('collection_type')}): "
            f"{run.get('marches_processed') or 0}/{run.get('marches_total') or 0} marchés, "
            f"last ping {'never' if minutes is None else f'{minutes} min ago'}"
        )
    click.echo()


def write_json_report(report: dict[str, Any], path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(report, indent=2, default=str, ensure_ascii=False) + "\n")
    click.echo(f"Report written to {path}")


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------


@click.command()
@click.option(
    "--report",
    "report_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=DEFAULT_REPORT_PATH,
    show_default=True,
)
def main(report_path: Path) -> None:
    click.echo("=== La Fréquence du Vivant freshness check ===")

    report = generate_report()
    print_report_table(report)
    write_json_report(report, report_path)

    if has_problems(report):
        stale = sum(1 for t in report["tables"] if t["is_stale"] or t.get("error"))
        click.echo(f"🚨 {stale} stale table(s), {len(report['stalled_runs'])} stalled run(s)")
        sys.exit(1)
    click.echo("✅ All snapshot tables are fresh and no run is stalled.")


if __name__ == "__main__":
    main()
