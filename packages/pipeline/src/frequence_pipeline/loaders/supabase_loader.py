"""
loaders/supabase_loader.py — All Supabase reads and writes of the workers.

Collectors and exports go through this module to reach the database.
The loader:
  - Reads marches (optionally filtered) and literary texts
  - Inserts snapshot rows (insert-only; re-runs add rows)
  - Creates and updates data_collection_logs rows, the progress record
    the admin UI polls while a collection runs

Usage:
    from frequence_pipeline.loaders.supabase_loader import SupabaseLoader

    loader = SupabaseLoader()
    log_row = await loader.create_collection_log(["biodiversity"], "manual")
    marches = await loader.fetch_marches(MarchesFilter(region="Nouvelle-Aquitaine"))
    await loader.insert_snapshot(BIODIVERSITY_SNAPSHOTS_TABLE, snapshot)
    await loader.record_marche_processed(log_row.id, marches[0].id)
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import structlog
from pydantic import BaseModel

from frequence_shared.constants import (
    COLLECTION_LOGS_TABLE,
    MARCHE_TEXTES_TABLE,
    MARCHES_TABLE,
)
from frequence_shared.db import get_supabase_client
from frequence_shared.models.collection import DataCollectionLog
from frequence_shared.models.marches import Marche, MarchesFilter
from frequence_shared.models.textes import TexteExport
from frequence_shared.time_utils import utc_now
from frequence_pipeline.errors import CollectionLogError

log = structlog.get_logger(__name__)

MARCHE_COLUMNS = "id, nom_marche, latitude, longitude, ville, region, departement"
EXPORT_MARCHE_COLUMNS = "id, nom_marche, ville, region, date"
TEXTE_COLUMNS = "id, titre, contenu, type_texte, marche_id, ordre, created_at"


def _now_iso() -> str:
    return utc_now().isoformat()


class SupabaseLoader:
    """
    Handles every database access of the workers.

    Uses the service role key so RLS is bypassed for collector writes.
    """

    def __init__(self, client: Any | None = None) -> None:
        self._client = client or get_supabase_client(service_role=True)

    # ------------------------------------------------------------------
    # Marches
    # ------------------------------------------------------------------

    async def fetch_marches(self, marches_filter: MarchesFilter | None = None) -> list[Marche]:
        """
        Return marches matching the filter (ids IN, region EQ, departement EQ).

        Marches without coordinates are returned too; callers decide.
        """
        query = self._client.table(MARCHES_TABLE).select(MARCHE_COLUMNS)
        if marches_filter is not None:
            if marches_filter.ids:
                query = query.in_("id", marches_filter.ids)
            if marches_filter.region:
                query = query.eq("region", marches_filter.region)
            if marches_filter.departement:
                query = query.eq("departement", marches_filter.departement)
        result = query.execute()
        marches = [Marche.from_db_row(row) for row in (result.data or [])]
        log.info("marches_fetched", count=len(marches))
        return marches

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    async def insert_snapshot(self, table: str, snapshot: BaseModel) -> None:
        """Insert one snapshot row. Errors propagate to the caller."""
        row = snapshot.to_insert_dict()  # type: ignore[attr-defined]
        self._client.table(table).insert(row).execute()
        log.debug("snapshot_inserted", table=table, marche_id=row.get("marche_id"))

    # ------------------------------------------------------------------
    # Collection logs
    # ------------------------------------------------------------------

    async def create_collection_log(
        self,
        collection_types: Sequence[str],
        mode: str,
    ) -> DataCollectionLog:
        """
        Insert a 'running' data_collection_logs row and return it.

        Raises:
            CollectionLogError: when the insert fails or returns no row.
        """
        now = _now_iso()
        row = {
            "collection_type": ",".join(collection_types),
            "collection_mode": mode,
            "status": "running",
            "started_at": now,
            "last_ping": now,
        }
        try:
            result = self._client.table(COLLECTION_LOGS_TABLE).insert(row).execute()
        except Exception as exc:
            raise CollectionLogError(f"Failed to create collection log: {exc}") from exc
        if not result.data:
            raise CollectionLogError("Failed to create collection log: no row returned")
        created = DataCollectionLog.from_db_row(result.data[0])
        log.info("collection_log_created", log_id=created.id, types=row["collection_type"])
        return created

    async def get_collection_log(self, log_id: str) -> DataCollectionLog | None:
        result = (
            self._client.table(COLLECTION_LOGS_TABLE)
            .select("*")
            .eq("id", log_id)
            .limit(1)
            .execute()
        )
        rows = result.data or []
        return DataCollectionLog.from_db_row(rows[0]) if rows else None

    async def list_collection_logs(self, limit: int = 20) -> list[DataCollectionLog]:
        result = (
            self._client.table(COLLECTION_LOGS_TABLE)
            .select("*")
            .order("started_at", desc=True)
            .limit(limit)
            .execute()
        )
        return [DataCollectionLog.from_db_row(row) for row in (result.data or [])]

    async def update_collection_log(self, log_id: str, fields: dict[str, Any]) -> None:
        """Patch a log row. Errors propagate; progress callers catch them."""
        self._client.table(COLLECTION_LOGS_TABLE).update(fields).eq("id", log_id).execute()

    async def _require_log(self, log_id: str) -> DataCollectionLog:
        current = await self.get_collection_log(log_id)
        if current is None:
            raise CollectionLogError(f"Collection log {log_id} not found")
        return current

    async def increment_log_errors(self, log_id: str) -> int:
        """Add exactly one to errors_count (read-modify-write). Returns the new count."""
        current = await self._require_log(log_id)
        errors = current.errors_count + 1
        await self.update_collection_log(
            log_id, {"errors_count": errors, "last_ping": _now_iso()}
        )
        return errors

    async def record_marche_processed(
        self,
        log_id: str,
        marche_id: str,
        *,
        extra_stats: dict[str, Any] | None = None,
        count_error: bool = False,
    ) -> DataCollectionLog:
        """
        Bump marches_processed, append marche_id to summary_stats.processed_ids
        and refresh last_ping.

        Read-modify-write: concurrent step calls on the same log may
        lose updates (last write wins).
        """
        current = await self._require_log(log_id)
        stats = dict(current.summary_stats)
        stats["processed_ids"] = [*current.processed_ids, marche_id]
        stats["processed"] = current.marches_processed + 1
        if extra_stats:
            stats.update(extra_stats)

        fields: dict[str, Any] = {
            "marches_processed": current.marches_processed + 1,
            "summary_stats": stats,
            "last_ping": _now_iso(),
        }
        if count_error:
            fields["errors_count"] = current.errors_count + 1
        await self.update_collection_log(log_id, fields)
        return current.model_copy(update=fields)

    async def finish_collection_log(
        self,
        log_id: str,
        *,
        marches_processed: int,
        errors_count: int,
        duration_seconds: int,
        summary_stats: dict[str, Any],
        status: str = "completed",
    ) -> None:
        now = _now_iso()
        await self.update_collection_log(
            log_id,
            {
                "status": status,
                "completed_at": now,
                "last_ping": now,
                "duration_seconds": duration_seconds,
                "marches_processed": marches_processed,
                "errors_count": errors_count,
                "summary_stats": summary_stats,
            },
        )
        log.info(
            "collection_log_finished",
            log_id=log_id,
            status=status,
            marches_processed=marches_processed,
            errors_count=errors_count,
        )

    # ------------------------------------------------------------------
    # Literary texts
    # ------------------------------------------------------------------

    async def fetch_textes(
        self,
        marche_ids: Sequence[str] | None = None,
        types: Sequence[str] | None = None,
    ) -> list[TexteExport]:
        """
        Return texts enriched with their marche's name, city, region and date.

        Texts whose marche cannot be read are returned without marche fields.
        """
        marches_query = self._client.table(MARCHES_TABLE).select(EXPORT_MARCHE_COLUMNS)
        if marche_ids:
            marches_query = marches_query.in_("id", list(marche_ids))
        marches = {row["id"]: row for row in (marches_query.execute().data or [])}

        textes_query = self._client.table(MARCHE_TEXTES_TABLE).select(TEXTE_COLUMNS)
        if marche_ids:
            textes_query = textes_query.in_("marche_id", list(marche_ids))
        if types:
            textes_query = textes_query.in_("type_texte", list(types))
        rows = textes_query.order("ordre").execute().data or []

        textes: list[TexteExport] = []
        for row in rows:
            marche = marches.get(row.get("marche_id")) or {}
            textes.append(
                TexteExport.from_db_row(
                    {
                        **row,
                        "marche_nom": marche.get("nom_marche"),
                        "marche_ville": marche.get("ville"),
                        "marche_region": marche.get("region"),
                        "marche_date": marche.get("date"),
                    }
                )
            )
        log.info("textes_fetched", count=len(textes), marches=len(marches))
        return textes
