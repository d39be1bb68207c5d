"""
models/collection.py — Collection requests and the data_collection_logs row.

Request bodies keep the camelCase keys the admin UI sends
(collectionTypes, marchesFilter, logId, ...); Python code uses the
snake_case attribute names.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from frequence_shared.constants import (
    COLLECTION_TYPES,
    CollectionMode,
    CollectionStatus,
    CollectionType,
)
from frequence_shared.models.marches import MarchesFilter


class DataCollectionLog(BaseModel):
    """Matches the data_collection_logs table row (mutable progress record)."""

    model_config = ConfigDict(extra="ignore")

    id: str
    collection_type: str | None = None
    collection_mode: str | None = None
    status: CollectionStatus = "running"
    marches_total: int = 0
    marches_processed: int = 0
    errors_count: int = 0
    summary_stats: dict[str, Any] = Field(default_factory=dict)
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_seconds: int | None = None
    last_ping: datetime | None = None

    @field_validator("marches_total", "marches_processed", "errors_count", mode="before")
    @classmethod
    def null_count_is_zero(cls, v: Any) -> Any:
        return 0 if v is None else v

    @field_validator("summary_stats", mode="before")
    @classmethod
    def null_stats_is_empty(cls, v: Any) -> Any:
        return v or {}

    @property
    def collection_types(self) -> list[str]:
        return [t for t in (self.collection_type or "").split(",") if t]

    @property
    def processed_ids(self) -> list[str]:
        return list(self.summary_stats.get("processed_ids") or [])

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> "DataCollectionLog":
        return cls(**row)


class BatchCollectionRequest(BaseModel):
    """Body of POST /functions/v1/batch-data-collector."""

    model_config = ConfigDict(populate_by_name=True)

    collection_types: list[CollectionType] = Field(alias="collectionTypes", min_length=1)
    mode: CollectionMode = "manual"
    marches_filter: MarchesFilter | None = Field(default=None, alias="marchesFilter")
    batch_mode: bool = Field(default=True, alias="batchMode")

    @field_validator("collection_types")
    @classmethod
    def dedupe_in_processing_order(cls, v: list[str]) -> list[str]:
        return [t for t in COLLECTION_TYPES if t in set(v)]


class StepCollectionRequest(BaseModel):
    """Body of the per-marche step collectors."""

    model_config = ConfigDict(populate_by_name=True)

    log_id: str = Field(alias="logId")
    marche_id: str = Field(alias="marcheId")
    latitude: float
    longitude: float
    marche_name: str | None = Field(default=None, alias="marcheName")
