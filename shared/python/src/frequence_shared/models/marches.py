"""
models/marches.py — Pydantic models for the marches table and collection filters.
"""

from __future__ import annotations

import datetime as dt
from typing import Any

from pydantic import BaseModel, ConfigDict


class Marche(BaseModel):
    """Matches the marches table row (the columns the workers read)."""

    model_config = ConfigDict(extra="ignore")

    id: str
    nom_marche: str | None = None
    ville: str | None = None
    region: str | None = None
    departement: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    date: dt.date | None = None

    @property
    def display_name(self) -> str:
        return self.nom_marche or self.ville or self.id

    @property
    def has_coordinates(self) -> bool:
        # Zero is treated as missing, as the admin forms store it for blanks
        return bool(self.latitude) and bool(self.longitude)

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> "Marche":
        return cls(**row)


class MarchesFilter(BaseModel):
    """Optional restriction of the marches a batch collection visits."""

    ids: list[str] | None = None
    region: str | None = None
    departement: str | None = None

    @property
    def is_empty(self) -> bool:
        return not (self.ids or self.region or self.departement)
