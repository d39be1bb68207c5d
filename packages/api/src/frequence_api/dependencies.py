"""Shared FastAPI dependencies."""

from __future__ import annotations

from frequence_pipeline.loaders.supabase_loader import SupabaseLoader


def get_loader() -> SupabaseLoader:
    """Service-role loader; tests replace it through app.dependency_overrides."""
    return SupabaseLoader()
