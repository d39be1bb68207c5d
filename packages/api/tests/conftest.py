"""Shared test fixtures for the workers API."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from frequence_shared.config import settings
from frequence_shared.models import DataCollectionLog, Marche, TexteExport
from frequence_pipeline.loaders.supabase_loader import SupabaseLoader


@pytest.fixture(autouse=True)
def _service_key(monkeypatch):
    monkeypatch.setattr(settings, "supabase_service_key", "test-service-key")


@pytest.fixture()
def loader():
    """AsyncMock of SupabaseLoader injected through get_loader."""
    return AsyncMock(spec=SupabaseLoader)


@pytest.fixture()
def app(loader):
    """Test FastAPI app whose routes see the mocked loader."""
    from frequence_api.app import create_app
    from frequence_api.dependencies import get_loader

    application = create_app()
    application.dependency_overrides[get_loader] = lambda: loader
    yield application
    application.dependency_overrides.clear()


@pytest.fixture()
def client(app):
    """HTTP test client."""
    return TestClient(app)


@pytest.fixture()
def running_log():
    return DataCollectionLog(
        id="log-1",
        collection_type="biodiversity,weather",
        status="running",
        marches_total=4,
        marches_processed=1,
        summary_stats={"current_marche_name": "Marche des Berges"},
        started_at="2025-06-14T10:00:00+00:00",
    )


@pytest.fixture()
def sample_marches():
    return [
        Marche(id="m1", nom_marche="Marche des Berges", latitude=44.84, longitude=-0.57),
        Marche(id="m2", nom_marche="Confluence", latitude=45.0, longitude=-0.2),
    ]


@pytest.fixture()
def sample_textes():
    return [
        TexteExport(
            id="t1",
            titre="Aube",
            contenu="<div>héron immobile</div><div>l'eau garde</div>",
            type_texte="haiku",
            marche_nom="Marche des Berges",
            marche_ville="Bordeaux",
            marche_date="2025-06-14",
            created_at="2025-06-20T10:00:00+00:00",
        ),
        TexteExport(
            id="t2",
            titre="Le silure",
            contenu="<p>Il était une fois</p>",
            type_texte="fable",
            marche_nom="Confluence",
            marche_ville="Libourne",
            marche_date="2025-03-02",
        ),
    ]
