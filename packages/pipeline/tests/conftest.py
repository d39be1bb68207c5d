"""
tests/conftest.py — Shared pytest fixtures for the pipeline test suite.

Provides:
  service_key (autouse)  — a fake service key so edge_function_headers() works
  mock_supabase_client() — MagicMock of the Supabase client (prevents real DB calls)
  mock_loader()          — AsyncMock of SupabaseLoader for collector tests
  mock_http              — configured respx router for faking HTTP responses
  sample_textes          — TexteExport list covering every layout case
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
import respx

from frequence_shared.config import settings
from frequence_shared.models import DataCollectionLog, Marche, TexteExport
from frequence_pipeline.loaders.supabase_loader import SupabaseLoader

QUERY_METHODS = ("select", "eq", "in_", "order", "limit", "lt", "gte")


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def service_key(monkeypatch: pytest.MonkeyPatch) -> str:
    monkeypatch.setattr(settings, "supabase_service_key", "test-service-key")
    return "test-service-key"


# ---------------------------------------------------------------------------
# Supabase client mock
# ---------------------------------------------------------------------------

def make_query(data=None, count=0) -> MagicMock:
    """A chainable query mock whose execute() returns the given rows."""
    query = MagicMock()
    query.execute.return_value = MagicMock(data=data if data is not None else [], count=count)
    for method in QUERY_METHODS:
        getattr(query, method).return_value = query
    return query


@pytest.fixture
def mock_supabase_client() -> MagicMock:
    """
    A MagicMock that simulates the supabase.Client interface.

    Every .table(name) returns a per-table mock; .select()/.eq()/.in_()/
    .order()/.limit() chains end in execute() → data=[] by default.
    Override per table with client.tables[name] = make_query([...]).
    """
    client = MagicMock()
    client.tables = {}

    def _table(name: str) -> MagicMock:
        if name not in client.tables:
            table = MagicMock()
            query = make_query()
            for method in QUERY_METHODS:
                getattr(table, method).return_value = query
            table.insert.return_value = make_query()
            table.update.return_value = make_query()
            client.tables[name] = table
        return client.tables[name]

    client.table.side_effect = _table
    return client


@pytest.fixture
def table_rows(mock_supabase_client: MagicMock):
    """set(table, rows) makes every read query on *table* return *rows*."""

    def _set(table: str, rows: list[dict], count: int = 0) -> MagicMock:
        query = make_query(rows, count)
        table_mock = mock_supabase_client.table(table)
        for method in QUERY_METHODS:
            getattr(table_mock, method).return_value = query
        return query

    return _set


# ---------------------------------------------------------------------------
# Loader mock
# ---------------------------------------------------------------------------

@pytest.fixture
def log_row() -> DataCollectionLog:
    return DataCollectionLog(
        id="log-1",
        collection_type="biodiversity,weather",
        status="running",
        marches_total=2,
    )


@pytest.fixture
def mock_loader(log_row: DataCollectionLog) -> AsyncMock:
    loader = AsyncMock(spec=SupabaseLoader)
    loader.create_collection_log.return_value = log_row
    loader.get_collection_log.return_value = log_row
    loader.record_marche_processed.return_value = log_row.model_copy(
        update={"marches_processed": 1}
    )
    loader.increment_log_errors.return_value = 1
    return loader


@pytest.fixture
def marches() -> list[Marche]:
    return [
        Marche(id="m1", nom_marche="Marche des Berges", latitude=44.84, longitude=-0.57, ville="Bordeaux"),
        Marche(id="m2", nom_marche=None, latitude=45.18, longitude=0.72, ville="Périgueux"),
    ]


# ---------------------------------------------------------------------------
# respx HTTP mock router
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_http():
    """
    Activate the respx mock router for all httpx requests.

    Usage in tests:
        def test_something(mock_http):
            mock_http.post("https://...").mock(return_value=httpx.Response(200, json={...}))
    """
    with respx.mock(assert_all_called=False) as router:
        yield router


# ---------------------------------------------------------------------------
# Literary texts
# ---------------------------------------------------------------------------

@pytest.fixture
def sample_textes() -> list[TexteExport]:
    return [
        TexteExport(
            id="t1",
            titre="Le fleuve respire",
            contenu="<p>Le courant <em>lent</em> sous le pont</p><p>et la berge</p>",
            type_texte="poeme",
            marche_nom="Marche des Berges",
            marche_ville="BORDEAUX",
            marche_region="Nouvelle-Aquitaine",
            marche_date="2025-06-14",
            ordre=2,
            created_at="2025-06-20T10:00:00+00:00",
        ),
        TexteExport(
            id="t2",
            titre="Aube",
            contenu="<div>héron immobile</div><div>l'eau garde</div><div>son reflet</div>",
            type_texte="haiku",
            marche_nom="Marche des Berges",
            marche_ville="Bordeaux",
            marche_region="Nouvelle-Aquitaine",
            marche_date="2025-06-14",
            ordre=1,
            created_at="2025-06-21T08:30:00+00:00",
        ),
        TexteExport(
            id="t3",
            titre="Le silure et la loutre",
            contenu='Il était une fois un <strong>silure</strong> "sage"',
            type_texte="fable",
            marche_nom="Confluence",
            marche_ville="Libourne",
            marche_region="Nouvelle-Aquitaine",
            marche_date="2025-03-02",
            ordre=1,
        ),
    ]
