"""Tests for health endpoints and request logging."""

from __future__ import annotations

from frequence_pipeline import __version__


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "version": __version__}


def test_ready(client):
    assert client.get("/ready").json() == {"status": "ready"}


def test_request_id_echoed(client):
    response = client.get("/health", headers={"X-Request-ID": "abc123"})
    assert response.headers["X-Request-ID"] == "abc123"


def test_request_id_generated(client):
    assert len(client.get("/health").headers["X-Request-ID"]) == 32
