"""
tests/test_sources/test_edge_function_sources.py — Unit tests for the
edge-function sources.

HTTP is mocked with respx; payloads mirror the edge function responses.
"""

from __future__ import annotations

import json

import httpx
import pytest
import respx

from frequence_pipeline.errors import EdgeFunctionError, NoDataError
from frequence_pipeline.sources import BiodiversitySource, RealEstateSource, WeatherSource

FUNCTIONS_URL = "https://test.supabase.co/functions/v1"
BIODIVERSITY_URL = f"{FUNCTIONS_URL}/biodiversity-data"
WEATHER_URL = f"{FUNCTIONS_URL}/open-meteo-data"
LEXICON_URL = f"{FUNCTIONS_URL}/lexicon-proxy"


# ---------------------------------------------------------------------------
# Request shape
# ---------------------------------------------------------------------------

class TestRequestBodies:
    @pytest.mark.asyncio
    async def test_biodiversity_body_and_headers(self, service_key: str):
        source = BiodiversitySource(radius=750, mode="interactive", base_url=FUNCTIONS_URL)
        with respx.mock() as router:
            route = router.post(BIODIVERSITY_URL).mock(
                return_value=httpx.Response(200, json={"species": [], "summary": {}})
            )
            await source.fetch(44.84, -0.57)

        request = route.calls[0].request
        assert json.loads(request.content) == {
            "latitude": 44.84,
            "longitude": -0.57,
            "radius": 750,
            "mode": "interactive",
        }
        assert request.headers["Authorization"] == f"Bearer {service_key}"
        assert request.headers["apikey"] == service_key

    def test_weather_body_uses_days(self):
        source = WeatherSource(days=7, base_url=FUNCTIONS_URL)
        assert source.build_body(1.5, 2.5) == {"latitude": 1.5, "longitude": 2.5, "days": 7}

    def test_real_estate_body_is_point_only(self):
        source = RealEstateSource(base_url=FUNCTIONS_URL)
        assert source.build_body(1.5, 2.5) == {"latitude": 1.5, "longitude": 2.5}

    def test_url_joins_function_name(self):
        source = RealEstateSource(base_url=FUNCTIONS_URL + "/")
        assert source.url == LEXICON_URL


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------

class TestErrors:
    @pytest.mark.asyncio
    async def test_http_error_status_raises(self):
        source = BiodiversitySource(base_url=FUNCTIONS_URL)
        with respx.mock() as router:
            router.post(BIODIVERSITY_URL).mock(return_value=httpx.Response(502, text="bad gateway"))
            with pytest.raises(EdgeFunctionError) as excinfo:
                await source.fetch(44.84, -0.57)

        assert excinfo.value.status_code == 502
        assert "biodiversity-data failed (HTTP 502)" in str(excinfo.value)

    @pytest.mark.asyncio
    async def test_timeout_raises_edge_function_error(self):
        source = RealEstateSource(base_url=FUNCTIONS_URL, timeout=0.1)
        with respx.mock() as router:
            router.post(LEXICON_URL).mock(side_effect=httpx.ReadTimeout("slow"))
            with pytest.raises(EdgeFunctionError, match="timed out"):
                await source.fetch(44.84, -0.57)

    @pytest.mark.asyncio
    async def test_connect_error_raises_edge_function_error(self):
        source = RealEstateSource(base_url=FUNCTIONS_URL)
        with respx.mock() as router:
            router.post(LEXICON_URL).mock(side_effect=httpx.ConnectError("refused"))
            with pytest.raises(EdgeFunctionError, match="refused"):
                await source.fetch(44.84, -0.57)

    @pytest.mark.asyncio
    async def test_non_json_body_raises(self):
        source = RealEstateSource(base_url=FUNCTIONS_URL)
        with respx.mock() as router:
            router.post(LEXICON_URL).mock(return_value=httpx.Response(200, text="<html>"))
            with pytest.raises(EdgeFunctionError, match="not valid JSON"):
                await source.fetch(44.84, -0.57)

    @pytest.mark.asyncio
    async def test_success_false_payload_raises(self):
        source = RealEstateSource(base_url=FUNCTIONS_URL)
        with respx.mock() as router:
            router.post(LEXICON_URL).mock(
                return_value=httpx.Response(200, json={"success": False, "error": "parcel not found"})
            )
            with pytest.raises(EdgeFunctionError, match="parcel not found"):
                await source.fetch(44.84, -0.57)

    @pytest.mark.asyncio
    async def test_weather_without_data_is_no_data(self):
        source = WeatherSource(base_url=FUNCTIONS_URL)
        with respx.mock() as router:
            router.post(WEATHER_URL).mock(
                return_value=httpx.Response(200, json={"success": True, "data": None})
            )
            with pytest.raises(NoDataError):
                await source.fetch(44.84, -0.57)

    @pytest.mark.asyncio
    async def test_weather_with_data_returns_payload(self):
        payload = {"success": True, "data": {"aggregated": {"temperature": {"avg": 14.2}}}}
        source = WeatherSource(base_url=FUNCTIONS_URL)
        with respx.mock() as router:
            router.post(WEATHER_URL).mock(return_value=httpx.Response(200, json=payload))
            assert await source.fetch(44.84, -0.57) == payload

    @pytest.mark.asyncio
    async def test_missing_service_key_fails_before_http(self, monkeypatch: pytest.MonkeyPatch):
        from frequence_shared.config import settings

        monkeypatch.setattr(settings, "supabase_service_key", "")
        source = BiodiversitySource(base_url=FUNCTIONS_URL)
        with respx.mock(assert_all_called=False) as router:
            route = router.post(BIODIVERSITY_URL)
            with pytest.raises(RuntimeError, match="SUPABASE_SERVICE_KEY"):
                await source.fetch(44.84, -0.57)
        assert not route.called
