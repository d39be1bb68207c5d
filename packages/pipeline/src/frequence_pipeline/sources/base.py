"""
sources/base.py — Abstract base class for the edge-function collectors.

Every external dataset is reached through a Supabase edge function:

    POST {functions_base_url}/{function_name}
    Authorization: Bearer <service key>
    apikey: <service key>
    { ...JSON body... }

Each concrete source must implement:
  build_body()   — JSON body for one (latitude, longitude) point
  validate()     — reject payloads a snapshot cannot be built from

The fetch() method handles the HTTP call, timing, logging and error
mapping. Sources never retry: the step collectors decide on retries and
the batch collector deliberately does not retry.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import Any

import httpx
import structlog

from frequence_shared.config import settings
from frequence_shared.db import edge_function_headers
from frequence_pipeline.errors import EdgeFunctionError

log = structlog.get_logger(__name__)


class EdgeFunctionSource(ABC):
    """Abstract base for one edge-function backed data source."""

    # Override in subclass
    function_name: str = "unknown"
    collection_type: str = "unknown"
    table: str = ""
    default_timeout: float = 10.0

    def __init__(
        self,
        *,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
        base_url: str | None = None,
    ) -> None:
        self._timeout = timeout if timeout is not None else self.default_timeout
        self._client = client
        self._base_url = (base_url or settings.functions_base_url).rstrip("/")
        self._log = log.bind(function=self.function_name)

    @property
    def url(self) -> str:
        return f"{self._base_url}/{self.function_name}"

    # ------------------------------------------------------------------
    # Abstract interface
    # ------------------------------------------------------------------

    @abstractmethod
    def build_body(self, latitude: float, longitude: float) -> dict[str, Any]:
        """Return the JSON body sent to the edge function."""
        ...

    def validate(self, payload: dict[str, Any]) -> None:
        """
        Raise when the decoded payload reports a failure.

        The default rejects {success: false} and {error: ...} bodies.
        Subclasses may tighten this (see WeatherSource).
        """
        if payload.get("success") is False or payload.get("error"):
            raise EdgeFunctionError(
                self.function_name,
                str(payload.get("error") or "success=false"),
            )

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    async def _post(self, client: httpx.AsyncClient, body: dict[str, Any]) -> httpx.Response:
        return await client.post(
            self.url,
            json=body,
            headers=edge_function_headers(),
            timeout=self._timeout,
        )

    async def fetch(self, latitude: float, longitude: float) -> dict[str, Any]:
        """
        Call the edge function for one point and return the decoded JSON.

        Raises:
            EdgeFunctionError: transport failure, timeout, non-2xx status,
                               undecodable body, or a failure payload.
            NoDataError:       the payload lacks the required data.
        """
        body = self.build_body(latitude, longitude)
        t0 = time.monotonic()
        try:
            if self._client is not None:
                response = await self._post(self._client, body)
            else:
                async with httpx.AsyncClient() as client:
                    response = await self._post(client, body)
        except httpx.TimeoutException as exc:
            raise EdgeFunctionError(
                self.function_name, f"timed out after {self._timeout}s"
            ) from exc
        except httpx.HTTPError as exc:
            raise EdgeFunctionError(self.function_name, str(exc) or type(exc).__name__) from exc

        duration_ms = int((time.monotonic() - t0) * 1000)
        if response.status_code >= 400:
            self._log.warning(
                "edge_function_http_error",
                status=response.status_code,
                duration_ms=duration_ms,
            )
            raise EdgeFunctionError(
                self.function_name,
                response.text[:500] or response.reason_phrase,
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise EdgeFunctionError(
                self.function_name,
                "response is not valid JSON",
                status_code=response.status_code,
            ) from exc
        if not isinstance(payload, dict):
            raise EdgeFunctionError(self.function_name, "response is not a JSON object")

        self.validate(payload)
        self._log.info(
            "edge_function_call_complete",
            latitude=latitude,
            longitude=longitude,
            duration_ms=duration_ms,
        )
        return payload
