"""Response helpers shared by the routers."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

from fastapi import Response
from fastapi.responses import JSONResponse


def wrap_response(data: Any, **meta: Any) -> dict[str, Any]:
    """{"data": ..., "meta": {...}} with None meta values dropped."""
    return {
        "data": data,
        "meta": {k: v for k, v in meta.items() if v is not None},
    }


def error_response(error: str, status_code: int = 500) -> JSONResponse:
    """Failure body the collectors share: {"success": false, "error": ...}."""
    return JSONResponse({"success": False, "error": error}, status_code=status_code)


def content_disposition(filename: str) -> str:
    """Attachment header; non-ASCII names go through RFC 5987 filename*."""
    quoted = quote(filename)
    if quoted == filename:
        return f'attachment; filename="{filename}"'
    return f"attachment; filename*=utf-8''{quoted}"


def attachment(data: bytes, filename: str, media_type: str) -> Response:
    return Response(
        content=data,
        media_type=media_type,
        headers={"Content-Disposition": content_disposition(filename)},
    )
