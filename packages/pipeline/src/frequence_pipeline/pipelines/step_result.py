"""
pipelines/step_result.py — Outcome of one per-marche step collection.

The HTTP layer returns to_response() as the JSON body with status_code.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class StepResult:
    success: bool
    status_code: int = 200
    error: str | None = None
    data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, **data: Any) -> "StepResult":
        return cls(success=True, data=data)

    @classmethod
    def failed(cls, error: str, *, status_code: int = 500) -> "StepResult":
        return cls(success=False, status_code=status_code, error=error)

    def to_response(self) -> dict[str, Any]:
        body: dict[str, Any] = {"success": self.success, **self.data}
        if self.error is not None:
            body["error"] = self.error
        return body
