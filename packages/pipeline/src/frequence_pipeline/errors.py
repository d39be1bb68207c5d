"""
errors.py — Exception hierarchy for the collection workers.

  CollectionError        base class, never raised directly
  EdgeFunctionError      an edge function answered non-2xx, was unreachable,
                         or reported {success: false} / {error: ...}
  NoDataError            the payload lacks the data a snapshot needs
  CollectionLogError     the data_collection_logs row could not be
                         created or read
"""

from __future__ import annotations


class CollectionError(Exception):
    """Base class for collector failures."""


class EdgeFunctionError(CollectionError):
    def __init__(
        self,
        function: str,
        message: str,
        *,
        status_code: int | None = None,
    ) -> None:
        self.function = function
        self.status_code = status_code
        prefix = f"{function} failed"
        if status_code is not None:
            prefix += f" (HTTP {status_code})"
        super().__init__(f"{prefix}: {message}")


class NoDataError(CollectionError):
    pass


class CollectionLogError(CollectionError):
    pass
