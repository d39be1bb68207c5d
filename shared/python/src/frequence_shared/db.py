"""
db.py — Supabase client singletons and edge-function credentials.

Both the table client and the HTTP calls to edge functions authenticate
with the same project keys, so the key selection lives here.

Usage:
    from frequence_shared.db import get_supabase_client, edge_function_headers

    supabase = get_supabase_client()                    # anon key (reads, RLS applies)
    supabase = get_supabase_client(service_role=True)   # service key (collector writes)
    headers = edge_function_headers()                   # for POST /functions/v1/<name>
"""

from __future__ import annotations

import threading

import structlog
from supabase import Client, create_client

from frequence_shared.config import settings

logger = structlog.get_logger(__name__)

_ROLE_KEYS = {
    "service_role": ("supabase_service_key", "SUPABASE_SERVICE_KEY"),
    "anon": ("supabase_anon_key", "SUPABASE_ANON_KEY"),
}

# One client per role per process, guarded by a lock
_clients_lock = threading.Lock()
_clients: dict[str, Client] = {}


def _role_key(role: str) -> str:
    attr, env_name = _ROLE_KEYS[role]
    key = getattr(settings, attr)
    if not key:
        raise RuntimeError(f"{env_name} is not set. Set it in .env.")
    return key


def get_supabase_client(*, service_role: bool = False) -> Client:
    """
    Return a singleton Supabase client.

    Args:
        service_role: If True, uses the service role key (RLS bypassed,
                      required for snapshot inserts and log updates).
                      If False (default), uses the anon key.

    Raises:
        RuntimeError: when the matching key is missing from settings.
    """
    role = "service_role" if service_role else "anon"
    with _clients_lock:
        client = _clients.get(role)
        if client is None:
            client = create_client(settings.supabase_url, _role_key(role))
            _clients[role] = client
            logger.info("supabase_client_created", role=role)
        return client


def edge_function_headers(*, service_role: bool = True) -> dict[str, str]:
    """Headers expected by Supabase edge functions (bearer + apikey)."""
    key = _role_key("service_role" if service_role else "anon")
    return {
        "Authorization": f"Bearer {key}",
        "apikey": key,
        "Content-Type": "application/json",
    }


def reset_supabase_clients() -> None:
    """Reset singleton clients (useful in tests)."""
    with _clients_lock:
        _clients.clear()
