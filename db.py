"""
db.py
Backend client (Supabase) + query execution helpers that unwrap errors.
"""

from __future__ import annotations

from typing import Any

import httpx
from postgrest.exceptions import APIError
from supabase import Client, create_client

from config import BackendConfig
from exceptions import BackendError, ConfigurationError
from logs import get_logger

logger = get_logger(__name__)


def create_backend_client(config: BackendConfig) -> Client:
    if not config.is_configured:
        raise ConfigurationError(
            "Missing backend settings. Set SUPABASE_URL and SUPABASE_ANON_KEY."
        )
    return create_client(config.url, config.anon_key)


def execute(query) -> list[dict[str, Any]]:
    """
    Run a PostgREST request builder and return its rows.
    Any query or transport failure is raised as BackendError.
    """
    try:
        response = query.execute()
    except APIError as exc:
        message = exc.message or str(exc)
        logger.warning("Backend query failed (%s): %s", exc.code, message)
        raise BackendError(message, code=exc.code) from exc
    except httpx.HTTPError as exc:
        logger.warning("Backend unreachable: %s", exc)
        raise BackendError(f"Backend unreachable: {exc}") from exc
    return list(response.data or [])


def fetch_one(query) -> dict[str, Any] | None:
    """Return the first row of a query, or None when it matched nothing."""
    rows = execute(query.limit(1))
    return rows[0] if rows else None


def fetch_all(query) -> list[dict[str, Any]]:
    return execute(query)


def require_one(query, what: str) -> dict[str, Any]:
    """For mutations that must hand back the written row."""
    rows = execute(query)
    if not rows:
        raise BackendError(f"{what} returned no row")
    return rows[0]
