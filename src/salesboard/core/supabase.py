"""Async Supabase client factory.

The hosted backend owns auth, the relational tables and storage; this
repository only talks to its tables through the PostgREST query builder.
"""

from __future__ import annotations

import structlog
from supabase import AsyncClient, acreate_client
from supabase.lib.client_options import AsyncClientOptions

from src.salesboard.config import Settings, get_settings

logger = structlog.get_logger(__name__)

_client: AsyncClient | None = None


async def get_supabase_client(settings: Settings | None = None) -> AsyncClient:
    """Get or create the async Supabase client singleton.

    Raises:
        RuntimeError: If SUPABASE_URL or SUPABASE_SERVICE_KEY is not configured.
    """
    global _client
    if _client is not None:
        return _client

    settings = settings or get_settings()
    if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_KEY:
        raise RuntimeError(
            "Supabase is not configured: set SUPABASE_URL and SUPABASE_SERVICE_KEY"
        )

    _client = await acreate_client(
        settings.SUPABASE_URL,
        settings.SUPABASE_SERVICE_KEY,
        options=AsyncClientOptions(
            postgrest_client_timeout=settings.STORE_TIMEOUT_SECONDS,
        ),
    )
    logger.info("supabase.client_created", url=settings.SUPABASE_URL)
    return _client


def reset_supabase_client() -> None:
    """Drop the cached client (tests, credential rotation)."""
    global _client
    _client = None
