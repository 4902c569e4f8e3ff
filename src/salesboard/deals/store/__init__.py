"""Remote store layer -- pluggable backends for deal persistence.

Provides abstract DealStore interface with concrete implementations:
- SupabaseDealStore: Hosted backend tables (default)
- PostgresDealStore: Self-hosted PostgreSQL wrapping DealRepository
"""

from __future__ import annotations

from src.salesboard.config import Settings, StoreBackend, get_settings
from src.salesboard.deals.store.adapter import DealStore
from src.salesboard.deals.store.postgres import PostgresDealStore
from src.salesboard.deals.store.supabase import SupabaseDealStore


async def build_deal_store(settings: Settings | None = None) -> DealStore:
    """Create the DealStore selected by DEAL_STORE_BACKEND."""
    settings = settings or get_settings()

    if settings.DEAL_STORE_BACKEND == StoreBackend.postgres:
        from src.salesboard.core.database import get_session
        from src.salesboard.deals.repository import DealRepository

        return PostgresDealStore(DealRepository(get_session))

    from src.salesboard.core.supabase import get_supabase_client

    return SupabaseDealStore(await get_supabase_client(settings))


__all__ = [
    "DealStore",
    "PostgresDealStore",
    "SupabaseDealStore",
    "build_deal_store",
]
