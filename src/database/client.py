"""
Derby Rounds - Supabase Client

Singleton factory for the sync Supabase client (history store) and a helper
for the async client (realtime broadcast). Both return None when Supabase is
not configured.
"""

from functools import lru_cache

from supabase import AsyncClient, Client, acreate_client, create_client

from src.config.settings import get_settings


@lru_cache(maxsize=1)
def get_supabase_client() -> Client | None:
    """Create and cache a Supabase client instance."""
    settings = get_settings()
    if not settings.supabase_configured:
        return None
    return create_client(settings.supabase_url, settings.supabase_anon_key)


async def create_async_supabase_client() -> AsyncClient | None:
    """Create an async Supabase client for realtime use."""
    settings = get_settings()
    if not settings.supabase_configured:
        return None
    return await acreate_client(settings.supabase_url, settings.supabase_anon_key)
