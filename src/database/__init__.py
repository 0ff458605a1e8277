"""
Derby Rounds Database Layer.

Supabase integration for best-effort round history and snapshots.
"""

from src.database.client import create_async_supabase_client, get_supabase_client
from src.database.history import RoundHistoryStore
from src.database.models import RoundRecord, RoundSnapshot

__all__ = [
    "create_async_supabase_client",
    "get_supabase_client",
    "RoundHistoryStore",
    "RoundRecord",
    "RoundSnapshot",
]
