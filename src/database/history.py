"""
Derby Rounds - Round History Store

CRUD operations for the `round_history` and `round_snapshots` tables.
Every Supabase failure surfaces as PersistenceUnavailable.
"""

from typing import Any

from supabase import Client

from src.database.models import RoundRecord, RoundSnapshot
from src.exceptions import PersistenceUnavailable


class RoundHistoryStore:
    """Manages persisted round history in Supabase."""

    def __init__(self, client: Client, history_size: int = 50) -> None:
        self.client = client
        self.history = client.table("round_history")
        self.snapshots = client.table("round_snapshots")
        self.history_size = history_size

    def save_snapshot(self, snapshot: RoundSnapshot) -> None:
        """Insert or replace the snapshot for a round."""
        self._execute(self.snapshots.upsert(snapshot.model_dump(mode="json")))

    def get_snapshot(self, round_id: int) -> RoundSnapshot | None:
        """Look up a round snapshot by id."""
        data = self._execute(
            self.snapshots
            .select("*")
            .eq("id", round_id)
        )
        if data.data:
            return RoundSnapshot.model_validate(data.data[0])
        return None

    def append_history(self, record: RoundRecord) -> None:
        """Record a settled round and trim the list to the newest entries."""
        self._execute(self.history.insert(record.model_dump(mode="json")))
        self._trim()

    def recent(self, limit: int = 20) -> list[RoundRecord]:
        """Most recently settled rounds, newest first."""
        data = self._execute(
            self.history
            .select("*")
            .order("settled_at", desc=True)
            .limit(limit)
        )
        return [RoundRecord.model_validate(row) for row in data.data]

    def _trim(self) -> None:
        data = self._execute(
            self.history
            .select("id")
            .order("settled_at", desc=True)
            .range(self.history_size, self.history_size + 99)
        )
        stale = [row["id"] for row in data.data]
        if stale:
            self._execute(self.history.delete().in_("id", stale))

    @staticmethod
    def _execute(query: Any) -> Any:
        try:
            return query.execute()
        except Exception as exc:
            raise PersistenceUnavailable(str(exc)) from exc
