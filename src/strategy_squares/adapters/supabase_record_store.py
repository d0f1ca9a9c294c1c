"""Supabase-backed record store for session documents."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import AsyncClient

from strategy_squares.services.sessions import RecordStore

_FAILED_STATES = {"CHANNEL_ERROR", "TIMED_OUT", "CLOSED"}

_logger = logging.getLogger(__name__)


@dataclass
class SupabaseSubscription:
    """Realtime channel feeding one store listener."""

    client: AsyncClient
    channel: object
    active: bool = True

    async def unsubscribe(self) -> None:
        """Remove the realtime channel."""
        if not self.active:
            return
        self.active = False
        await self.client.remove_channel(self.channel)


@dataclass
class SupabaseRecordStore(RecordStore):
    """Stores each session as one JSON document row.

    Writes are plain upserts: Supabase offers no compare-and-swap here, so the
    last writer wins.
    """

    client: AsyncClient
    table: str = "game_sessions"

    async def get(self, key: str) -> dict[str, object] | None:
        """Return the stored document for a key."""
        response = await (
            self.client.table(self.table)
            .select("session_id, document")
            .eq("session_id", key)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        document = response.data[0].get("document")
        return document if isinstance(document, dict) else None

    async def set(self, key: str, document: dict[str, object]) -> None:
        """Overwrite the document for a key."""
        await (
            self.client.table(self.table)
            .upsert(
                {
                    "session_id": key,
                    "document": document,
                    "updated_at": datetime.now(tz=UTC).isoformat(),
                },
                on_conflict="session_id",
            )
            .execute()
        )

    async def delete(self, key: str) -> None:
        """Delete the row for a key."""
        await self.client.table(self.table).delete().eq("session_id", key).execute()

    async def subscribe(
        self,
        key: str,
        on_change: Callable[[dict[str, object] | None], None],
        on_error: Callable[[Exception], None],
    ) -> SupabaseSubscription:
        """Listen for row changes on a key, delivering the current row first."""
        channel = self.client.channel(f"{self.table}:{key}")
        subscription = SupabaseSubscription(client=self.client, channel=channel)

        def handle_change(payload: dict[str, object]) -> None:
            if not subscription.active:
                return
            event, row = _parse_change(payload)
            if event == "DELETE":
                on_change(None)
                return
            document = row.get("document")
            if isinstance(document, dict):
                on_change(document)

        def handle_status(state: object, error: Exception | None = None) -> None:
            if not subscription.active:
                return
            name = str(getattr(state, "value", state))
            if name in _FAILED_STATES:
                on_error(error or RuntimeError(f"Realtime channel {name.lower()}"))

        channel.on_postgres_changes(
            "*",
            callback=handle_change,
            table=self.table,
            schema="public",
            filter=f"session_id=eq.{key}",
        )
        await channel.subscribe(handle_status)
        try:
            current = await self.get(key)
        except Exception:
            await subscription.unsubscribe()
            raise
        on_change(current)
        _logger.debug("Realtime channel attached for %s", key)
        return subscription


def _parse_change(payload: dict[str, object]) -> tuple[str, dict[str, object]]:
    """Extract the event type and new row from a realtime payload."""
    data = payload.get("data", payload)
    if not isinstance(data, dict):
        return "", {}
    event = str(data.get("type") or data.get("eventType") or "")
    row = data.get("record") or data.get("new") or {}
    return event, row if isinstance(row, dict) else {}
