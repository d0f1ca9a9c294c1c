"""Supabase repository for session chat."""

from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import AsyncClient

from strategy_squares.domain.sessions import ChatMessage
from strategy_squares.services.chat import ChatRepository


@dataclass
class SupabaseChatRepository(ChatRepository):
    """Append-only chat log table."""

    client: AsyncClient
    table: str = "session_messages"

    async def append_message(self, message: ChatMessage) -> None:
        """Insert a chat message row."""
        await (
            self.client.table(self.table)
            .insert(
                {
                    "id": message.id,
                    "session_id": message.session_id,
                    "sender_id": message.sender_id,
                    "sender_name": message.sender_name,
                    "text": message.text,
                    "sent_at": message.sent_at.isoformat(),
                }
            )
            .execute()
        )

    async def list_messages(self, session_id: str, limit: int) -> list[ChatMessage]:
        """Return a session's messages, oldest first."""
        response = await (
            self.client.table(self.table)
            .select("id, session_id, sender_id, sender_name, text, sent_at")
            .eq("session_id", session_id)
            .order("sent_at", desc=False)
            .limit(limit)
            .execute()
        )
        return [_parse_row(row) for row in response.data or []]


def _parse_row(row: dict[str, object]) -> ChatMessage:
    sent_at_raw = row.get("sent_at")
    sent_at = (
        datetime.fromisoformat(sent_at_raw)
        if isinstance(sent_at_raw, str) and sent_at_raw
        else datetime.min.replace(tzinfo=UTC)
    )
    return ChatMessage(
        id=str(row["id"]),
        session_id=str(row["session_id"]),
        sender_id=str(row.get("sender_id") or ""),
        sender_name=str(row.get("sender_name") or ""),
        text=str(row.get("text") or ""),
        sent_at=sent_at,
    )
