"""Chat messages attached to game sessions."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol
from uuid import uuid4

from strategy_squares.domain.errors import InvalidMessage
from strategy_squares.domain.players import PlayerProfile
from strategy_squares.domain.sessions import ChatMessage

_logger = logging.getLogger(__name__)


class ChatRepository(Protocol):
    """Append-only message log per session."""

    async def append_message(self, message: ChatMessage) -> None:
        """Store a message."""

    async def list_messages(self, session_id: str, limit: int) -> list[ChatMessage]:
        """Return messages in insertion order."""


@dataclass
class ChatService:
    """Service for posting and reading session chat."""

    repository: ChatRepository
    max_length: int = 500

    async def send_message(
        self, session_id: str, sender: PlayerProfile, text: str
    ) -> ChatMessage:
        """Append a message from ``sender`` to the session log."""
        cleaned = text.strip()
        if not cleaned:
            raise InvalidMessage("Message is empty")
        if len(cleaned) > self.max_length:
            raise InvalidMessage(
                f"Message is longer than {self.max_length} characters"
            )
        message = ChatMessage(
            id=str(uuid4()),
            session_id=session_id,
            sender_id=sender.player_id,
            sender_name=sender.name,
            text=cleaned,
            sent_at=datetime.now(tz=UTC),
        )
        await self.repository.append_message(message)
        _logger.debug(
            "Chat message stored: game=%s sender=%s", session_id, sender.player_id
        )
        return message

    async def list_messages(
        self, session_id: str, limit: int = 100
    ) -> list[ChatMessage]:
        """Return the session's messages, oldest first."""
        return await self.repository.list_messages(session_id, limit)
