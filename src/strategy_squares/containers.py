"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import AsyncClient

from strategy_squares.adapters.supabase_chat_repository import SupabaseChatRepository
from strategy_squares.adapters.supabase_player_repository import (
    SupabasePlayerRepository,
)
from strategy_squares.adapters.supabase_record_store import SupabaseRecordStore
from strategy_squares.config import Settings
from strategy_squares.services.chat import ChatService
from strategy_squares.services.observer import SessionObserver
from strategy_squares.services.players import PlayerService
from strategy_squares.services.sessions import SessionManager


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    session_manager: SessionManager
    session_observer: SessionObserver
    player_service: PlayerService
    chat_service: ChatService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = AsyncClient(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    record_store = SupabaseRecordStore(
        supabase_client, table=resolved_settings.sessions_table
    )
    player_repository = SupabasePlayerRepository(
        supabase_client, table=resolved_settings.players_table
    )
    chat_repository = SupabaseChatRepository(
        supabase_client, table=resolved_settings.messages_table
    )
    session_manager = SessionManager(
        store=record_store,
        ledger=player_repository,
        id_attempts=resolved_settings.session_id_attempts,
    )
    player_service = PlayerService(
        player_repository, leaderboard_limit=resolved_settings.leaderboard_limit
    )
    chat_service = ChatService(
        chat_repository, max_length=resolved_settings.chat_message_max_length
    )

    async def close_resources() -> None:
        await supabase_client.remove_all_channels()

    return AppContainer(
        settings=resolved_settings,
        session_manager=session_manager,
        session_observer=SessionObserver(record_store),
        player_service=player_service,
        chat_service=chat_service,
        close_resources=close_resources,
    )
