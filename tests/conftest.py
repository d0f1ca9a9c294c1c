"""Shared test fixtures."""

import copy
from collections.abc import Callable
from dataclasses import dataclass, field, replace

import pytest

from strategy_squares.config import Settings
from strategy_squares.containers import AppContainer
from strategy_squares.domain.players import PlayerProfile
from strategy_squares.domain.sessions import ChatMessage
from strategy_squares.services.chat import ChatRepository, ChatService
from strategy_squares.services.observer import SessionObserver
from strategy_squares.services.players import PlayerRepository, PlayerService
from strategy_squares.services.sessions import (
    RecordStore,
    ScoreLedger,
    SessionManager,
)


@dataclass
class _Listener:
    on_change: Callable[[dict[str, object] | None], None]
    on_error: Callable[[Exception], None]


@dataclass
class InMemorySubscription:
    """Subscription handle for the in-memory store."""

    store: "InMemoryRecordStore"
    key: str
    listener: _Listener

    async def unsubscribe(self) -> None:
        listeners = self.store.listeners.get(self.key, [])
        if self.listener in listeners:
            listeners.remove(self.listener)


@dataclass
class InMemoryRecordStore(RecordStore):
    """In-memory record store that notifies listeners synchronously."""

    documents: dict[str, dict[str, object]] = field(default_factory=dict)
    listeners: dict[str, list[_Listener]] = field(default_factory=dict)
    writes: list[tuple[str, str]] = field(default_factory=list)
    subscribe_error: Exception | None = None

    async def get(self, key: str) -> dict[str, object] | None:
        document = self.documents.get(key)
        return copy.deepcopy(document) if document is not None else None

    async def set(self, key: str, document: dict[str, object]) -> None:
        self.documents[key] = copy.deepcopy(document)
        self.writes.append(("set", key))
        self.redeliver(key)

    async def delete(self, key: str) -> None:
        self.documents.pop(key, None)
        self.writes.append(("delete", key))
        self.redeliver(key)

    async def subscribe(
        self,
        key: str,
        on_change: Callable[[dict[str, object] | None], None],
        on_error: Callable[[Exception], None],
    ) -> InMemorySubscription:
        if self.subscribe_error is not None:
            raise self.subscribe_error
        listener = _Listener(on_change=on_change, on_error=on_error)
        self.listeners.setdefault(key, []).append(listener)
        on_change(copy.deepcopy(self.documents.get(key)))
        return InMemorySubscription(store=self, key=key, listener=listener)

    def redeliver(self, key: str) -> None:
        """Notify listeners of the current document again."""
        for listener in list(self.listeners.get(key, [])):
            listener.on_change(copy.deepcopy(self.documents.get(key)))

    def push(self, key: str, document: dict[str, object] | None) -> None:
        """Deliver an arbitrary document without storing it."""
        for listener in list(self.listeners.get(key, [])):
            listener.on_change(copy.deepcopy(document))

    def fail(self, key: str, error: Exception) -> None:
        """Report a transport failure to listeners of a key."""
        for listener in list(self.listeners.get(key, [])):
            listener.on_error(error)


@dataclass
class InMemoryPlayerRepository(PlayerRepository, ScoreLedger):
    """In-memory player profiles and score ledger."""

    profiles: dict[str, PlayerProfile] = field(default_factory=dict)
    scores: dict[str, int] = field(default_factory=dict)
    score_writes: list[tuple[str, int]] = field(default_factory=list)

    async def get_player(self, player_id: str) -> PlayerProfile | None:
        profile = self.profiles.get(player_id)
        if profile is None:
            return None
        return replace(profile, score=self.scores.get(player_id, 0))

    async def upsert_player(self, profile: PlayerProfile) -> None:
        self.profiles[profile.player_id] = profile

    async def list_top_players(self, limit: int) -> list[PlayerProfile]:
        players = [
            replace(profile, score=self.scores.get(player_id, 0))
            for player_id, profile in self.profiles.items()
        ]
        return sorted(players, key=lambda player: player.score, reverse=True)[:limit]

    async def get_score(self, player_id: str) -> int:
        return self.scores.get(player_id, 0)

    async def set_score(self, player_id: str, score: int) -> None:
        self.scores[player_id] = score
        self.score_writes.append((player_id, score))


@dataclass
class FailingScoreLedger(ScoreLedger):
    """Ledger whose writes fail for selected players."""

    failing_ids: set[str] = field(default_factory=set)
    scores: dict[str, int] = field(default_factory=dict)

    async def get_score(self, player_id: str) -> int:
        return self.scores.get(player_id, 0)

    async def set_score(self, player_id: str, score: int) -> None:
        if player_id in self.failing_ids:
            raise RuntimeError("ledger unavailable")
        self.scores[player_id] = score


@dataclass
class InMemoryChatRepository(ChatRepository):
    """In-memory chat log."""

    messages: list[ChatMessage] = field(default_factory=list)

    async def append_message(self, message: ChatMessage) -> None:
        self.messages.append(message)

    async def list_messages(self, session_id: str, limit: int) -> list[ChatMessage]:
        return [m for m in self.messages if m.session_id == session_id][:limit]


def fixed_ids(*session_ids: str) -> Callable[[], str]:
    """Return an id factory yielding the given ids in order."""
    remaining = list(session_ids)

    def factory() -> str:
        return remaining.pop(0)

    return factory


ALICE = PlayerProfile(player_id="alice", name="Alice")
BOB = PlayerProfile(player_id="bob", name="Bob")
CAROL = PlayerProfile(player_id="carol", name="Carol")


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="header.payload.signature",
    )


@pytest.fixture
def record_store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def player_repository() -> InMemoryPlayerRepository:
    return InMemoryPlayerRepository()


@pytest.fixture
def session_manager(
    record_store: InMemoryRecordStore, player_repository: InMemoryPlayerRepository
) -> SessionManager:
    return SessionManager(
        store=record_store,
        ledger=player_repository,
        id_factory=fixed_ids("ABCDEF", "GHIJKL", "MNOPQR"),
    )


@pytest.fixture
def container(
    settings: Settings,
    record_store: InMemoryRecordStore,
    player_repository: InMemoryPlayerRepository,
    session_manager: SessionManager,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        session_manager=session_manager,
        session_observer=SessionObserver(record_store),
        player_service=PlayerService(player_repository),
        chat_service=ChatService(InMemoryChatRepository()),
        close_resources=close_resources,
    )
