"""Observation of session records through store change notifications."""

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass

from strategy_squares.domain.documents import from_document
from strategy_squares.domain.errors import InvalidSessionDocument, ObservationFailed
from strategy_squares.domain.sessions import SessionRecord
from strategy_squares.services.sessions import RecordStore, RecordSubscription

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Failure:
    error: Exception


_END = object()


class SessionStream:
    """Async iterator of validated snapshots for one session.

    Snapshots arrive in the store's write order, possibly coalesced. A store
    failure ends the stream with ``ObservationFailed``. After ``close`` returns
    the listener is detached and nothing more is yielded.
    """

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._subscription: RecordSubscription | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        """Whether the stream has ended or been cancelled."""
        return self._closed

    def __aiter__(self) -> "SessionStream":
        return self

    async def __anext__(self) -> SessionRecord:
        if self._closed:
            raise StopAsyncIteration
        item = await self._queue.get()
        if self._closed or item is _END:
            raise StopAsyncIteration
        if isinstance(item, _Failure):
            await self.close()
            raise ObservationFailed(self.session_id, item.error)
        return item  # type: ignore[return-value]

    async def close(self) -> None:
        """Detach the store listener and end iteration."""
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_END)
        if self._subscription is not None:
            await self._subscription.unsubscribe()
            self._subscription = None
        _logger.debug("Stopped observing game %s", self.session_id)

    def _attach(self, subscription: RecordSubscription) -> None:
        self._subscription = subscription

    def _deliver(self, document: dict[str, object] | None) -> None:
        if self._closed:
            return
        if document is None:
            _logger.info("Game %s no longer exists", self.session_id)
            return
        try:
            record = from_document(document)
        except InvalidSessionDocument as exc:
            _logger.warning("Dropped invalid snapshot for %s: %s", self.session_id, exc)
            return
        self._queue.put_nowait(record)

    def _fail(self, error: Exception) -> None:
        if self._closed:
            return
        _logger.warning("Observation of game %s failed: %s", self.session_id, error)
        self._queue.put_nowait(_Failure(error))


@dataclass
class SessionObserver:
    """Republishes store notifications as session snapshots. Never writes."""

    store: RecordStore

    async def open(self, session_id: str) -> SessionStream:
        """Attach a listener now and return the stream it feeds.

        Raises ``ObservationFailed`` when the store cannot attach the listener.
        """
        stream = SessionStream(session_id)
        try:
            subscription = await self.store.subscribe(
                session_id, stream._deliver, stream._fail  # noqa: SLF001
            )
        except Exception as exc:
            _logger.warning("Could not observe game %s: %s", session_id, exc)
            raise ObservationFailed(session_id, exc) from exc
        stream._attach(subscription)  # noqa: SLF001
        _logger.debug("Observing game %s", session_id)
        return stream

    @asynccontextmanager
    async def subscribe(self, session_id: str) -> AsyncIterator[SessionStream]:
        """Yield a stream that is closed when the block exits."""
        stream = await self.open(session_id)
        try:
            yield stream
        finally:
            await stream.close()

    async def forward(
        self, session_id: str, sink: Callable[[SessionRecord], None]
    ) -> None:
        """Push every snapshot into ``sink`` until cancelled or failed."""
        async with self.subscribe(session_id) as stream:
            async for record in stream:
                sink(record)
