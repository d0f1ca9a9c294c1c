"""Errors raised by session operations."""


class SessionError(Exception):
    """Base class for errors reported to the caller of a session operation."""


class SessionNotFound(SessionError):
    """No record exists for the session id."""

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__(f"Game {session_id} not found")


class SessionFull(SessionError):
    """The session already has a second participant."""

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__(f"Game {session_id} is full")


class SelfJoin(SessionError):
    """A player tried to join the session they created."""

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__("Cannot join your own game")


class InvalidMessage(SessionError):
    """Chat text is empty or too long."""


class ObservationFailed(Exception):
    """The store subscription for a session failed; the stream has ended."""

    def __init__(self, session_id: str, cause: BaseException | None = None) -> None:
        self.session_id = session_id
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Observation of game {session_id} failed{detail}")


class SettlementFailure(Exception):
    """A score ledger update failed after a win was recorded."""

    def __init__(self, session_id: str, player_id: str, cause: BaseException) -> None:
        self.session_id = session_id
        self.player_id = player_id
        self.cause = cause
        super().__init__(
            f"Score settlement for {player_id} in game {session_id} failed: {cause}"
        )


class InvalidSessionDocument(ValueError):
    """A stored document does not describe a valid session record."""
