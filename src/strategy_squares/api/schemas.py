"""Pydantic models for HTTP request payloads."""

from pydantic import BaseModel, Field

from strategy_squares.domain.players import PlayerProfile
from strategy_squares.domain.sessions import COLOR_CREATOR, MARK_X


class PlayerPayload(BaseModel):
    """Signed-in player as supplied by the identity provider."""

    player_id: str = Field(min_length=1)
    name: str = ""
    email: str = ""
    photo_url: str = ""
    symbol: str = Field(default=MARK_X, min_length=1)
    symbol_color: int = COLOR_CREATOR

    def to_profile(self) -> PlayerProfile:
        """Convert to the domain profile."""
        return PlayerProfile(
            player_id=self.player_id,
            name=self.name,
            email=self.email,
            photo_url=self.photo_url,
            symbol=self.symbol,
            symbol_color=self.symbol_color,
        )


class MoveRequest(BaseModel):
    """A move attempt."""

    player_id: str = Field(min_length=1)
    position: int


class LeaveRequest(BaseModel):
    """A participant leaving a game."""

    player_id: str = Field(min_length=1)


class SymbolRequest(BaseModel):
    """A new preferred symbol."""

    symbol: str = Field(min_length=1, max_length=8)


class ChatRequest(BaseModel):
    """A chat line posted to a game."""

    sender: PlayerPayload
    text: str
