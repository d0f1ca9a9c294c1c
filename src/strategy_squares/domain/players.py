"""Domain models for player profiles."""

from dataclasses import dataclass

from strategy_squares.domain.sessions import COLOR_CREATOR, MARK_X


@dataclass(frozen=True)
class PlayerProfile:
    """A signed-in player as supplied by the identity provider."""

    player_id: str
    name: str
    email: str = ""
    photo_url: str = ""
    symbol: str = MARK_X
    symbol_color: int = COLOR_CREATOR
    score: int = 0
