"""Player profile and leaderboard services."""

from dataclasses import dataclass, replace
from typing import Protocol

from strategy_squares.domain.players import PlayerProfile


class PlayerRepository(Protocol):
    """Persistence interface for player profiles."""

    async def get_player(self, player_id: str) -> PlayerProfile | None:
        """Return a stored profile, if present."""

    async def upsert_player(self, profile: PlayerProfile) -> None:
        """Create or update profile fields, leaving the score untouched."""

    async def list_top_players(self, limit: int) -> list[PlayerProfile]:
        """Return players ordered by score, highest first."""


@dataclass
class PlayerService:
    """Application service for player profiles."""

    repository: PlayerRepository
    leaderboard_limit: int = 50

    async def register(self, profile: PlayerProfile) -> PlayerProfile:
        """Store the signed-in player's profile and return it with its score."""
        await self.repository.upsert_player(profile)
        stored = await self.repository.get_player(profile.player_id)
        return stored or profile

    async def update_symbol(self, player_id: str, symbol: str) -> PlayerProfile | None:
        """Change the symbol a player uses for games they create."""
        cleaned = symbol.strip()
        current = await self.repository.get_player(player_id)
        if current is None or not cleaned:
            return current
        updated = replace(current, symbol=cleaned)
        await self.repository.upsert_player(updated)
        return updated

    async def leaderboard(self, limit: int | None = None) -> list[PlayerProfile]:
        """Return the top players by cumulative score."""
        resolved = min(limit or self.leaderboard_limit, self.leaderboard_limit)
        return await self.repository.list_top_players(max(resolved, 1))
