"""Supabase repository for player profiles and scores."""

from dataclasses import dataclass

from supabase import AsyncClient

from strategy_squares.domain.players import PlayerProfile
from strategy_squares.services.players import PlayerRepository
from strategy_squares.services.sessions import ScoreLedger

_COLUMNS = "player_id, name, email, photo_url, symbol, symbol_color, score"


@dataclass
class SupabasePlayerRepository(PlayerRepository, ScoreLedger):
    """Players table backing profiles, the leaderboard and the score ledger."""

    client: AsyncClient
    table: str = "players"

    async def get_player(self, player_id: str) -> PlayerProfile | None:
        """Return a player profile by id, if present."""
        response = await (
            self.client.table(self.table)
            .select(_COLUMNS)
            .eq("player_id", player_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_row(response.data[0])

    async def upsert_player(self, profile: PlayerProfile) -> None:
        """Create or update a profile without touching its score."""
        await (
            self.client.table(self.table)
            .upsert(
                {
                    "player_id": profile.player_id,
                    "name": profile.name,
                    "email": profile.email,
                    "photo_url": profile.photo_url,
                    "symbol": profile.symbol,
                    "symbol_color": profile.symbol_color,
                },
                on_conflict="player_id",
            )
            .execute()
        )

    async def list_top_players(self, limit: int) -> list[PlayerProfile]:
        """Return players ordered by score, highest first."""
        response = await (
            self.client.table(self.table)
            .select(_COLUMNS)
            .order("score", desc=True)
            .limit(limit)
            .execute()
        )
        return [_parse_row(row) for row in response.data or []]

    async def get_score(self, player_id: str) -> int:
        """Return the stored score, 0 for unknown players."""
        response = await (
            self.client.table(self.table)
            .select("score")
            .eq("player_id", player_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return 0
        return int(response.data[0].get("score") or 0)

    async def set_score(self, player_id: str, score: int) -> None:
        """Write the player's score."""
        await (
            self.client.table(self.table)
            .upsert({"player_id": player_id, "score": score}, on_conflict="player_id")
            .execute()
        )


def _parse_row(row: dict[str, object]) -> PlayerProfile:
    defaults = PlayerProfile(player_id="", name="")
    return PlayerProfile(
        player_id=str(row["player_id"]),
        name=str(row.get("name") or ""),
        email=str(row.get("email") or ""),
        photo_url=str(row.get("photo_url") or ""),
        symbol=str(row.get("symbol") or defaults.symbol),
        symbol_color=int(row.get("symbol_color") or defaults.symbol_color),
        score=int(row.get("score") or 0),
    )
