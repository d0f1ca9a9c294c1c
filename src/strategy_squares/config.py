"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Supabase connection, table names and game limits.

    Values come from the environment, then ``.env.<ENVIRONMENT>`` and ``.env``.
    """

    supabase_url: str
    supabase_service_key: str
    sessions_table: str = "game_sessions"
    players_table: str = "players"
    messages_table: str = "session_messages"
    session_id_attempts: int = 3
    leaderboard_limit: int = 50
    chat_message_max_length: int = 500
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
