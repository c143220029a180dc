"""Configuration via environment variables (prefix CHESS_)."""

from typing import Self

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings


class ChessSettings(BaseSettings):
    model_config = {"env_prefix": "CHESS_"}

    database_url: str = "sqlite:///chessroom.db"
    echo_sql: bool = False
    log_dir: str | None = None
    log_level: str = "INFO"

    # maintenance
    waiting_game_max_age_days: int = 7
    archive_after_days: int = 30
    purge_after_days: int = 60

    # lobby
    waiting_list_window_minutes: int = 60
    leaderboard_size: int = 10

    @field_validator(
        "waiting_game_max_age_days",
        "archive_after_days",
        "purge_after_days",
        "waiting_list_window_minutes",
        "leaderboard_size",
    )
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be a positive number")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {v!r}")
        return level

    @model_validator(mode="after")
    def validate_purge_after_archive(self) -> Self:
        if self.purge_after_days <= self.archive_after_days:
            raise ValueError("purge_after_days must be larger than archive_after_days")
        return self
