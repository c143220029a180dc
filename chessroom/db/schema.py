"""Database tables / schema"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from chessroom.core.models import STARTING_RATING, utc_now


class Base(DeclarativeBase):
    type_annotation_map = {datetime: DateTime(timezone=True)}


class DBPlayer(Base):
    __tablename__ = "players"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    external_id: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    display_name: Mapped[str] = mapped_column(String(100))
    rating: Mapped[int] = mapped_column(default=STARTING_RATING)
    games_played: Mapped[int] = mapped_column(default=0)
    games_won: Mapped[int] = mapped_column(default=0)
    games_lost: Mapped[int] = mapped_column(default=0)
    games_drawn: Mapped[int] = mapped_column(default=0)
    created_at: Mapped[datetime] = mapped_column(default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(default=utc_now)


class DBGame(Base):
    __tablename__ = "games"
    id: Mapped[UUID] = mapped_column(primary_key=True)
    white_player_id: Mapped[str] = mapped_column(
        ForeignKey("players.external_id"), index=True
    )
    black_player_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("players.external_id"), index=True
    )
    status: Mapped[str] = mapped_column(String(20), index=True)
    current_turn: Mapped[str] = mapped_column(String(5))
    starting_position: Mapped[str] = mapped_column(String(100))
    current_position: Mapped[str] = mapped_column(String(100))
    draw_offered_by: Mapped[Optional[str]] = mapped_column(String(64))
    archived: Mapped[bool] = mapped_column(default=False)
    archived_at: Mapped[Optional[datetime]]
    created_at: Mapped[datetime] = mapped_column(default=utc_now, index=True)
    updated_at: Mapped[datetime] = mapped_column(default=utc_now, index=True)


class DBMove(Base):
    __tablename__ = "moves"
    __table_args__ = (UniqueConstraint("game_id", "move_number"),)
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    game_id: Mapped[UUID] = mapped_column(
        ForeignKey("games.id", ondelete="CASCADE"), index=True
    )
    move_number: Mapped[int]
    notation: Mapped[str] = mapped_column(String(64))
    move_uci: Mapped[str] = mapped_column(String(5))
    position_after: Mapped[str] = mapped_column(String(100))
    created_at: Mapped[datetime] = mapped_column(default=utc_now)
