"""Implementation of the repositories using SQLAlchemy"""

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator
from uuid import UUID

from sqlalchemy import delete, func, or_, select
from sqlalchemy.orm import Session, sessionmaker

from chessroom.core.models import GameModel, MoveRecordModel, PlayerId, PlayerModel
from chessroom.core.shared_types import (
    NON_TERMINAL_STATUSES,
    TERMINAL_STATUSES,
    Color,
    Status,
)
from chessroom.db.schema import DBGame, DBMove, DBPlayer

logger = logging.getLogger(__name__)


def as_utc(moment: datetime) -> datetime:
    """SQLite hands back naive datetimes. Everything stored is UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


class SQLGameRepository:
    """Data stored using SQL / methods implemented using SQLAlchemy"""

    def __init__(self, db_session: Session) -> None:
        self.db = db_session

    def create(self, game: GameModel) -> GameModel:
        game_db = DBGame(id=game.game_id)
        self._copy_into(game_db, game)
        self.db.add(game_db)
        self.db.flush()
        return self._to_model(game_db)

    def get(self, game_id: UUID) -> GameModel | None:
        game_db = self._fetch_game(game_id)
        if game_db:
            return self._to_model(game_db)
        return None

    def get_for_update(self, game_id: UUID) -> GameModel | None:
        query = select(DBGame).where(DBGame.id == game_id).with_for_update()
        game_db = self.db.scalar(query)
        if game_db:
            return self._to_model(game_db)
        return None

    def save(self, game: GameModel) -> GameModel:
        game_db = self._fetch_game(game.game_id)
        if game_db is None:
            raise LookupError(f"Cannot save unknown game {game.game_id}")
        self._copy_into(game_db, game)
        self.db.flush()
        return self._to_model(game_db)

    def delete(self, game_id: UUID) -> None:
        game_db = self._fetch_game(game_id)
        if game_db:
            self.db.delete(game_db)
            self.db.flush()

    def find_active_for_player(self, player_id: PlayerId) -> list[GameModel]:
        query = select(DBGame).where(
            DBGame.status.in_([status.value for status in NON_TERMINAL_STATUSES]),
            or_(
                DBGame.white_player_id == player_id,
                DBGame.black_player_id == player_id,
            ),
        )
        return [self._to_model(game_db) for game_db in self.db.scalars(query)]

    def find_waiting_created_after(self, cutoff: datetime) -> list[GameModel]:
        query = (
            select(DBGame)
            .where(DBGame.status == Status.WAITING.value, DBGame.created_at >= cutoff)
            .order_by(DBGame.created_at.desc())
        )
        return [self._to_model(game_db) for game_db in self.db.scalars(query)]

    def find_waiting_created_before(self, cutoff: datetime) -> list[GameModel]:
        query = (
            select(DBGame)
            .where(DBGame.status == Status.WAITING.value, DBGame.created_at < cutoff)
            .order_by(DBGame.created_at)
        )
        return [self._to_model(game_db) for game_db in self.db.scalars(query)]

    def find_terminal_updated_before(
        self, cutoff: datetime, *, include_archived: bool = True
    ) -> list[GameModel]:
        query = select(DBGame).where(
            DBGame.status.in_([status.value for status in TERMINAL_STATUSES]),
            DBGame.updated_at < cutoff,
        )
        if not include_archived:
            query = query.where(DBGame.archived.is_(False))
        query = query.order_by(DBGame.updated_at)
        return [self._to_model(game_db) for game_db in self.db.scalars(query)]

    def _fetch_game(self, game_id: UUID) -> DBGame | None:
        query = select(DBGame).where(DBGame.id == game_id)
        return self.db.scalar(query)

    def _copy_into(self, game_db: DBGame, game: GameModel) -> None:
        game_db.white_player_id = game.white_player_id
        game_db.black_player_id = game.black_player_id
        game_db.status = game.status.value
        game_db.current_turn = game.current_turn.value
        game_db.starting_position = game.starting_position
        game_db.current_position = game.current_position
        game_db.draw_offered_by = game.draw_offered_by
        game_db.archived = game.archived
        game_db.archived_at = game.archived_at
        game_db.created_at = game.created_at
        game_db.updated_at = game.updated_at

    def _to_model(self, game_db: DBGame) -> GameModel:
        """Convert SQLAlchemy model to data transfer model."""
        return GameModel(
            game_id=game_db.id,
            white_player_id=game_db.white_player_id,
            black_player_id=game_db.black_player_id,
            status=Status(game_db.status),
            current_turn=Color(game_db.current_turn),
            starting_position=game_db.starting_position,
            current_position=game_db.current_position,
            draw_offered_by=game_db.draw_offered_by,
            archived=game_db.archived,
            archived_at=as_utc(game_db.archived_at) if game_db.archived_at else None,
            created_at=as_utc(game_db.created_at),
            updated_at=as_utc(game_db.updated_at),
        )


class SQLPlayerRepository:
    def __init__(self, db_session: Session) -> None:
        self.db = db_session

    def get(self, player_id: PlayerId) -> PlayerModel | None:
        player_db = self._fetch_player(player_id)
        if player_db:
            return self._to_model(player_db)
        return None

    def find_or_create(self, player_id: PlayerId, display_name: str) -> PlayerModel:
        """Known players get their display name refreshed (if a new one is given)."""
        player_db = self._fetch_player(player_id)
        if player_db is None:
            player_db = DBPlayer(external_id=player_id, display_name=display_name or player_id)
            self.db.add(player_db)
            self.db.flush()
            logger.info("Registered new player %s (%s)", player_id, player_db.display_name)
        elif display_name and display_name != player_db.display_name:
            player_db.display_name = display_name
            self.db.flush()
        return self._to_model(player_db)

    def save(self, player: PlayerModel) -> PlayerModel:
        player_db = self._fetch_player(player.player_id)
        if player_db is None:
            raise LookupError(f"Cannot save unknown player {player.player_id}")
        player_db.display_name = player.display_name
        player_db.rating = player.rating
        player_db.games_played = player.games_played
        player_db.games_won = player.games_won
        player_db.games_lost = player.games_lost
        player_db.games_drawn = player.games_drawn
        player_db.updated_at = player.updated_at
        self.db.flush()
        return self._to_model(player_db)

    def top_by_rating(self, limit: int) -> list[PlayerModel]:
        query = (
            select(DBPlayer)
            .order_by(DBPlayer.rating.desc(), DBPlayer.external_id)
            .limit(limit)
        )
        return [self._to_model(player_db) for player_db in self.db.scalars(query)]

    def _fetch_player(self, player_id: PlayerId) -> DBPlayer | None:
        query = select(DBPlayer).where(DBPlayer.external_id == player_id)
        return self.db.scalar(query)

    def _to_model(self, player_db: DBPlayer) -> PlayerModel:
        return PlayerModel(
            player_id=player_db.external_id,
            display_name=player_db.display_name,
            rating=player_db.rating,
            games_played=player_db.games_played,
            games_won=player_db.games_won,
            games_lost=player_db.games_lost,
            games_drawn=player_db.games_drawn,
            created_at=as_utc(player_db.created_at),
            updated_at=as_utc(player_db.updated_at),
        )


class SQLMoveRepository:
    def __init__(self, db_session: Session) -> None:
        self.db = db_session

    def append(self, record: MoveRecordModel) -> MoveRecordModel:
        move_db = DBMove(
            game_id=record.game_id,
            move_number=record.move_number,
            notation=record.notation,
            move_uci=record.move_uci,
            position_after=record.position_after,
            created_at=record.created_at,
        )
        self.db.add(move_db)
        self.db.flush()
        return self._to_model(move_db)

    def count_by_game(self, game_id: UUID) -> int:
        query = select(func.count()).select_from(DBMove).where(DBMove.game_id == game_id)
        return self.db.scalar(query) or 0

    def list_by_game(self, game_id: UUID) -> list[MoveRecordModel]:
        query = (
            select(DBMove).where(DBMove.game_id == game_id).order_by(DBMove.move_number)
        )
        return [self._to_model(move_db) for move_db in self.db.scalars(query)]

    def delete_by_game(self, game_id: UUID) -> int:
        result = self.db.execute(delete(DBMove).where(DBMove.game_id == game_id))
        return result.rowcount or 0

    def _to_model(self, move_db: DBMove) -> MoveRecordModel:
        return MoveRecordModel(
            game_id=move_db.game_id,
            move_number=move_db.move_number,
            notation=move_db.notation,
            move_uci=move_db.move_uci,
            position_after=move_db.position_after,
            created_at=as_utc(move_db.created_at),
        )


class SQLStorage:
    """The three repositories on a single session. atomic() is the transaction boundary."""

    def __init__(self, db_session: Session) -> None:
        self.db = db_session
        self.games = SQLGameRepository(db_session)
        self.players = SQLPlayerRepository(db_session)
        self.moves = SQLMoveRepository(db_session)

    @contextmanager
    def atomic(self) -> Iterator[None]:
        try:
            yield
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise


class SQLStorageFactory:
    """A new session (and so a transaction of its own) for every unit of work."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self.session_factory = session_factory

    @contextmanager
    def __call__(self) -> Iterator[SQLStorage]:
        db = self.session_factory()
        try:
            yield SQLStorage(db)
        finally:
            db.close()
