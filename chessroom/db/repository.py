"""Protocol repositories. The service only depends on these, not on SQLAlchemy."""

from contextlib import AbstractContextManager
from datetime import datetime
from typing import Protocol
from uuid import UUID

from chessroom.core.models import GameModel, MoveRecordModel, PlayerId, PlayerModel


class GameRepository(Protocol):
    """Persistence of game sessions"""

    def create(self, game: GameModel) -> GameModel:
        """Store a new game."""
        ...

    def get(self, game_id: UUID) -> GameModel | None:
        """Get game by ID, if record exists."""
        ...

    def get_for_update(self, game_id: UUID) -> GameModel | None:
        """Get game by ID and hold an exclusive lock on its record until the transaction ends."""
        ...

    def save(self, game: GameModel) -> GameModel:
        """Overwrite the stored record with the given state."""
        ...

    def delete(self, game_id: UUID) -> None:
        """Remove a game's record."""
        ...

    def find_active_for_player(self, player_id: PlayerId) -> list[GameModel]:
        """Games the player takes part in that have not finished yet."""
        ...

    def find_waiting_created_after(self, cutoff: datetime) -> list[GameModel]:
        """Open games (newest first) that are still looking for an opponent."""
        ...

    def find_waiting_created_before(self, cutoff: datetime) -> list[GameModel]:
        """Open games nobody joined for too long."""
        ...

    def find_terminal_updated_before(
        self, cutoff: datetime, *, include_archived: bool = True
    ) -> list[GameModel]:
        """Finished games without any activity since the cutoff."""
        ...


class PlayerRepository(Protocol):
    """Persistence of players"""

    def get(self, player_id: PlayerId) -> PlayerModel | None: ...

    def find_or_create(self, player_id: PlayerId, display_name: str) -> PlayerModel:
        """Lazily register a player on first reference."""
        ...

    def save(self, player: PlayerModel) -> PlayerModel: ...

    def top_by_rating(self, limit: int) -> list[PlayerModel]: ...


class MoveRepository(Protocol):
    """Persistence of accepted moves. Records are append-only."""

    def append(self, record: MoveRecordModel) -> MoveRecordModel: ...

    def count_by_game(self, game_id: UUID) -> int: ...

    def list_by_game(self, game_id: UUID) -> list[MoveRecordModel]:
        """Ordered by move number."""
        ...

    def delete_by_game(self, game_id: UUID) -> int:
        """Remove all records of a game. Returns how many were removed."""
        ...


class Storage(Protocol):
    """All repositories sharing one transaction."""

    games: GameRepository
    players: PlayerRepository
    moves: MoveRepository

    def atomic(self) -> AbstractContextManager[None]:
        """Commit everything done inside the block, or nothing at all if it raises."""
        ...


class StorageFactory(Protocol):
    """
    Opens a Storage of its own for one unit of work, and closes it afterwards.

    Concurrent requests must never share a Storage: a rollback in one would undo the other's work.
    """

    def __call__(self) -> AbstractContextManager[Storage]: ...
