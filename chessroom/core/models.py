"""
Boundary layer data model(s).

These objects are used to communicate between the Service and the persistence layer.
(Decouples the data model specific to the DB layer from the information the game logic needs.)

Entities refer to each other by ID only: a game knows the external IDs of its players, a move record knows the ID of its game.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from chessroom.core.shared_types import Color, Status

# Type aliases to make the models easier to read
PlayerId = str
PositionEncoding = str

STARTING_RATING = 1200
RATING_FLOOR = 100


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class PlayerModel:
    """A person playing games. Players are never deleted."""

    player_id: PlayerId
    display_name: str
    rating: int = STARTING_RATING
    games_played: int = 0
    games_won: int = 0
    games_lost: int = 0
    games_drawn: int = 0
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def add_win(self, points: int) -> None:
        self.games_played += 1
        self.games_won += 1
        self.rating += points

    def add_loss(self, points: int) -> None:
        self.games_played += 1
        self.games_lost += 1
        self.rating = max(RATING_FLOOR, self.rating - points)

    def add_draw(self, points: int) -> None:
        self.games_played += 1
        self.games_drawn += 1
        self.rating += points

    @property
    def win_rate(self) -> float:
        """Percentage of played games that were won."""
        if self.games_played == 0:
            return 0.0
        return self.games_won / self.games_played * 100


@dataclass
class GameModel:
    """Transport-safe representation of a game session used between Service and DB layers."""

    game_id: UUID
    white_player_id: PlayerId
    starting_position: PositionEncoding
    current_position: PositionEncoding
    status: Status = Status.WAITING
    current_turn: Color = Color.WHITE
    black_player_id: Optional[PlayerId] = None
    draw_offered_by: Optional[PlayerId] = None
    archived: bool = False
    archived_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @property
    def players(self) -> dict[Color, PlayerId]:
        seated = {Color.WHITE: self.white_player_id}
        if self.black_player_id is not None:
            seated[Color.BLACK] = self.black_player_id
        return seated

    def is_participant(self, player_id: PlayerId) -> bool:
        return player_id in self.players.values()

    def color_of(self, player_id: PlayerId) -> Optional[Color]:
        return next(
            (color for color, seated in self.players.items() if seated == player_id),
            None,
        )

    def archive(self, now: datetime) -> None:
        self.archived = True
        self.archived_at = now


@dataclass(frozen=True)
class MoveRecordModel:
    """A move that was accepted. Immutable once created."""

    game_id: UUID
    move_number: int
    notation: str
    move_uci: str
    position_after: PositionEncoding
    created_at: datetime = field(default_factory=utc_now)
