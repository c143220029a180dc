"""Requests and Response models"""

from datetime import datetime
from typing import Annotated, Optional
from uuid import UUID

from pydantic import AfterValidator, BaseModel, field_validator

from chessroom.core.exceptions import InvalidRequestError
from chessroom.core.shared_types import Color, Status

MAX_PLAYER_ID_LENGTH = 64
MAX_NOTATION_LENGTH = 32


def _validate_player_id(value: str) -> str:
    value = value.strip()
    if not value:
        raise InvalidRequestError("player_id cannot be empty.")
    if len(value) > MAX_PLAYER_ID_LENGTH:
        raise InvalidRequestError(
            f"player_id is too long (max. {MAX_PLAYER_ID_LENGTH} characters)."
        )
    return value


PlayerIdField = Annotated[str, AfterValidator(_validate_player_id)]


# --- REQUEST MODELS ---
class CreateGameRequest(BaseModel):
    player_id: PlayerIdField
    player_name: str = ""
    starting_fen: Optional[str] = None

    @field_validator("starting_fen")
    @classmethod
    def validate_starting_fen(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value

        parts = value.strip().split(" ")
        if len(parts) != 6:
            raise InvalidRequestError(
                "FEN string must contain 6 space-separated parts."
            )
        return value.strip()


class JoinGameRequest(BaseModel):
    game_id: UUID
    player_id: PlayerIdField
    player_name: str = ""


class PlayerActionRequest(BaseModel):
    """A player doing something in a game that only needs to know who they are."""

    game_id: UUID
    player_id: PlayerIdField


class DrawOfferRequest(PlayerActionRequest):
    pass


class ResignRequest(PlayerActionRequest):
    pass


class CancelGameRequest(PlayerActionRequest):
    pass


class DrawResponseRequest(PlayerActionRequest):
    accept: bool


class MoveRequest(PlayerActionRequest):
    notation: str

    @field_validator("notation")
    @classmethod
    def validate_notation(cls, value: str) -> str:
        if not value.strip():
            raise InvalidRequestError("Move notation cannot be empty.")
        if len(value) > MAX_NOTATION_LENGTH:
            raise InvalidRequestError(
                f"Move notation is too long (max. {MAX_NOTATION_LENGTH} characters): {value[:MAX_NOTATION_LENGTH]!r}..."
            )
        return value


class GetGameRequest(BaseModel):
    game_id: UUID
    # the player looking at the game (None for spectators)
    player_id: Optional[str] = None


# --- RESPONSE MODELS ---
class PlayerInfo(BaseModel):
    player_id: str
    display_name: str
    rating: int
    games_played: int
    games_won: int
    games_lost: int
    games_drawn: int
    win_rate: float


class GameResponse(BaseModel):
    game_id: UUID
    status: Status
    white: PlayerInfo
    black: Optional[PlayerInfo]
    current_turn: Color
    position: str
    move_count: int
    in_check: bool
    draw_offered_by: Optional[str]
    # color of the player who requested the view, None for spectators
    player_color: Optional[Color]
    # only filled when it is the requesting player's turn
    legal_moves: list[str]
    archived: bool
    created_at: datetime
    updated_at: datetime


class WaitingGameInfo(BaseModel):
    game_id: UUID
    white_player_id: str
    white_player_name: str
    white_rating: int
    created_at: datetime


class MoveRecordResponse(BaseModel):
    move_number: int
    notation: str
    move_uci: str
    position_after: str
    created_at: datetime
