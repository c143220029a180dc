from uuid import UUID, uuid4

import pytest

from chessroom.api.models import (
    MAX_NOTATION_LENGTH,
    MAX_PLAYER_ID_LENGTH,
    CreateGameRequest,
    DrawResponseRequest,
    JoinGameRequest,
    MoveRequest,
)
from chessroom.core.exceptions import InvalidRequestError


@pytest.fixture
def mock_id() -> UUID:
    return uuid4()


# -- Validation - CreateGameRequest --
def test_valid_fen() -> None:
    """Test that CreateGameRequest accepts a valid FEN string."""

    valid_fen = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"
    request = CreateGameRequest(
        player_id="don't hate the player",
        player_name="hate the name.",
        starting_fen=f"  {valid_fen} ",
    )
    assert request.starting_fen == valid_fen


def test_starting_fen_is_optional() -> None:
    """Should be able to not supply a starting FEN, and validator just returns None."""
    request = CreateGameRequest(player_id="player-1")
    assert request.starting_fen is None
    assert request.player_name == ""


@pytest.mark.parametrize(
    "invalid_fen",
    [
        "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0",  # only 5 space-separated values
        "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1 extra",  # too many space-separated values
    ],
)
def test_invalid_fen(invalid_fen: str) -> None:
    """Structurally invalid FEN: more or less than 6 space-separated fields."""

    with pytest.raises(InvalidRequestError):
        _ = CreateGameRequest(player_id="player-1", starting_fen=invalid_fen)


# -- Validation - player IDs --
def test_player_id_is_stripped(mock_id: UUID) -> None:
    request = JoinGameRequest(game_id=mock_id, player_id="  player-2 ")
    assert request.player_id == "player-2"


@pytest.mark.parametrize("player_id", ["", "   ", "x" * (MAX_PLAYER_ID_LENGTH + 1)])
def test_invalid_player_id(mock_id: UUID, player_id: str) -> None:
    with pytest.raises(InvalidRequestError):
        _ = JoinGameRequest(game_id=mock_id, player_id=player_id)
    with pytest.raises(InvalidRequestError):
        _ = DrawResponseRequest(game_id=mock_id, player_id=player_id, accept=True)


# -- Validation - MoveRequest --
@pytest.mark.parametrize("notation", ["e2e4", "e2-e4", "Nf3", "O-O-O", "exd8=Q+"])
def test_valid_notation(mock_id: UUID, notation: str) -> None:
    """Notation is passed on as typed. Interpreting it is not the job of the request model."""
    request = MoveRequest(game_id=mock_id, player_id="bladiblidiboo", notation=notation)
    assert request.notation == notation


@pytest.mark.parametrize(
    "notation",
    [
        "",  # nothing
        "   ",  # only whitespace
        "e" * (MAX_NOTATION_LENGTH + 1),  # way too long for any move
    ],
)
def test_invalid_notation(mock_id: UUID, notation: str) -> None:
    with pytest.raises(InvalidRequestError):
        _ = MoveRequest(game_id=mock_id, player_id="bladiblidiboo", notation=notation)
