"""Unit tests for /chessroom/chess/moves.py"""

import pytest

from chessroom.chess.moves import Move
from chessroom.chess.square import Square
from chessroom.core.shared_types import PieceType


# -- MOVE CREATION, ENCODING/DECODING UCI NOTATION ---
@pytest.mark.parametrize(
    "uci_move, origin, destination",
    [
        ("e2e4", "e2", "e4"),
        ("a1a5", "a1", "a5"),
        ("d2e4", "d2", "e4"),
        ("g3a7", "g3", "a7"),
    ],
)
def test_creating_move_from_uci(uci_move: str, origin: str, destination: str) -> None:
    """Creating logic / parsing of UCI notation for the move should be <origin><destination>"""
    move = Move.from_uci(uci_move)
    assert move.origin == Square.from_algebraic(origin)
    assert move.destination == Square.from_algebraic(destination)
    assert move.promotion is None
    assert move.to_uci() == uci_move


def test_creating_move_incl_promotion() -> None:
    move = Move.from_uci("e7e8q")
    assert move.origin == Square.from_algebraic("e7")
    assert move.destination == Square.from_algebraic("e8")
    assert move.promotion == PieceType.QUEEN
    assert move.to_uci() == "e7e8q"


@pytest.mark.parametrize("uci_move", ["", "e2", "e2e", "e2e4qq", "z2e4", "e2e9"])
def test_invalid_uci(uci_move: str) -> None:
    with pytest.raises(ValueError):
        Move.from_uci(uci_move)


def test_dashed_form() -> None:
    assert Move.from_uci("e2e4").to_dashed() == "e2-e4"
    assert Move.from_uci("b7b8n").to_dashed() == "b7-b8n"


def test_moves_are_values() -> None:
    """Equal when origin, destination and promotion are equal. Usable in sets."""
    assert Move.from_uci("e7e8q") == Move(Square(5, 7), Square(5, 8), PieceType.QUEEN)
    assert Move.from_uci("e7e8q") != Move.from_uci("e7e8r")
    assert len({Move.from_uci("g1f3"), Move.from_uci("g1f3")}) == 1
