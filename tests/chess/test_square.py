"""Unit tests for /chessroom/chess/square.py"""

from string import ascii_lowercase

import pytest

from chessroom.chess.square import Square, is_valid_square


@pytest.mark.parametrize(
    "file, rank, notation",
    [
        (file, rank, f"{ascii_lowercase[file - 1]}{rank}")
        for file in range(1, 9)
        for rank in range(1, 9)
    ],
)
def test_creating_from_algebraic(file: int, rank: int, notation: str) -> None:
    """Simply checks if the notation for 'a1' indeed maps to file 1, rank 1, etc."""
    square = Square.from_algebraic(notation)
    assert square.file == file
    assert square.rank == rank
    assert square.to_algebraic() == notation


def test_file_letter_is_case_insensitive() -> None:
    """Players type 'E2E4' too."""
    assert Square.from_algebraic("E2") == Square.from_algebraic("e2") == Square(5, 2)


@pytest.mark.parametrize("notation", ["", "e", "e0", "e9", "i1", "22", "e22", "ee"])
def test_invalid_square(notation: str) -> None:
    assert not is_valid_square(notation)
    with pytest.raises(ValueError):
        Square.from_algebraic(notation)


def test_str_and_file_name() -> None:
    square = Square(7, 1)
    assert square.file_name == "g"
    assert str(square) == "g1"
