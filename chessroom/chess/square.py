"""
A square on the board

(placed in its own module as multiple other modules need to import it)
"""

from __future__ import annotations

from dataclasses import dataclass
from string import ascii_lowercase

# Chess board is always 8x8.
BOARD_DIMENSIONS = (8, 8)
FILE_NAMES = ascii_lowercase[: BOARD_DIMENSIONS[0]]


@dataclass(frozen=True, order=True)
class Square:
    file: int
    rank: int

    @classmethod
    def from_algebraic(cls, sq: str) -> Square:
        """Algebraic notation: 'a1' - 'h8' get converted to (1,1) - (8,8). Case of the file letter is ignored."""
        if not is_valid_square(sq):
            raise ValueError(f"Not a square on the board: {sq!r}")
        file = FILE_NAMES.index(sq[0].lower()) + 1
        rank = int(sq[1])
        return cls(file, rank)

    def to_algebraic(self) -> str:
        return f"{self.file_name}{self.rank}"

    @property
    def file_name(self) -> str:
        return FILE_NAMES[self.file - 1]

    def __str__(self) -> str:
        return self.to_algebraic()


def is_valid_square(square: str) -> bool:
    """Valid square should be a letter for the file + a single digit for the rank"""
    if len(square) != 2:
        return False
    file_char, rank_char = square[0].lower(), square[1]
    if file_char not in FILE_NAMES:
        return False
    if not rank_char.isdigit():
        return False
    return 1 <= int(rank_char) <= BOARD_DIMENSIONS[1]
