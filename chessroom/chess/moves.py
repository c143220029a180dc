"""
The definition of a single move as the rest of the application sees it.

Generating and validating moves is the job of the rule authority (see rules.py).
"""

from dataclasses import dataclass
from typing import Optional, Self

from chessroom.chess.pieces import FEN_TO_PIECE, PIECE_TO_FEN
from chessroom.chess.square import Square
from chessroom.core.shared_types import PieceType


@dataclass(frozen=True)
class Move:
    """basic definition of a move to be made"""

    origin: Square
    destination: Square
    promotion: Optional[PieceType] = None

    @classmethod
    def from_uci(cls, uci: str) -> Self:
        """
        Universal Chess Interface:
        ---
        One of the standard chess notations for moves

        examples:
        * "e2e4": move the piece that was on e2 to e4
        * "e7e8q" : (pawn) moves from e7 to e8 and promotes to a queen (the q)
        * "e1g1": the king castles king side
        """
        if len(uci) not in (4, 5):
            raise ValueError(f"Not a UCI move: {uci!r}")
        origin = Square.from_algebraic(uci[:2])
        destination = Square.from_algebraic(uci[2:4])
        promotion = FEN_TO_PIECE[uci[4].lower()] if len(uci) == 5 else None
        return cls(origin, destination, promotion)

    def to_uci(self) -> str:
        """Convert into UCI notation"""
        piece_char = PIECE_TO_FEN[self.promotion] if self.promotion else ""
        return f"{self.origin.to_algebraic()}{self.destination.to_algebraic()}{piece_char}"

    def to_dashed(self) -> str:
        """Long form with a dash between the squares, e.g. 'e2-e4' or 'e7-e8q'"""
        piece_char = PIECE_TO_FEN[self.promotion] if self.promotion else ""
        return f"{self.origin.to_algebraic()}-{self.destination.to_algebraic()}{piece_char}"

    def __str__(self) -> str:
        return self.to_uci()
