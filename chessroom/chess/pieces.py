"""Defines the chess pieces and the letters used to write them down"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Self

from chessroom.core.shared_types import Color, PieceType

# Lookup tables are built once at import time and are read-only afterwards.
FEN_TO_PIECE: Mapping[str, PieceType] = MappingProxyType(
    {
        "p": PieceType.PAWN,
        "n": PieceType.KNIGHT,
        "b": PieceType.BISHOP,
        "r": PieceType.ROOK,
        "q": PieceType.QUEEN,
        "k": PieceType.KING,
    }
)

PIECE_TO_FEN: Mapping[PieceType, str] = MappingProxyType(
    {value: key for key, value in FEN_TO_PIECE.items()}
)

# Piece letters in (standard) algebraic notation. Pawns do not get a letter.
SAN_PIECE_LETTERS: Mapping[str, PieceType] = MappingProxyType(
    {
        "K": PieceType.KING,
        "Q": PieceType.QUEEN,
        "R": PieceType.ROOK,
        "B": PieceType.BISHOP,
        "N": PieceType.KNIGHT,
    }
)

# The piece types a pawn may turn into. Keys are upper case, look them up with letter.upper().
PROMOTION_PIECES: Mapping[str, PieceType] = MappingProxyType(
    {
        "Q": PieceType.QUEEN,
        "R": PieceType.ROOK,
        "B": PieceType.BISHOP,
        "N": PieceType.KNIGHT,
    }
)

MINOR_PIECES: frozenset[PieceType] = frozenset({PieceType.BISHOP, PieceType.KNIGHT})


@dataclass(frozen=True)
class Piece:
    type: PieceType
    color: Color

    @classmethod
    def from_fen(cls, character: str) -> Self:
        # lower case: Black pieces, upper case: White pieces
        color = Color.WHITE if character.isupper() else Color.BLACK
        piece_type = FEN_TO_PIECE[character.lower()]
        return cls(piece_type, color)


def promotion_piece(letter: str) -> PieceType | None:
    """Piece type a pawn promotes into for the given letter (either case). None if the letter is not allowed."""
    return PROMOTION_PIECES.get(letter.upper())
