"""
Decide whether a position is drawn.

The rule authority knows about stalemate (and repetition, when it has a history to look at).
On top of that we look at the FEN itself: the half-move clock and the material left on the board.
"""

from collections import Counter
from dataclasses import dataclass
from typing import Iterable, Optional

from chessroom.chess.pieces import MINOR_PIECES, Piece
from chessroom.core.shared_types import Color, DrawReason, PieceType

# 50 full moves without a pawn move or capture
FIFTY_MOVE_THRESHOLD = 100

# Board, side to move, castling rights and en passant square. The move counters are not part of a repetition.
REPETITION_FIELDS = 4
REPETITION_COUNT = 3


@dataclass(frozen=True)
class DrawSignals:
    """What the rule authority (and the game history) tell us about the position."""

    stalemate: bool = False
    repetition: bool = False


def classify_draw(position: str, signals: DrawSignals) -> Optional[DrawReason]:
    """
    Reason the position is a draw, None if play continues.

    Evaluated in order, first match wins:
    1. rule authority: stalemate or repetition
    2. the half-move clock reached 100 (i.e. 50 moves by both players)
    3. insufficient material to ever deliver mate
    """
    if signals.stalemate:
        return DrawReason.STALEMATE
    if signals.repetition:
        return DrawReason.REPETITION
    if half_move_clock(position) >= FIFTY_MOVE_THRESHOLD:
        return DrawReason.FIFTY_MOVE_RULE
    if is_insufficient_material(position):
        return DrawReason.INSUFFICIENT_MATERIAL
    return None


def is_draw(position: str, signals: DrawSignals) -> bool:
    return classify_draw(position, signals) is not None


def half_move_clock(position: str) -> int:
    """5th field of the FEN. A FEN without move counters counts as a fresh clock."""
    fields = position.split()
    if len(fields) < 5 or not fields[4].isdigit():
        return 0
    return int(fields[4])


def count_pieces(position: str) -> dict[Color, Counter[PieceType]]:
    """Tally the pieces of both players (kings excluded) from the board part of the FEN."""
    counts: dict[Color, Counter[PieceType]] = {Color.WHITE: Counter(), Color.BLACK: Counter()}
    board = position.split()[0] if position.strip() else ""
    for character in board:
        if not character.isalpha():
            continue
        piece = Piece.from_fen(character)
        if piece.type != PieceType.KING:
            counts[piece.color][piece.type] += 1
    return counts


def is_insufficient_material(position: str) -> bool:
    """
    Neither player can possibly deliver mate.

    * a bare king against a king with at most one bishop or knight
    * a single bishop each and nothing else

    NOTE: For bishop vs. bishop, the colors of the bishops' squares are not compared.
    Strictly speaking that is only a draw when both bishops travel on the same color.
    """
    counts = count_pieces(position)
    white, black = counts[Color.WHITE], counts[Color.BLACK]

    # any pawn, rook or queen on the board can still mate (or become something that can)
    if any(set(pieces) - MINOR_PIECES for pieces in (white, black)):
        return False

    white_total, black_total = white.total(), black.total()
    if white_total == 0 and black_total <= 1:
        return True
    if black_total == 0 and white_total <= 1:
        return True
    return white == Counter({PieceType.BISHOP: 1}) and black == Counter({PieceType.BISHOP: 1})


def repetition_key(position: str) -> str:
    return " ".join(position.split()[:REPETITION_FIELDS])


def is_repetition(position: str, history: Iterable[str]) -> bool:
    """`history` holds every position of the game so far, the current one included."""
    key = repetition_key(position)
    seen = sum(1 for previous in history if repetition_key(previous) == key)
    return seen >= REPETITION_COUNT
