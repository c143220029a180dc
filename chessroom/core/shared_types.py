"""
Type definitions used across layers
"""

from enum import StrEnum


class Status(StrEnum):
    """Lifecycle of a game session. Only WAITING and ACTIVE accept further operations."""

    WAITING = "waiting"
    ACTIVE = "active"
    WHITE_WIN = "white_win"
    BLACK_WIN = "black_win"
    DRAW = "draw"
    TIMEOUT = "timeout"
    ABANDONED = "abandoned"

    @property
    def is_terminal(self) -> bool:
        return self not in NON_TERMINAL_STATUSES


NON_TERMINAL_STATUSES: frozenset[Status] = frozenset({Status.WAITING, Status.ACTIVE})
TERMINAL_STATUSES: frozenset[Status] = frozenset(
    status for status in Status if status not in NON_TERMINAL_STATUSES
)


class Color(StrEnum):
    WHITE = "white"
    BLACK = "black"

    @property
    def opponent(self) -> "Color":
        return Color.BLACK if self == Color.WHITE else Color.WHITE


class PieceType(StrEnum):
    PAWN = "pawn"
    KNIGHT = "knight"
    BISHOP = "bishop"
    ROOK = "rook"
    QUEEN = "queen"
    KING = "king"


class DrawReason(StrEnum):
    STALEMATE = "stalemate"
    REPETITION = "threefold repetition"
    FIFTY_MOVE_RULE = "fifty-move rule"
    INSUFFICIENT_MATERIAL = "insufficient material"
    AGREEMENT = "agreement"


def winning_status(color: Color) -> Status:
    return Status.WHITE_WIN if color == Color.WHITE else Status.BLACK_WIN
