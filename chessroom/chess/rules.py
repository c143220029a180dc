"""
The rule authority: everything that needs actual knowledge of the rules of chess.

The application never implements legal move generation or mate detection itself. It asks a rule authority instead.
The Protocols below are the only surface the rest of the code relies on. The implementation wraps python-chess.

NOTE: A Position is built fresh from the persisted FEN for every request and thrown away afterwards.
Never keep one around or share it between requests.
"""

from types import MappingProxyType
from typing import Mapping, Optional, Protocol, Self

import chess

from chessroom.chess.moves import Move
from chessroom.chess.pieces import Piece
from chessroom.chess.square import Square
from chessroom.core.exceptions import IllegalMoveError, InvalidPositionError
from chessroom.core.shared_types import Color, PieceType

STARTING_FEN = chess.STARTING_FEN

_TO_CHESS_PIECE: Mapping[PieceType, chess.PieceType] = MappingProxyType(
    {
        PieceType.PAWN: chess.PAWN,
        PieceType.KNIGHT: chess.KNIGHT,
        PieceType.BISHOP: chess.BISHOP,
        PieceType.ROOK: chess.ROOK,
        PieceType.QUEEN: chess.QUEEN,
        PieceType.KING: chess.KING,
    }
)
_FROM_CHESS_PIECE: Mapping[chess.PieceType, PieceType] = MappingProxyType(
    {value: key for key, value in _TO_CHESS_PIECE.items()}
)


class Position(Protocol):
    """What the application needs to know about a single position."""

    def side_to_move(self) -> Color: ...
    def legal_moves(self) -> set[Move]: ...
    def is_legal(self, move: Move) -> bool: ...
    def apply(self, move: Move) -> "Position": ...
    def is_in_check(self) -> bool: ...
    def is_checkmated(self) -> bool: ...
    def is_stalemated(self) -> bool: ...
    def piece_at(self, square: Square) -> Optional[Piece]: ...
    def encode(self) -> str: ...


class RuleAuthority(Protocol):
    """Factory for positions."""

    def load_position(self, encoding: str) -> Position: ...
    def starting_position(self) -> Position: ...


class PythonChessPosition:
    """Position backed by a python-chess Board. Immutable from the outside: apply() returns a new object."""

    def __init__(self, board: chess.Board) -> None:
        self._board = board

    @classmethod
    def from_fen(cls, fen: str) -> Self:
        try:
            board = chess.Board(fen)
        except ValueError as err:
            raise InvalidPositionError(f"Cannot interpret supplied string as FEN: {fen!r}") from err
        if not board.is_valid():
            raise InvalidPositionError(
                f"FEN does not describe a playable position: {fen!r} (status: {board.status()!r})"
            )
        return cls(board)

    def side_to_move(self) -> Color:
        return Color.WHITE if self._board.turn == chess.WHITE else Color.BLACK

    def legal_moves(self) -> set[Move]:
        return {_from_chess_move(move) for move in self._board.legal_moves}

    def is_legal(self, move: Move) -> bool:
        return self._board.is_legal(_to_chess_move(move))

    def apply(self, move: Move) -> "PythonChessPosition":
        chess_move = _to_chess_move(move)
        if not self._board.is_legal(chess_move):
            raise IllegalMoveError(f"Move not allowed: {move.to_uci()}")
        board = self._board.copy(stack=False)
        board.push(chess_move)
        return PythonChessPosition(board)

    def is_in_check(self) -> bool:
        return self._board.is_check()

    def is_checkmated(self) -> bool:
        return self._board.is_checkmate()

    def is_stalemated(self) -> bool:
        return self._board.is_stalemate()

    def piece_at(self, square: Square) -> Optional[Piece]:
        piece = self._board.piece_at(_to_chess_square(square))
        if piece is None:
            return None
        color = Color.WHITE if piece.color == chess.WHITE else Color.BLACK
        return Piece(_FROM_CHESS_PIECE[piece.piece_type], color)

    def encode(self) -> str:
        return self._board.fen()


class PythonChessRules:
    """RuleAuthority implemented with python-chess."""

    def load_position(self, encoding: str) -> PythonChessPosition:
        return PythonChessPosition.from_fen(encoding)

    def starting_position(self) -> PythonChessPosition:
        return PythonChessPosition.from_fen(STARTING_FEN)


# --- CONVERSIONS ---
def _to_chess_square(square: Square) -> chess.Square:
    return chess.square(square.file - 1, square.rank - 1)


def _from_chess_square(square: chess.Square) -> Square:
    return Square(chess.square_file(square) + 1, chess.square_rank(square) + 1)


def _to_chess_move(move: Move) -> chess.Move:
    promotion = _TO_CHESS_PIECE[move.promotion] if move.promotion else None
    return chess.Move(
        _to_chess_square(move.origin),
        _to_chess_square(move.destination),
        promotion=promotion,
    )


def _from_chess_move(move: chess.Move) -> Move:
    promotion = _FROM_CHESS_PIECE[move.promotion] if move.promotion else None
    return Move(
        _from_chess_square(move.from_square),
        _from_chess_square(move.to_square),
        promotion,
    )
