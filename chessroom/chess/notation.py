"""
Turn free-form move notation, as typed by a human, into exactly one move.

Players are allowed to write their moves in several ways:
* castling: "O-O", "0-0", "o-o-o", ...
* coordinates: "e2e4", "e2-e4", "E2E4", "e7e8q", "e7e8=Q"
* algebraic notation: "e4", "Nf3", "exd5", "Rae1", "N1c3", "Qh4xe1", "e8=Q+"

Resolving is done in three steps:
1. normalize the string (whitespace, check/annotation glyphs, castling tokens, dashes between squares)
2. classify it into one of the Notation variants below
3. resolve the variant against the set of legal moves of the current position

Nothing in here has side effects. Failing to find exactly one move raises a ResolutionError.
"""

import re
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from chessroom.chess.moves import Move
from chessroom.chess.pieces import SAN_PIECE_LETTERS, Piece, promotion_piece
from chessroom.chess.rules import Position
from chessroom.chess.square import Square
from chessroom.core.exceptions import (
    AmbiguousCandidate,
    NoLegalCandidate,
    UnparseableNotation,
)
from chessroom.core.shared_types import Color, PieceType

KINGSIDE_TOKEN = "O-O"
QUEENSIDE_TOKEN = "O-O-O"

# trailing check / mate / annotation glyphs, e.g. "Qxf7#", "e4!?"
TRAILING_GLYPHS = "+#!?"

CASTLING_PATTERN = re.compile(r"[0oO]-?[0oO](?P<queenside>-?[0oO])?")
SQUARE_DASH_PATTERN = re.compile(r"([a-h][1-8])-([a-h][1-8])", re.IGNORECASE)
COORDINATE_PATTERN = re.compile(
    r"(?P<origin>[a-h][1-8])(?P<destination>[a-h][1-8])(?:=?(?P<promotion>[a-z]))?",
    re.IGNORECASE,
)
# Piece letters must be upper case: a lower case 'b' is the b-file, not a bishop.
ALGEBRAIC_PATTERN = re.compile(
    r"(?P<piece>[KQRBN])?"
    r"(?P<file>[a-h])?"
    r"(?P<rank>[1-8])?"
    r"(?P<capture>[xX:])?"
    r"(?P<target>[a-hA-H][1-8])"
    r"(?:=?(?P<promotion>[A-Za-z]))?"
)

# (the side castling, kingside?) -> king move. The rule authority decides later whether castling is actually allowed.
CASTLING_MOVES: dict[tuple[Color, bool], Move] = {
    (Color.WHITE, True): Move.from_uci("e1g1"),
    (Color.WHITE, False): Move.from_uci("e1c1"),
    (Color.BLACK, True): Move.from_uci("e8g8"),
    (Color.BLACK, False): Move.from_uci("e8c8"),
}

PROMOTION_RANK: dict[Color, int] = {Color.WHITE: 8, Color.BLACK: 1}

PieceLookup = Callable[[Square], Optional[Piece]]


# --- NOTATION VARIANTS ---
@dataclass(frozen=True)
class CastlingNotation:
    kingside: bool


@dataclass(frozen=True)
class CoordinateNotation:
    origin: Square
    destination: Square
    promotion: Optional[PieceType] = None


@dataclass(frozen=True)
class AlgebraicNotation:
    target: Square
    piece: PieceType = PieceType.PAWN
    file: Optional[str] = None
    rank: Optional[int] = None
    capture: bool = False
    promotion: Optional[PieceType] = None


@dataclass(frozen=True)
class UnrecognizedNotation:
    text: str


Notation = CastlingNotation | CoordinateNotation | AlgebraicNotation | UnrecognizedNotation


# --- STEP 1: NORMALIZE ---
def normalize(notation: str) -> str:
    """
    Bring the notation into a canonical form.

    * leading/trailing and internal whitespace is removed
    * trailing '+', '#', '!' and '?' are stripped
    * castling is written as 'O-O' or 'O-O-O' (whether typed with zeroes, lower case letters or without dashes)
    * a dash between two squares is dropped: 'e2-e4' becomes 'e2e4'
    """
    normalized = "".join(notation.split())
    normalized = normalized.rstrip(TRAILING_GLYPHS)

    castling = CASTLING_PATTERN.fullmatch(normalized)
    if castling:
        return QUEENSIDE_TOKEN if castling.group("queenside") else KINGSIDE_TOKEN

    return SQUARE_DASH_PATTERN.sub(r"\1\2", normalized)


# --- STEP 2: CLASSIFY ---
def classify(normalized: str) -> Notation:
    """Decide which way of writing a move was used. Expects the output of normalize()."""
    if normalized == KINGSIDE_TOKEN:
        return CastlingNotation(kingside=True)
    if normalized == QUEENSIDE_TOKEN:
        return CastlingNotation(kingside=False)

    coordinate = COORDINATE_PATTERN.fullmatch(normalized)
    if coordinate:
        return CoordinateNotation(
            origin=Square.from_algebraic(coordinate.group("origin")),
            destination=Square.from_algebraic(coordinate.group("destination")),
            promotion=_parse_promotion(normalized, coordinate.group("promotion")),
        )

    algebraic = ALGEBRAIC_PATTERN.fullmatch(normalized)
    if algebraic:
        piece_letter = algebraic.group("piece")
        rank = algebraic.group("rank")
        return AlgebraicNotation(
            target=Square.from_algebraic(algebraic.group("target")),
            piece=SAN_PIECE_LETTERS[piece_letter] if piece_letter else PieceType.PAWN,
            file=algebraic.group("file"),
            rank=int(rank) if rank else None,
            capture=algebraic.group("capture") is not None,
            promotion=_parse_promotion(normalized, algebraic.group("promotion")),
        )

    return UnrecognizedNotation(normalized)


def _parse_promotion(notation: str, letter: Optional[str]) -> Optional[PieceType]:
    if letter is None:
        return None
    piece_type = promotion_piece(letter)
    if piece_type is None:
        raise UnparseableNotation(
            notation, f"Cannot promote to {letter!r}. Choose one of Q, R, B or N."
        )
    return piece_type


# --- STEP 3: RESOLVE ---
def resolve(
    notation: str,
    legal_moves: Iterable[Move],
    side_to_move: Color,
    piece_at: PieceLookup,
) -> Move:
    """
    Resolve the notation against the set of legal moves.
    ----

    `piece_at` tells which piece (if any) stands on a square in the current position.
    It is needed to filter candidates on the moving piece, and to recognize captures.

    ----
    NOTE castling moves are returned without checking them against the legal moves (only the king's square is checked).
    The caller must still confirm the move with the rule authority.
    """
    if not notation or not notation.strip():
        raise UnparseableNotation(notation, "No move given.")

    legal = set(legal_moves)
    normalized = normalize(notation)
    match classify(normalized):
        case CastlingNotation(kingside=kingside):
            return _resolve_castling(notation, kingside, side_to_move, piece_at)
        case CoordinateNotation() as coordinate:
            return _resolve_coordinate(notation, coordinate, legal, side_to_move, piece_at)
        case AlgebraicNotation() as algebraic:
            return _resolve_algebraic(notation, algebraic, legal, side_to_move, piece_at)
        case UnrecognizedNotation(text=text):
            return _scan_legal_moves(notation, text, legal)


def resolve_in_position(notation: str, position: Position) -> Move:
    """Convenience: resolve against everything the position knows."""
    return resolve(
        notation,
        position.legal_moves(),
        position.side_to_move(),
        position.piece_at,
    )


def _resolve_castling(
    notation: str, kingside: bool, side_to_move: Color, piece_at: PieceLookup
) -> Move:
    move = CASTLING_MOVES[(side_to_move, kingside)]
    if piece_at(move.origin) != Piece(PieceType.KING, side_to_move):
        raise NoLegalCandidate(notation, f"Cannot castle: the {side_to_move} king is not on {move.origin}.")
    return move


def _resolve_coordinate(
    notation: str,
    coordinate: CoordinateNotation,
    legal: set[Move],
    side_to_move: Color,
    piece_at: PieceLookup,
) -> Move:
    """Squares were given directly. The only thing left to check is the promotion and legality."""
    move = Move(coordinate.origin, coordinate.destination, coordinate.promotion)

    if coordinate.promotion is not None:
        moving_piece = piece_at(coordinate.origin)
        if moving_piece != Piece(PieceType.PAWN, side_to_move):
            raise NoLegalCandidate(
                notation, f"Only a pawn can promote. There is no {side_to_move} pawn on {coordinate.origin}."
            )
        if coordinate.destination.rank != PROMOTION_RANK[side_to_move]:
            raise NoLegalCandidate(
                notation, f"A {side_to_move} pawn can only promote on rank {PROMOTION_RANK[side_to_move]}."
            )

    if move not in legal:
        raise NoLegalCandidate(notation, f"Move not allowed: {move.to_uci()}")
    return move


def _resolve_algebraic(
    notation: str,
    algebraic: AlgebraicNotation,
    legal: set[Move],
    side_to_move: Color,
    piece_at: PieceLookup,
) -> Move:
    """
    Narrow down the legal moves until (hopefully) one is left.

    1. moves landing on the target square
    2. made by the named piece type (a pawn if no letter was given)
    3. starting on the disambiguating file and/or rank
    4. promoting into the requested piece
    5. still more than one, but a capture was written? Prefer the moves that actually take something.
    """
    moving_piece = Piece(algebraic.piece, side_to_move)
    candidates = [
        move
        for move in legal
        if move.destination == algebraic.target and piece_at(move.origin) == moving_piece
    ]
    if algebraic.file is not None:
        candidates = [move for move in candidates if move.origin.file_name == algebraic.file]
    if algebraic.rank is not None:
        candidates = [move for move in candidates if move.origin.rank == algebraic.rank]
    if algebraic.promotion is not None:
        candidates = [move for move in candidates if move.promotion == algebraic.promotion]

    if len(candidates) > 1 and algebraic.capture:
        captures = [move for move in candidates if piece_at(move.destination) is not None]
        if captures:
            candidates = captures

    if not candidates:
        raise NoLegalCandidate(
            notation, f"No {algebraic.piece} of {side_to_move} can legally reach {algebraic.target}."
        )
    if len(candidates) > 1:
        options = sorted(move.to_uci() for move in candidates)
        raise AmbiguousCandidate(
            notation,
            f"{notation!r} matches several moves: {', '.join(options)}. Add the file, rank or promotion piece.",
            candidates=options,
        )
    return candidates[0]


def _scan_legal_moves(notation: str, normalized: str, legal: set[Move]) -> Move:
    """Last resort: compare the text with the written out form of every legal move."""
    wanted = normalized.lower()
    for move in sorted(legal, key=Move.to_uci):
        if wanted in (move.to_uci(), move.to_dashed()):
            return move
    raise UnparseableNotation(notation, f"Cannot interpret {notation!r} as a move.")
