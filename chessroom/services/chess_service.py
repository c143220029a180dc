"""Orchestration of communication from API router to business logic and persistence layers (and the reverse direction)."""

import logging
from contextlib import contextmanager, nullcontext
from datetime import datetime, timedelta
from typing import Callable, Iterator, Optional
from uuid import UUID, uuid4

from chessroom.api.models import (
    CancelGameRequest,
    CreateGameRequest,
    DrawOfferRequest,
    DrawResponseRequest,
    GameResponse,
    GetGameRequest,
    JoinGameRequest,
    MoveRecordResponse,
    MoveRequest,
    PlayerInfo,
    ResignRequest,
    WaitingGameInfo,
)
from chessroom.chess.draw import DrawSignals, classify_draw, is_repetition
from chessroom.chess.notation import resolve_in_position
from chessroom.chess.rules import Position, PythonChessRules, RuleAuthority
from chessroom.core.exceptions import (
    AlreadyInActiveGameError,
    GameError,
    GameNotFoundError,
    IllegalMoveError,
    InvalidStateError,
    NoDrawOfferedError,
    NotAParticipantError,
    OutOfTurnError,
    RepositoryError,
    ResolutionError,
    SelfJoinError,
    SelfResponseError,
)
from chessroom.core.models import (
    GameModel,
    MoveRecordModel,
    PlayerId,
    PlayerModel,
    utc_now,
)
from chessroom.core.settings import ChessSettings
from chessroom.core.shared_types import Color, DrawReason, Status, winning_status
from chessroom.db.repository import Storage, StorageFactory
from chessroom.services.locks import GameLocks
from chessroom.services.maintenance import SweepPolicy, SweepReport, cleanup_old_games
from chessroom.services.rating import apply_ratings

logger = logging.getLogger(__name__)


class ChessService:
    """
    Orchestration of layers for chess game sessions.

    One instance is shared by all requests. Every operation that changes a game:
    * holds the lock of that game (so two requests for the same game never interleave)
    * opens a storage of its own and runs inside a single transaction (so a failing request leaves nothing behind,
      and never takes the work of a request for another game down with it)
    """

    def __init__(
        self,
        storage_factory: StorageFactory,
        rules: Optional[RuleAuthority] = None,
        locks: Optional[GameLocks] = None,
        settings: Optional[ChessSettings] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.storage_factory = storage_factory
        self.rules = rules or PythonChessRules()
        self.locks = locks or GameLocks()
        self.settings = settings or ChessSettings()
        self.clock = clock

    # -- API routes logic ---
    def create_game(self, request: CreateGameRequest) -> GameResponse:
        """First player requested to create a new game. The creator plays white."""
        if request.starting_fen:
            position = self.rules.load_position(request.starting_fen)
        else:
            position = self.rules.starting_position()

        with self._transaction() as storage:
            player = storage.players.find_or_create(request.player_id, request.player_name)
            self._ensure_not_busy(storage, player.player_id)

            now = self.clock()
            game = storage.games.create(
                GameModel(
                    game_id=uuid4(),
                    white_player_id=player.player_id,
                    starting_position=position.encode(),
                    current_position=position.encode(),
                    status=Status.WAITING,
                    current_turn=position.side_to_move(),
                    created_at=now,
                    updated_at=now,
                )
            )
            response = self._create_game_response(storage, game, viewer=player.player_id, position=position)

        logger.info("Player %s created game %s", player.player_id, game.game_id)
        return response

    def join_game(self, request: JoinGameRequest) -> GameResponse:
        """Second player requested to join a game. The joiner plays black."""
        with self._transaction(request.game_id) as storage:
            game = self._fetch_game(storage, request.game_id, for_update=True)
            if game.status != Status.WAITING:
                raise InvalidStateError(f"Game {game.game_id} cannot be joined (status: {game.status}).")
            if request.player_id == game.white_player_id:
                raise SelfJoinError(f"Player {request.player_id} cannot join their own game.")

            player = storage.players.find_or_create(request.player_id, request.player_name)
            self._ensure_not_busy(storage, player.player_id)

            position = self.rules.load_position(game.current_position)
            game.black_player_id = player.player_id
            game.status = Status.ACTIVE
            game.current_turn = position.side_to_move()
            game.updated_at = self.clock()
            game = storage.games.save(game)
            response = self._create_game_response(storage, game, viewer=player.player_id, position=position)

        logger.info("Player %s joined game %s, game is now active", player.player_id, game.game_id)
        return response

    def make_move(self, request: MoveRequest) -> GameResponse:
        """
        Make a move attempt.
        ----
        A rejected move raises, and the game is left exactly as it was (no move record, no position change).
        """
        try:
            with self._transaction(request.game_id) as storage:
                return self._make_move(storage, request)
        except GameError as err:
            logger.warning(
                "Rejected move %r by %s in game %s: %s",
                request.notation,
                request.player_id,
                request.game_id,
                err,
            )
            raise

    def offer_draw(self, request: DrawOfferRequest) -> GameResponse:
        """A participant offers a draw. A new offer replaces a pending one."""
        with self._transaction(request.game_id) as storage:
            game = self._fetch_game(storage, request.game_id, for_update=True)
            self._ensure_active(game)
            self._ensure_participant(game, request.player_id)

            game.draw_offered_by = request.player_id
            game.updated_at = self.clock()
            game = storage.games.save(game)
            response = self._create_game_response(storage, game, viewer=request.player_id)

        logger.info("Player %s offered a draw in game %s", request.player_id, game.game_id)
        return response

    def respond_to_draw(self, request: DrawResponseRequest) -> GameResponse:
        """The opponent of the player who offered a draw accepts or rejects it."""
        with self._transaction(request.game_id) as storage:
            game = self._fetch_game(storage, request.game_id, for_update=True)
            if game.draw_offered_by is None:
                raise NoDrawOfferedError(f"There is no pending draw offer in game {game.game_id}.")
            if request.player_id == game.draw_offered_by:
                raise SelfResponseError("A draw offer cannot be answered by the player who made it.")
            self._ensure_participant(game, request.player_id)

            game.draw_offered_by = None
            game.updated_at = self.clock()
            if request.accept:
                self._finish(storage, game, Status.DRAW, reason=DrawReason.AGREEMENT)
            else:
                logger.info("Player %s rejected the draw offer in game %s", request.player_id, game.game_id)
            game = storage.games.save(game)
            response = self._create_game_response(storage, game, viewer=request.player_id)

        return response

    def resign(self, request: ResignRequest) -> GameResponse:
        """A participant gives up. The opponent wins."""
        with self._transaction(request.game_id) as storage:
            game = self._fetch_game(storage, request.game_id, for_update=True)
            self._ensure_active(game)
            color = self._ensure_participant(game, request.player_id)

            game.updated_at = self.clock()
            logger.info("Player %s resigned game %s", request.player_id, game.game_id)
            self._finish(storage, game, winning_status(color.opponent))
            game = storage.games.save(game)
            return self._create_game_response(storage, game, viewer=request.player_id)

    def cancel_game(self, request: CancelGameRequest) -> GameResponse:
        """The creator withdraws a game nobody has joined yet."""
        with self._transaction(request.game_id) as storage:
            game = self._fetch_game(storage, request.game_id, for_update=True)
            if game.status != Status.WAITING:
                raise InvalidStateError(f"Only a waiting game can be cancelled (status: {game.status}).")
            if request.player_id != game.white_player_id:
                raise NotAParticipantError(f"Only the creator of game {game.game_id} can cancel it.")

            game.status = Status.ABANDONED
            game.updated_at = self.clock()
            game = storage.games.save(game)
            response = self._create_game_response(storage, game, viewer=request.player_id)

        logger.info("Player %s cancelled game %s", request.player_id, game.game_id)
        return response

    def get_game(self, request: GetGameRequest) -> GameResponse:
        """
        Retrieve current game state.
        ----
        Used in "polling" loop by frontend to check when it is the player's turn for instance.
        """
        with self._transaction() as storage:
            game = self._fetch_game(storage, request.game_id)
            return self._create_game_response(storage, game, viewer=request.player_id)

    def list_waiting_games(self, now: Optional[datetime] = None) -> list[WaitingGameInfo]:
        """Recently created games still looking for an opponent, newest first."""
        now = now or self.clock()
        cutoff = now - timedelta(minutes=self.settings.waiting_list_window_minutes)
        with self._transaction() as storage:
            waiting = []
            for game in storage.games.find_waiting_created_after(cutoff):
                creator = self._fetch_player(storage, game.white_player_id)
                waiting.append(
                    WaitingGameInfo(
                        game_id=game.game_id,
                        white_player_id=creator.player_id,
                        white_player_name=creator.display_name,
                        white_rating=creator.rating,
                        created_at=game.created_at,
                    )
                )
            return waiting

    def move_history(self, game_id: UUID) -> list[MoveRecordResponse]:
        with self._transaction() as storage:
            self._fetch_game(storage, game_id)
            return [
                MoveRecordResponse(
                    move_number=record.move_number,
                    notation=record.notation,
                    move_uci=record.move_uci,
                    position_after=record.position_after,
                    created_at=record.created_at,
                )
                for record in storage.moves.list_by_game(game_id)
            ]

    def leaderboard(self, limit: Optional[int] = None) -> list[PlayerInfo]:
        """Players with the highest rating first."""
        with self._transaction() as storage:
            players = storage.players.top_by_rating(limit or self.settings.leaderboard_size)
            return [self._player_info(player) for player in players]

    def run_maintenance(self, now: Optional[datetime] = None) -> SweepReport:
        """Sweep stale games, sharing this service's game locks."""
        return cleanup_old_games(
            self.storage_factory,
            now or self.clock(),
            policy=SweepPolicy.from_settings(self.settings),
            locks=self.locks,
        )

    # -- Internal helpers --
    @contextmanager
    def _transaction(self, game_id: Optional[UUID] = None) -> Iterator[Storage]:
        """Fresh storage, one transaction. The game's lock is taken first and released last."""
        with self.locks.hold(game_id) if game_id else nullcontext():
            with self.storage_factory() as storage, storage.atomic():
                yield storage

    def _make_move(self, storage: Storage, request: MoveRequest) -> GameResponse:
        game = self._fetch_game(storage, request.game_id, for_update=True)
        self._ensure_active(game)
        mover = self._ensure_participant(game, request.player_id)

        position = self.rules.load_position(game.current_position)
        if mover != position.side_to_move():
            raise OutOfTurnError(f"It is {position.side_to_move()}'s turn, not {mover}'s.")

        try:
            move = resolve_in_position(request.notation, position)
        except ResolutionError as err:
            raise IllegalMoveError(f"Cannot play {request.notation!r}: {err}") from err
        # castling is resolved without looking at the legal moves
        if not position.is_legal(move):
            raise IllegalMoveError(f"Move not allowed: {move.to_uci()}")

        new_position = position.apply(move)
        now = self.clock()
        record = storage.moves.append(
            MoveRecordModel(
                game_id=game.game_id,
                move_number=storage.moves.count_by_game(game.game_id) + 1,
                notation=request.notation,
                move_uci=move.to_uci(),
                position_after=new_position.encode(),
                created_at=now,
            )
        )

        game.current_position = new_position.encode()
        game.current_turn = new_position.side_to_move()
        game.draw_offered_by = None
        game.updated_at = now
        logger.info(
            "Game %s: move %d %s (%s) by %s",
            game.game_id,
            record.move_number,
            record.move_uci,
            request.notation,
            request.player_id,
        )

        self._check_termination(storage, game, new_position, mover)
        game = storage.games.save(game)
        return self._create_game_response(storage, game, viewer=request.player_id, position=new_position)

    def _check_termination(self, storage: Storage, game: GameModel, position: Position, mover: Color) -> None:
        """Checkmate ends the game in favor of the mover, a draw ends it for both."""
        if position.is_checkmated():
            self._finish(storage, game, winning_status(mover))
            return

        history = [game.starting_position]
        history.extend(record.position_after for record in storage.moves.list_by_game(game.game_id))
        signals = DrawSignals(
            stalemate=position.is_stalemated(),
            repetition=is_repetition(game.current_position, history),
        )
        reason = classify_draw(game.current_position, signals)
        if reason is not None:
            self._finish(storage, game, Status.DRAW, reason=reason)

    def _finish(
        self, storage: Storage, game: GameModel, status: Status, reason: Optional[DrawReason] = None
    ) -> None:
        """Terminal transition. Ratings are updated here and nowhere else."""
        game.status = status
        game.draw_offered_by = None
        if reason:
            logger.info("Game %s ended in a draw (%s)", game.game_id, reason)
        else:
            logger.info("Game %s finished: %s", game.game_id, status)

        white = storage.players.get(game.white_player_id)
        black = storage.players.get(game.black_player_id) if game.black_player_id else None
        if apply_ratings(game, white, black):
            now = self.clock()
            for player in (white, black):
                player.updated_at = now
                storage.players.save(player)

    def _ensure_active(self, game: GameModel) -> None:
        if game.status != Status.ACTIVE:
            raise InvalidStateError(f"Game {game.game_id} is not in progress (status: {game.status}).")

    def _ensure_participant(self, game: GameModel, player_id: PlayerId) -> Color:
        color = game.color_of(player_id)
        if color is None:
            raise NotAParticipantError(f"Player {player_id} does not play in game {game.game_id}.")
        return color

    def _ensure_not_busy(self, storage: Storage, player_id: PlayerId) -> None:
        active = storage.games.find_active_for_player(player_id)
        if active:
            raise AlreadyInActiveGameError(
                f"Player {player_id} is already playing in game {active[0].game_id}."
            )

    def _fetch_game(self, storage: Storage, game_id: UUID, for_update: bool = False) -> GameModel:
        """Get the stored game, or raise a GameNotFoundError."""
        if for_update:
            game = storage.games.get_for_update(game_id)
        else:
            game = storage.games.get(game_id)
        if game is None:
            raise GameNotFoundError(f"No game found with ID {game_id}")
        return game

    def _fetch_player(self, storage: Storage, player_id: PlayerId) -> PlayerModel:
        player = storage.players.get(player_id)
        if player is None:
            raise RepositoryError(f"No player found with ID {player_id}")
        return player

    def _player_info(self, player: PlayerModel) -> PlayerInfo:
        return PlayerInfo(
            player_id=player.player_id,
            display_name=player.display_name,
            rating=player.rating,
            games_played=player.games_played,
            games_won=player.games_won,
            games_lost=player.games_lost,
            games_drawn=player.games_drawn,
            win_rate=player.win_rate,
        )

    def _create_game_response(
        self,
        storage: Storage,
        game: GameModel,
        viewer: Optional[PlayerId] = None,
        position: Optional[Position] = None,
    ) -> GameResponse:
        """Convert info in GameModel to a GameResponse, as seen by `viewer` (None for spectators)."""
        position = position or self.rules.load_position(game.current_position)
        viewer_color = game.color_of(viewer) if viewer else None

        legal_moves: list[str] = []
        if game.status == Status.ACTIVE and viewer_color == position.side_to_move():
            legal_moves = sorted(move.to_uci() for move in position.legal_moves())

        black = self._fetch_player(storage, game.black_player_id) if game.black_player_id else None
        return GameResponse(
            game_id=game.game_id,
            status=game.status,
            white=self._player_info(self._fetch_player(storage, game.white_player_id)),
            black=self._player_info(black) if black else None,
            current_turn=game.current_turn,
            position=game.current_position,
            move_count=storage.moves.count_by_game(game.game_id),
            in_check=position.is_in_check(),
            draw_offered_by=game.draw_offered_by,
            player_color=viewer_color,
            legal_moves=legal_moves,
            archived=game.archived,
            created_at=game.created_at,
            updated_at=game.updated_at,
        )
