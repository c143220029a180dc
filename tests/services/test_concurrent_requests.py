"""
Requests running in parallel threads against one shared ChessService.

These tests use a database file instead of the in-memory database of the other tests:
every session gets a connection of its own, the way it does in production.
"""

import threading
from pathlib import Path
from typing import Any, Callable, Generator, Optional
from unittest.mock import patch
from uuid import UUID

import pytest

from chessroom.api.models import CreateGameRequest, GameResponse, GetGameRequest, JoinGameRequest, MoveRequest
from chessroom.core.exceptions import IllegalMoveError, OutOfTurnError
from chessroom.core.models import GameModel
from chessroom.core.settings import ChessSettings
from chessroom.db.database import build_engine, build_session_factory, init_db
from chessroom.db.sql_repository import SQLGameRepository, SQLStorageFactory
from chessroom.services.chess_service import ChessService
from chessroom.services.locks import GameLocks

AFTER_E4 = "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq - 0 1"
AFTER_E4_E5 = "rnbqkbnr/pppp1ppp/8/4p3/4P3/8/PPPP1PPP/RNBQKBNR w KQkq - 0 2"
TIMEOUT = 5


class Request(threading.Thread):
    """One service call in a thread of its own. Keeps the response, or the exception it raised."""

    def __init__(self, call: Callable[[], GameResponse]) -> None:
        super().__init__(daemon=True)
        self.call = call
        self.response: Optional[GameResponse] = None
        self.error: Optional[Exception] = None

    def run(self) -> None:
        try:
            self.response = self.call()
        except Exception as err:
            self.error = err


class PausedSave:
    """Stops the first save of one game halfway through its transaction, until `resume` is set."""

    def __init__(self, game_id: UUID) -> None:
        self.game_id = game_id
        self.entered = threading.Event()
        self.resume = threading.Event()
        self._save = SQLGameRepository.save

    def __call__(self, repo: SQLGameRepository, game: GameModel) -> Any:
        if game.game_id == self.game_id and not self.entered.is_set():
            self.entered.set()
            assert self.resume.wait(timeout=TIMEOUT)
        return self._save(repo, game)


@pytest.fixture
def shared_service(tmp_path: Path, clock) -> Generator[ChessService, None, None]:
    settings = ChessSettings(database_url=f"sqlite:///{tmp_path / 'chessroom.db'}")
    engine = build_engine(settings)
    init_db(engine)
    yield ChessService(
        SQLStorageFactory(build_session_factory(engine)),
        locks=GameLocks(),
        settings=settings,
        clock=clock,
    )
    engine.dispose()


# --- HELPERS ----
def start_game(service: ChessService, white: str, black: str) -> UUID:
    game_id = service.create_game(CreateGameRequest(player_id=white)).game_id
    service.join_game(JoinGameRequest(game_id=game_id, player_id=black))
    return game_id


def play(service: ChessService, game_id: UUID, player_id: str, notation: str) -> GameResponse:
    return service.make_move(MoveRequest(game_id=game_id, player_id=player_id, notation=notation))


# --- SAME GAME ----
def test_moves_on_one_game_are_applied_one_after_the_other(shared_service: ChessService) -> None:
    """Black's move waits until white's move is committed, then plays against the new position."""
    game_id = start_game(shared_service, "alice", "bob")
    paused = PausedSave(game_id)

    with patch.object(SQLGameRepository, "save", autospec=True, side_effect=paused):
        white = Request(lambda: play(shared_service, game_id, "alice", "e4"))
        white.start()
        assert paused.entered.wait(timeout=TIMEOUT)

        black = Request(lambda: play(shared_service, game_id, "bob", "e5"))
        black.start()
        black.join(timeout=0.2)
        assert black.is_alive()

        paused.resume.set()
        white.join(timeout=TIMEOUT)
        black.join(timeout=TIMEOUT)

    assert white.error is None
    assert black.error is None
    assert white.response is not None and white.response.move_count == 1
    assert black.response is not None and black.response.move_count == 2

    history = shared_service.move_history(game_id)
    assert [record.move_number for record in history] == [1, 2]
    assert [record.move_uci for record in history] == ["e2e4", "e7e5"]
    assert [record.position_after for record in history] == [AFTER_E4, AFTER_E4_E5]


def test_second_move_against_the_same_position_is_rejected(shared_service: ChessService) -> None:
    """White sends two moves at once. Only the first one is played."""
    game_id = start_game(shared_service, "alice", "bob")
    paused = PausedSave(game_id)

    with patch.object(SQLGameRepository, "save", autospec=True, side_effect=paused):
        first = Request(lambda: play(shared_service, game_id, "alice", "e4"))
        first.start()
        assert paused.entered.wait(timeout=TIMEOUT)

        second = Request(lambda: play(shared_service, game_id, "alice", "d4"))
        second.start()

        paused.resume.set()
        first.join(timeout=TIMEOUT)
        second.join(timeout=TIMEOUT)

    assert first.error is None
    assert isinstance(second.error, OutOfTurnError)
    assert [record.move_uci for record in shared_service.move_history(game_id)] == ["e2e4"]


# --- DIFFERENT GAMES ----
def test_failure_in_one_game_leaves_a_move_in_another_game_intact(shared_service: ChessService) -> None:
    first = start_game(shared_service, "alice", "bob")
    second = start_game(shared_service, "carol", "dave")
    paused = PausedSave(first)

    with patch.object(SQLGameRepository, "save", autospec=True, side_effect=paused):
        move = Request(lambda: play(shared_service, first, "alice", "e4"))
        move.start()
        assert paused.entered.wait(timeout=TIMEOUT)

        # rejected (and rolled back) while the move in the first game is not committed yet
        with pytest.raises(IllegalMoveError):
            play(shared_service, second, "carol", "zz9")

        paused.resume.set()
        move.join(timeout=TIMEOUT)

    assert move.error is None
    first_game = shared_service.get_game(GetGameRequest(game_id=first))
    history = shared_service.move_history(first)
    assert [record.move_uci for record in history] == ["e2e4"]
    assert first_game.position == history[-1].position_after == AFTER_E4
    assert first_game.move_count == 1

    second_game = shared_service.get_game(GetGameRequest(game_id=second))
    assert second_game.move_count == 0
    assert shared_service.move_history(second) == []
