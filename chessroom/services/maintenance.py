"""
Periodic cleanup of stale game sessions.

Three passes, always in this order:
1. delete games nobody joined within `waiting_max_age`
2. archive finished games not touched for `archive_after`
3. delete finished games not touched for `purge_after` (archived or not)

Scheduling is left to the caller: the sweep is a plain function of the storage factory and the current time.
Every game is handled in a storage (and transaction) of its own, so one broken game never undoes the others.
"""

import logging
from contextlib import nullcontext
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional, Self

from chessroom.core.models import GameModel
from chessroom.core.shared_types import Status
from chessroom.core.settings import ChessSettings
from chessroom.db.repository import Storage, StorageFactory
from chessroom.services.locks import GameLocks

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SweepPolicy:
    waiting_max_age: timedelta = timedelta(days=7)
    archive_after: timedelta = timedelta(days=30)
    purge_after: timedelta = timedelta(days=60)

    @classmethod
    def from_settings(cls, settings: ChessSettings) -> Self:
        return cls(
            waiting_max_age=timedelta(days=settings.waiting_game_max_age_days),
            archive_after=timedelta(days=settings.archive_after_days),
            purge_after=timedelta(days=settings.purge_after_days),
        )


@dataclass
class SweepReport:
    deleted_waiting: int = 0
    archived: int = 0
    purged: int = 0
    failed: int = 0

    @property
    def total(self) -> int:
        return self.deleted_waiting + self.archived + self.purged


# Takes the freshly locked game. Returns False if the game no longer qualifies.
SweepAction = Callable[[Storage, GameModel], bool]


def cleanup_old_games(
    storage_factory: StorageFactory,
    now: datetime,
    policy: SweepPolicy = SweepPolicy(),
    locks: Optional[GameLocks] = None,
) -> SweepReport:
    """
    Run all three passes once. A game that fails is logged and skipped, the others are still processed.

    Running it twice with the same `now` does nothing the second time.
    """
    report = SweepReport()

    with storage_factory() as storage, storage.atomic():
        candidates = storage.games.find_waiting_created_before(now - policy.waiting_max_age)
    report.deleted_waiting = _run_pass(storage_factory, locks, candidates, _delete_waiting_game, report)

    with storage_factory() as storage, storage.atomic():
        candidates = storage.games.find_terminal_updated_before(
            now - policy.archive_after, include_archived=False
        )
    report.archived = _run_pass(
        storage_factory, locks, candidates, lambda s, game: _archive_game(s, game, now), report
    )

    with storage_factory() as storage, storage.atomic():
        candidates = storage.games.find_terminal_updated_before(now - policy.purge_after)
    report.purged = _run_pass(storage_factory, locks, candidates, _purge_game, report)

    logger.info(
        "Maintenance finished: %d waiting games deleted, %d games archived, %d games purged, %d failures",
        report.deleted_waiting,
        report.archived,
        report.purged,
        report.failed,
    )
    return report


def _run_pass(
    storage_factory: StorageFactory,
    locks: Optional[GameLocks],
    candidates: list[GameModel],
    action: SweepAction,
    report: SweepReport,
) -> int:
    """One game, one transaction. Failures are counted on the report. Returns how many games were processed."""
    done = 0
    for candidate in candidates:
        try:
            with (
                locks.hold(candidate.game_id) if locks else nullcontext(),
                storage_factory() as storage,
                storage.atomic(),
            ):
                game = storage.games.get_for_update(candidate.game_id)
                if game is not None and action(storage, game):
                    done += 1
        except Exception:
            logger.exception("Maintenance failed for game %s", candidate.game_id)
            report.failed += 1
    return done


def _delete_waiting_game(storage: Storage, game: GameModel) -> bool:
    # somebody may have joined since the candidates were listed
    if game.status != Status.WAITING:
        return False
    _delete_game(storage, game)
    return True


def _archive_game(storage: Storage, game: GameModel, now: datetime) -> bool:
    """The update timestamp is left alone, so the purge still counts from the end of the game."""
    if not game.status.is_terminal or game.archived:
        return False
    game.archive(now)
    storage.games.save(game)
    logger.debug("Archived game %s (%s)", game.game_id, game.status)
    return True


def _purge_game(storage: Storage, game: GameModel) -> bool:
    if not game.status.is_terminal:
        return False
    _delete_game(storage, game)
    return True


def _delete_game(storage: Storage, game: GameModel) -> None:
    # move records first, they reference the game
    removed = storage.moves.delete_by_game(game.game_id)
    storage.games.delete(game.game_id)
    logger.debug("Deleted game %s (%s) with %d moves", game.game_id, game.status, removed)
