"""Rating and statistics updates once a game has finished."""

import logging

from chessroom.core.models import GameModel, PlayerModel
from chessroom.core.shared_types import Status

logger = logging.getLogger(__name__)

WIN_POINTS = 20
LOSS_POINTS = 20
DRAW_POINTS = 5


def apply_ratings(
    game: GameModel, white: PlayerModel | None, black: PlayerModel | None
) -> bool:
    """
    Update both players for the game's final status. Must be called exactly once per finished game.

    * win: winner +20, loser -20 (a rating never drops below 100)
    * draw: both +5
    * timeout / abandoned: nothing changes

    Returns True if the players were changed (the caller has to persist them).
    """
    if white is None or black is None:
        logger.warning("Cannot update ratings for game %s: a player is missing", game.game_id)
        return False

    match game.status:
        case Status.WHITE_WIN:
            white.add_win(WIN_POINTS)
            black.add_loss(LOSS_POINTS)
        case Status.BLACK_WIN:
            black.add_win(WIN_POINTS)
            white.add_loss(LOSS_POINTS)
        case Status.DRAW:
            white.add_draw(DRAW_POINTS)
            black.add_draw(DRAW_POINTS)
        case _:
            logger.info("No rating change for game %s with status %s", game.game_id, game.status)
            return False

    logger.info(
        "Ratings updated after game %s (%s): %s -> %d, %s -> %d",
        game.game_id,
        game.status,
        white.player_id,
        white.rating,
        black.player_id,
        black.rating,
    )
    return True
