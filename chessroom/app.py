"""Wire settings, logging, database and service together."""

import logging

from chessroom.core.logging import setup_logging
from chessroom.core.settings import ChessSettings
from chessroom.db.database import build_engine, build_session_factory, init_db
from chessroom.db.sql_repository import SQLStorageFactory
from chessroom.services.chess_service import ChessService
from chessroom.services.locks import GameLocks

logger = logging.getLogger(__name__)


def create_service(settings: ChessSettings | None = None, configure_logging: bool = True) -> ChessService:
    """
    Build the one ChessService all requests share.

    Every request gets a database session of its own from the storage factory, the game locks are shared.
    """
    if settings is None:
        settings = ChessSettings()

    if configure_logging:
        setup_logging(log_dir=settings.log_dir, level=settings.log_level)

    engine = build_engine(settings)
    init_db(engine)
    service = ChessService(
        SQLStorageFactory(build_session_factory(engine)),
        locks=GameLocks(),
        settings=settings,
    )

    logger.info("chess service ready (database: %s)", engine.url.render_as_string(hide_password=True))
    return service
