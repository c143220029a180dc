"""Generate database sessions"""

from typing import Generator

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from chessroom.core.settings import ChessSettings
from chessroom.db.schema import Base


def build_engine(settings: ChessSettings) -> Engine:
    connect_args = {}
    if settings.database_url.startswith("sqlite"):
        # sessions are handed out to worker threads of whatever transport sits on top
        connect_args["check_same_thread"] = False
    return create_engine(
        settings.database_url, echo=settings.echo_sql, connect_args=connect_args
    )


def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Ensure all tables are created"""
    Base.metadata.create_all(bind=engine)


def get_db(session_factory: sessionmaker[Session]) -> Generator[Session, None, None]:
    db = session_factory()
    try:
        yield db
    finally:
        db.close()
