"""
Pytest will auto-discover / import this file called 'conftest.py'.
This file defines fixtures/variables required for testing multiple layers.
"""

from datetime import datetime, timedelta, timezone
from typing import Generator

import pytest
from sqlalchemy import StaticPool, create_engine
from sqlalchemy.orm import Session, sessionmaker

from chessroom.core.settings import ChessSettings
from chessroom.db.schema import Base
from chessroom.db.sql_repository import SQLStorage, SQLStorageFactory
from chessroom.services.chess_service import ChessService
from chessroom.services.locks import GameLocks

# Setup an in-memory SQLite database for testing
DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autoflush=False, bind=engine, expire_on_commit=False)

START_TIME = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Time only moves when a test says so."""

    def __init__(self, start: datetime = START_TIME) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def db_session() -> Generator[Session, None, None]:
    """Connection to a test database. Tables are removed at teardown to make tests independent of each other."""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def storage_factory(db_session: Session) -> SQLStorageFactory:
    """A session of its own for every unit of work. `db_session` takes care of the tables."""
    return SQLStorageFactory(TestingSessionLocal)


@pytest.fixture
def storage(db_session: Session) -> SQLStorage:
    """Looks at the database next to the service. Expires on commit, so every transaction reads fresh rows."""
    db_session.expire_on_commit = True
    return SQLStorage(db_session)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> ChessSettings:
    return ChessSettings(database_url=DATABASE_URL)


@pytest.fixture
def service(storage_factory: SQLStorageFactory, clock: FakeClock, settings: ChessSettings) -> ChessService:
    return ChessService(storage_factory, locks=GameLocks(), settings=settings, clock=clock)
