"""Unit tests for /chessroom/app.py"""

import logging
from pathlib import Path
from typing import Generator

import pytest

from chessroom.api.models import CreateGameRequest
from chessroom.app import create_service
from chessroom.core.settings import ChessSettings
from chessroom.core.shared_types import Status


@pytest.fixture(autouse=True)
def cleanup_root_logger() -> Generator[None, None, None]:
    root = logging.getLogger()
    level = root.level
    yield
    for handler in root.handlers[:]:
        handler.close()
        root.removeHandler(handler)
    root.setLevel(level)


def test_logging_follows_settings(tmp_path: Path) -> None:
    log_dir = tmp_path / "logs"
    settings = ChessSettings(
        database_url=f"sqlite:///{tmp_path / 'chessroom.db'}",
        log_dir=str(log_dir),
        log_level="debug",
    )
    create_service(settings)

    root = logging.getLogger()
    assert root.level == logging.DEBUG
    log_files = list(log_dir.glob("*.log"))
    assert len(log_files) == 1
    for handler in root.handlers:
        handler.flush()
    assert "chess service ready" in log_files[0].read_text()


def test_service_is_ready_to_use(tmp_path: Path) -> None:
    settings = ChessSettings(database_url=f"sqlite:///{tmp_path / 'chessroom.db'}")
    service = create_service(settings, configure_logging=False)

    response = service.create_game(CreateGameRequest(player_id="alice"))
    assert response.status == Status.WAITING
    assert service.settings is settings
