"""
Per-game mutual exclusion.

Two requests for the same game must never run their read-validate-write cycle at the same time,
otherwise both could commit a move against the same (stale) position.
Requests for different games do not share a lock and never wait for each other.
"""

import threading
from collections.abc import Hashable
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator


@dataclass
class _Entry:
    lock: threading.Lock = field(default_factory=threading.Lock)
    holders: int = 0  # threads holding or waiting for the lock


class GameLocks:
    """Registry of locks keyed by game ID. Entries only exist while someone holds or waits for them."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: dict[Hashable, _Entry] = {}

    @contextmanager
    def hold(self, game_id: Hashable) -> Iterator[None]:
        with self._guard:
            entry = self._entries.setdefault(game_id, _Entry())
            entry.holders += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._guard:
                entry.holders -= 1
                if entry.holders == 0:
                    del self._entries[game_id]

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)
