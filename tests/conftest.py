"""
Pytest configuration and shared fixtures.

Provides a throwaway panel database and recording fake servers for the
supervisor tests.
"""

from collections.abc import Generator
from pathlib import Path
from typing import List, Optional, Set, Tuple

import pytest

import xpanel.local.database as database
from xpanel.local.config import effective_settings
from xpanel.local.database import PanelDBManager


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
def db(tmp_path: Path) -> PanelDBManager:
    """A freshly initialized panel database that is not globally registered."""
    manager = PanelDBManager(tmp_path / "panel.db")
    manager.initialize_database("admin", "admin")
    return manager


@pytest.fixture
def global_db(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[PanelDBManager, None, None]:
    """
    Points the configured database folder at a temp directory and opens it
    through `init_db`, as the CLI and the servers do.
    """
    monkeypatch.setattr(effective_settings, "DB_FOLDER", tmp_path)
    manager = database.init_db(effective_settings.get_db_path())
    yield manager
    monkeypatch.setattr(database, "_db", None)


# =============================================================================
# Fake Servers
# =============================================================================


Journal = List[Tuple[str, str, int]]


class FakeServer:
    """Records start/stop calls as (action, kind, generation) in a shared journal."""

    def __init__(self, kind: str, generation: int, journal: Journal,
                 fail_start: bool = False, fail_stop: bool = False) -> None:
        self.kind = kind
        self.generation = generation
        self.journal = journal
        self.fail_start = fail_start
        self.fail_stop = fail_stop
        self.running = False
        self.port: Optional[int] = None

    def start(self) -> None:
        self.journal.append(("start", self.kind, self.generation))
        if self.fail_start:
            raise OSError("address already in use")
        self.running = True
        self.port = 2000 + self.generation

    def stop(self) -> None:
        self.journal.append(("stop", self.kind, self.generation))
        self.running = False
        if self.fail_stop:
            raise RuntimeError("listener close failed")


class FakeServerFactory:
    """
    Builds numbered FakeServers. Generations listed in `fail_start_on` /
    `fail_stop_on` fail the corresponding call.
    """

    def __init__(self, kind: str, journal: Journal,
                 fail_start_on: Optional[Set[int]] = None,
                 fail_stop_on: Optional[Set[int]] = None) -> None:
        self.kind = kind
        self.journal = journal
        self.fail_start_on = fail_start_on or set()
        self.fail_stop_on = fail_stop_on or set()
        self.built: List[FakeServer] = []

    def __call__(self) -> FakeServer:
        generation = len(self.built)
        server = FakeServer(
            self.kind, generation, self.journal,
            fail_start=generation in self.fail_start_on,
            fail_stop=generation in self.fail_stop_on,
        )
        self.built.append(server)
        return server


@pytest.fixture
def journal() -> Journal:
    return []
