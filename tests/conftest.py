"""Pytest configuration and shared fixtures.

This file is automatically loaded by pytest and provides:
- Storage fixtures run against both repository backends
- A seeded random source so draws and shuffles are reproducible
- Helpers for populating the roster and playing matches
"""

import random
from collections.abc import Callable

import pytest

from tournaments import (
    InMemoryTournamentRepository,
    Match,
    RosterService,
    TournamentDatabaseManager,
    TournamentManager,
    TournamentRepository,
)
from tournaments.models import Contestant


# =============================================================================
# STORAGE FIXTURES
# =============================================================================


@pytest.fixture(params=["memory", "sqlite"])
def repository(request: pytest.FixtureRequest, tmp_path) -> TournamentRepository:
    """Provide an empty repository of each backend type.

    Tests that take this fixture run once per backend.
    """
    if request.param == "memory":
        return InMemoryTournamentRepository()
    return TournamentDatabaseManager(str(tmp_path / "tournaments.db"))


@pytest.fixture
def memory_repository() -> InMemoryTournamentRepository:
    """In-memory repository for tests where the backend does not matter."""
    return InMemoryTournamentRepository()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


# =============================================================================
# ROSTER AND ENGINE FIXTURES
# =============================================================================


@pytest.fixture
def make_roster(repository: TournamentRepository) -> Callable[..., list[Contestant]]:
    """Provide a factory that adds numbered contestants to the repository."""

    def _make(count: int = 80, ranking_points: int = 1000) -> list[Contestant]:
        offset = len(repository.list_contestants())
        return [
            repository.create_contestant(
                Contestant(
                    name=f"Contestant {offset + i:03d}",
                    ranking_points=ranking_points,
                )
            )
            for i in range(1, count + 1)
        ]

    return _make


@pytest.fixture
def manager(repository: TournamentRepository, rng: random.Random) -> TournamentManager:
    return TournamentManager(repository, rng)


@pytest.fixture
def roster(repository: TournamentRepository) -> RosterService:
    return RosterService(repository)


@pytest.fixture
def running_manager(
    manager: TournamentManager, make_roster: Callable[..., list[Contestant]]
) -> TournamentManager:
    """Engine with a populated roster and a freshly started tournament."""
    make_roster(80)
    manager.initialize_tournament()
    return manager


@pytest.fixture
def play() -> Callable[[TournamentManager, int], list[Match]]:
    """Provide a helper that decides the next ``count`` current matches.

    The first-listed contestant always wins. Returns the decided matches as
    they looked before the decision.
    """

    def _play(manager: TournamentManager, count: int) -> list[Match]:
        decided = []
        for _ in range(count):
            match = manager.get_current_match()
            assert match is not None, "ran out of matches"
            manager.select_winner(match.id, match.contestant1_id)
            decided.append(match)
        return decided

    return _play


# =============================================================================
# PYTEST CONFIGURATION HOOKS
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
