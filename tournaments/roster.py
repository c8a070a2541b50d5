"""Roster administration and statistics views."""

import logging

from .exceptions import ContestantNotFoundError, DuplicateContestantError
from .models import (
    STARTING_POINTS,
    Contestant,
    ContestantDetail,
    TopPerformersHistory,
    TournamentHistoryEntry,
)
from .repository import TournamentRepository

logger = logging.getLogger(__name__)


def _check_limit(limit: int) -> None:
    if limit < 1:
        raise ValueError(f"Limit must be at least 1, got {limit}")


class RosterService:
    """Maintains the contestant roster and serves leaderboards over it."""

    def __init__(
        self,
        repository: TournamentRepository,
        starting_points: int = STARTING_POINTS,
        default_nationality: str | None = None,
    ):
        self.repository = repository
        self.starting_points = starting_points
        self.default_nationality = default_nationality

    def seed_roster(self, names: list[str]) -> list[Contestant]:
        """Create every listed contestant that is not on the roster yet."""
        created = []
        with self.repository.transaction():
            known = {c.name.casefold() for c in self.repository.list_contestants()}
            for name in names:
                name = name.strip()
                if not name or name.casefold() in known:
                    continue
                created.append(self._create(name, self.default_nationality))
                known.add(name.casefold())

        if created:
            logger.info(f"Seeded {len(created)} contestants")
        return created

    def add_contestant(self, name: str, nationality: str | None = None) -> Contestant:
        name = name.strip()
        if not name:
            raise ValueError("Contestant name is required")

        with self.repository.transaction():
            for existing in self.repository.list_contestants():
                if existing.name.casefold() == name.casefold():
                    raise DuplicateContestantError(existing.name)
            contestant = self._create(name, nationality or self.default_nationality)

        logger.info(f"Added contestant {contestant.id}: {contestant.name}")
        return contestant

    def update_nationality(
        self, contestant_id: int, nationality: str | None
    ) -> Contestant:
        nationality = nationality.strip() if nationality else None
        return self.repository.update_contestant(
            contestant_id, nationality=nationality or None
        )

    def get_contestant(self, contestant_id: int) -> Contestant:
        contestant = self.repository.get_contestant(contestant_id)
        if not contestant:
            raise ContestantNotFoundError(contestant_id)
        return contestant

    def get_contestant_detail(
        self, contestant_id: int, history_limit: int = 10
    ) -> ContestantDetail:
        """Contestant plus their most recent ranking-point changes."""
        contestant = self.get_contestant(contestant_id)
        history = self.repository.get_point_history(contestant_id, history_limit)
        return ContestantDetail(contestant=contestant, point_history=history)

    def list_contestants(self) -> list[Contestant]:
        return self.repository.list_contestants()

    def list_active_contestants(self) -> list[Contestant]:
        return self.repository.list_active_contestants()

    def get_ranking(self, limit: int = 100) -> list[Contestant]:
        _check_limit(limit)
        return self.repository.top_contestants_by_points(limit)

    def get_tournament_ranking(self, limit: int = 100) -> list[Contestant]:
        _check_limit(limit)
        return self.repository.top_contestants_by_tournament_points(limit)

    def get_general_stats(self) -> list[Contestant]:
        """Every contestant, most wins first, ties by ranking points."""
        return sorted(
            self.repository.list_contestants(),
            key=lambda c: (-c.wins, -c.ranking_points, c.id),
        )

    def get_tournament_history(self) -> list[TournamentHistoryEntry]:
        entries = []
        for tournament in self.repository.list_tournaments():
            entries.append(
                TournamentHistoryEntry(
                    tournament=tournament,
                    champion=self._lookup(tournament.champion_id),
                    runner_up=self._lookup(tournament.runner_up_id),
                    third_place=self._lookup(tournament.third_place_id),
                )
            )
        return entries

    def get_top_performers_history(self, limit: int = 8) -> TopPerformersHistory:
        _check_limit(limit)
        top = self.repository.top_contestants_by_points(limit)
        history = self.repository.get_point_history_for([c.id for c in top])
        return TopPerformersHistory(top_performers=top, point_history=history)

    def _create(self, name: str, nationality: str | None) -> Contestant:
        return self.repository.create_contestant(
            Contestant(
                name=name,
                nationality=nationality,
                ranking_points=self.starting_points,
            )
        )

    def _lookup(self, contestant_id: int | None) -> Contestant | None:
        if contestant_id is None:
            return None
        return self.repository.get_contestant(contestant_id)
