"""Storage contract shared by every roster/bracket backend."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Any

from .models import Contestant, Match, PlacementAward, PointHistory, Tournament

CONTESTANT_UPDATE_FIELDS = frozenset(
    {
        "name",
        "nationality",
        "ranking_points",
        "tournament_points",
        "matches_played",
        "wins",
        "losses",
        "gold_medals",
        "silver_medals",
        "bronze_medals",
        "active",
    }
)

TOURNAMENT_UPDATE_FIELDS = frozenset(
    {
        "ended_at",
        "completed",
        "current_round",
        "current_match",
        "champion_id",
        "runner_up_id",
        "third_place_id",
    }
)


class TournamentRepository(ABC):
    """Abstract persistence for contestants, tournaments, matches and audit rows.

    The engine performs every multi-step mutation inside ``transaction()``.
    Implementations must make the block atomic (all writes or none) and
    serialize concurrent blocks. Nested ``transaction()`` calls join the
    outermost one.
    """

    @abstractmethod
    def transaction(self) -> AbstractContextManager[None]:
        """Open (or join) an atomic unit of work."""
        pass

    # ------------------------------------------------------------------
    # Contestants
    # ------------------------------------------------------------------

    @abstractmethod
    def create_contestant(self, contestant: Contestant) -> Contestant:
        pass

    @abstractmethod
    def get_contestant(self, contestant_id: int) -> Contestant | None:
        pass

    @abstractmethod
    def list_contestants(self) -> list[Contestant]:
        """All contestants ordered by id."""
        pass

    @abstractmethod
    def list_active_contestants(self) -> list[Contestant]:
        pass

    @abstractmethod
    def update_contestant(self, contestant_id: int, **fields: Any) -> Contestant:
        """Update the given fields; raises ContestantNotFoundError."""
        pass

    @abstractmethod
    def deactivate_all(self) -> int:
        """Clear the active flag everywhere and return how many were active."""
        pass

    @abstractmethod
    def top_contestants_by_points(self, limit: int | None = None) -> list[Contestant]:
        """Leaderboard by ranking points, ties broken by id."""
        pass

    @abstractmethod
    def top_contestants_by_tournament_points(
        self, limit: int | None = None
    ) -> list[Contestant]:
        pass

    # ------------------------------------------------------------------
    # Tournaments
    # ------------------------------------------------------------------

    @abstractmethod
    def create_tournament(self, tournament: Tournament) -> Tournament:
        pass

    @abstractmethod
    def get_tournament(self, tournament_id: int) -> Tournament | None:
        pass

    @abstractmethod
    def get_current_tournament(self) -> Tournament | None:
        """The tournament that is not completed, if any."""
        pass

    @abstractmethod
    def get_latest_tournament(self) -> Tournament | None:
        pass

    @abstractmethod
    def list_tournaments(self) -> list[Tournament]:
        """All tournaments, newest first."""
        pass

    @abstractmethod
    def update_tournament(self, tournament_id: int, **fields: Any) -> Tournament:
        """Update the given fields; raises TournamentNotFoundError."""
        pass

    # ------------------------------------------------------------------
    # Matches
    # ------------------------------------------------------------------

    @abstractmethod
    def create_match(self, match: Match) -> Match:
        pass

    @abstractmethod
    def get_match(self, match_id: int) -> Match | None:
        pass

    @abstractmethod
    def get_matches(
        self, tournament_id: int, round_number: int | None = None
    ) -> list[Match]:
        """Matches ordered by round then match number."""
        pass

    @abstractmethod
    def decide_match(self, match_id: int, winner_id: int) -> bool:
        """Record the winner only if the match is still pending.

        Returns False when the match was already decided or the winner is
        not one of its contestants.
        """
        pass

    def get_match_by_number(
        self, tournament_id: int, round_number: int, match_number: int
    ) -> Match | None:
        for match in self.get_matches(tournament_id, round_number):
            if match.match_number == match_number:
                return match
        return None

    # ------------------------------------------------------------------
    # Point history
    # ------------------------------------------------------------------

    @abstractmethod
    def create_point_history(self, entry: PointHistory) -> PointHistory:
        pass

    @abstractmethod
    def get_point_history(
        self, contestant_id: int, limit: int | None = None
    ) -> list[PointHistory]:
        """Entries for one contestant, newest first."""
        pass

    def get_point_history_for(
        self, contestant_ids: list[int], limit: int | None = None
    ) -> dict[int, list[PointHistory]]:
        return {cid: self.get_point_history(cid, limit) for cid in contestant_ids}

    # ------------------------------------------------------------------
    # Placement awards
    # ------------------------------------------------------------------

    @abstractmethod
    def create_placement_award(self, award: PlacementAward) -> PlacementAward:
        pass

    @abstractmethod
    def get_placement_award(
        self, tournament_id: int, contestant_id: int
    ) -> PlacementAward | None:
        pass

    @abstractmethod
    def get_placement_awards(self, tournament_id: int) -> list[PlacementAward]:
        pass

    @staticmethod
    def _check_fields(fields: dict[str, Any], allowed: frozenset[str]) -> None:
        unknown = set(fields) - allowed
        if unknown:
            raise ValueError(f"Cannot update fields: {sorted(unknown)}")
