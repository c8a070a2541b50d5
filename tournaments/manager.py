"""Tournament engine facade: decisions, pointer management and read views."""

import logging
import random
from datetime import datetime

from .exceptions import (
    IntegrityViolationError,
    MatchNotFoundError,
    TournamentNotFoundError,
)
from .models import (
    BRONZE_MATCH_NUMBER,
    COMPLETED_NAME,
    FINAL_MATCH_NUMBER,
    FINAL_ROUND,
    TOTAL_MATCHES,
    BracketMatch,
    BracketRound,
    BracketView,
    Contestant,
    ContestantSummary,
    CurrentMatchContestant,
    CurrentMatchView,
    Match,
    ProgressView,
    SelectWinnerResult,
    Tournament,
    round_name,
)
from .repository import TournamentRepository
from .resolver import MatchResolver
from .rotation import ContinuityRotation

logger = logging.getLogger(__name__)

DEFAULT_RANK_WINDOW = 100


class TournamentManager:
    """Manages tournament creation, progression and bracket views."""

    def __init__(
        self,
        repository: TournamentRepository,
        rng: random.Random | None = None,
        rank_window: int = DEFAULT_RANK_WINDOW,
    ):
        self.repository = repository
        self.rank_window = rank_window
        self.rotation = ContinuityRotation(repository, rng)
        self.resolver = MatchResolver(repository, self.rotation)

    def initialize_tournament(self) -> Tournament:
        """Close any running tournament and start a new one."""
        with self.repository.transaction():
            current = self.repository.get_current_tournament()
            if current:
                self.repository.update_tournament(
                    current.id, completed=True, ended_at=datetime.now()
                )
                logger.info(f"Closed tournament {current.id} before reinitializing")

            latest = self.repository.get_latest_tournament()
            return self.rotation.rotate(latest.id if latest else None)

    def ensure_tournament(self) -> Tournament:
        """Return the running tournament, starting one if none is running."""
        with self.repository.transaction():
            current = self.repository.get_current_tournament()
            if current:
                return current
            logger.info("No active tournament, initializing")
            return self.initialize_tournament()

    def get_current_tournament(self) -> Tournament | None:
        return self.repository.get_current_tournament()

    def select_winner(self, match_id: int, winner_id: int) -> SelectWinnerResult:
        """Record a decision and report where the bracket goes next."""
        outcome = self.resolver.select_winner(match_id, winner_id)

        if outcome.tournament_completed:
            return SelectWinnerResult(
                next_match=self.get_current_match(),
                tournament_changed=True,
                tournament_id=outcome.successor_tournament_id,
                message="Tournament completed. New tournament started.",
            )

        next_match = self.advance_to_next_match()
        return SelectWinnerResult(
            next_match=next_match,
            tournament_changed=False,
            tournament_id=outcome.tournament_id,
            message="Winner recorded",
        )

    def advance_to_next_match(self) -> Match | None:
        """Point the running tournament at an undecided match.

        Leaves the pointer alone when it already refers to an undecided match.
        """
        with self.repository.transaction():
            tournament = self.repository.get_current_tournament()
            if not tournament:
                return None

            current = self._pointer_match(tournament)
            if current and not current.completed:
                return current

            next_match = self._find_pending_match(tournament)
            if next_match is None:
                return None

            if (next_match.round_number, next_match.match_number) != (
                tournament.current_round,
                tournament.current_match,
            ):
                self.repository.update_tournament(
                    tournament.id,
                    current_round=next_match.round_number,
                    current_match=next_match.match_number,
                )
            return next_match

    def get_current_match(self) -> Match | None:
        tournament = self.repository.get_current_tournament()
        if not tournament:
            return None

        match = self._pointer_match(tournament)
        if (
            match
            and match.round_number == FINAL_ROUND
            and match.match_number == BRONZE_MATCH_NUMBER
            and match.completed
        ):
            match = self.repository.get_match_by_number(
                tournament.id, FINAL_ROUND, FINAL_MATCH_NUMBER
            )
        return match

    def get_current_match_data(self) -> CurrentMatchView | None:
        """Current match with both contestants and their leaderboard rank."""
        match = self.get_current_match()
        if not match:
            return None

        leaderboard = self.repository.top_contestants_by_points(self.rank_window)
        ranks = {c.id: position for position, c in enumerate(leaderboard, start=1)}

        def side(contestant_id: int) -> CurrentMatchContestant:
            contestant = self._require_contestant(contestant_id, match)
            return CurrentMatchContestant(
                id=contestant.id,
                name=contestant.name,
                nationality=contestant.nationality,
                ranking_points=contestant.ranking_points,
                rank=ranks.get(contestant.id),
            )

        return CurrentMatchView(
            match_id=match.id,
            tournament_id=match.tournament_id,
            contestant1=side(match.contestant1_id),
            contestant2=side(match.contestant2_id),
            round_number=match.round_number,
            match_number=match.match_number,
            round_name=round_name(match.round_number, match.match_number),
        )

    def get_match_detail(self, match_id: int) -> Match:
        match = self.repository.get_match(match_id)
        if not match:
            raise MatchNotFoundError(match_id)
        return match

    def get_tournament_bracket(self, tournament_id: int) -> BracketView:
        """Get bracket visualization data."""
        tournament = self._require_tournament(tournament_id)
        contestants = {c.id: c for c in self.repository.list_contestants()}

        def summary(contestant_id: int | None) -> ContestantSummary | None:
            contestant = contestants.get(contestant_id)
            if not contestant:
                return None
            return ContestantSummary(
                id=contestant.id,
                name=contestant.name,
                nationality=contestant.nationality,
                ranking_points=contestant.ranking_points,
            )

        groups: dict[tuple[int, str], list[BracketMatch]] = {}
        for match in self.repository.get_matches(tournament_id):
            key = (match.round_number, round_name(match.round_number, match.match_number))
            groups.setdefault(key, []).append(
                BracketMatch(
                    id=match.id,
                    round_number=match.round_number,
                    match_number=match.match_number,
                    contestant1=summary(match.contestant1_id),
                    contestant2=summary(match.contestant2_id),
                    winner=summary(match.winner_id),
                    completed=match.completed,
                    status=match.status,
                )
            )

        rounds = [
            BracketRound(round_number=number, name=name, matches=matches)
            for (number, name), matches in groups.items()
        ]
        return BracketView(tournament=tournament, rounds=rounds)

    def get_tournament_progress(self, tournament_id: int) -> ProgressView:
        tournament = self._require_tournament(tournament_id)
        matches = self.repository.get_matches(tournament_id)
        completed = sum(1 for m in matches if m.completed)

        if tournament.completed:
            label = COMPLETED_NAME
        else:
            label = round_name(tournament.current_round, tournament.current_match)

        return ProgressView(
            tournament_id=tournament_id,
            total_matches=TOTAL_MATCHES,
            completed_matches=completed,
            current_round=tournament.current_round,
            current_match=tournament.current_match,
            round_name=label,
            percent_complete=completed * 100 // TOTAL_MATCHES,
        )

    def _pointer_match(self, tournament: Tournament) -> Match | None:
        return self.repository.get_match_by_number(
            tournament.id, tournament.current_round, tournament.current_match
        )

    def _find_pending_match(self, tournament: Tournament) -> Match | None:
        """First undecided match in the current round, then in later rounds."""
        for round_number in range(tournament.current_round, FINAL_ROUND + 1):
            for match in self.repository.get_matches(tournament.id, round_number):
                if not match.completed:
                    return match
        return None

    def _require_tournament(self, tournament_id: int) -> Tournament:
        tournament = self.repository.get_tournament(tournament_id)
        if not tournament:
            raise TournamentNotFoundError(tournament_id)
        return tournament

    def _require_contestant(self, contestant_id: int, match: Match) -> Contestant:
        contestant = self.repository.get_contestant(contestant_id)
        if not contestant:
            logger.error(
                f"Match {match.id} references missing contestant {contestant_id}"
            )
            raise IntegrityViolationError(
                f"Match {match.id} references missing contestant {contestant_id}"
            )
        return contestant
