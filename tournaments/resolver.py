"""Winner resolution, bracket advancement and tournament close-out."""

import logging
from datetime import datetime

from .economy import MEDALS, apply_exchange, placement_award, placement_for
from .exceptions import (
    AlreadyDecidedError,
    InsufficientRosterError,
    IntegrityViolationError,
    InvalidWinnerError,
    MatchNotFoundError,
    TournamentClosedError,
    TournamentNotFoundError,
)
from .models import (
    BRONZE_MATCH_NUMBER,
    FINAL_MATCH_NUMBER,
    FINAL_ROUND,
    SEMIFINAL_ROUND,
    Contestant,
    DecisionOutcome,
    Match,
    PlacementAward,
    PointHistory,
    Tournament,
    matches_in_round,
    round_name,
)
from .repository import TournamentRepository
from .rotation import ContinuityRotation

logger = logging.getLogger(__name__)


class MatchResolver:
    """Applies a single match decision and everything it triggers.

    A decision updates both contestants' ranking points, marks the match,
    moves the tournament pointer, creates the next round when the current one
    is finished, settles the bronze match and final, and starts the next
    tournament once the final is decided. All of it runs in one repository
    transaction.
    """

    def __init__(self, repository: TournamentRepository, rotation: ContinuityRotation):
        self.repository = repository
        self.rotation = rotation

    def select_winner(self, match_id: int, winner_id: int) -> DecisionOutcome:
        rotation_error: InsufficientRosterError | None = None

        with self.repository.transaction():
            match = self.repository.get_match(match_id)
            if match is None:
                raise MatchNotFoundError(match_id)

            tournament = self.repository.get_tournament(match.tournament_id)
            if tournament is None:
                raise TournamentNotFoundError(match.tournament_id)

            if match.completed:
                logger.warning(f"Rejected decision for already decided match {match_id}")
                raise AlreadyDecidedError(match_id)
            if tournament.completed:
                logger.warning(
                    f"Rejected decision for match {match_id} in completed "
                    f"tournament {tournament.id}"
                )
                raise TournamentClosedError(match_id, tournament.id)
            if winner_id not in (match.contestant1_id, match.contestant2_id):
                raise InvalidWinnerError(match_id, winner_id)

            loser_id = match.opponent_of(winner_id)
            winner = self._require_contestant(winner_id, match)
            loser = self._require_contestant(loser_id, match)

            if not self.repository.decide_match(match_id, winner_id):
                raise AlreadyDecidedError(match_id)
            decided = self.repository.get_match(match_id)

            self._apply_exchange(decided, winner, loser)
            label = round_name(decided.round_number, decided.match_number)
            logger.info(
                f"{winner.name} beat {loser.name} in {label} "
                f"match {decided.match_number} of tournament {tournament.id}"
            )

            outcome = DecisionOutcome(match=decided, tournament_id=tournament.id)
            if decided.round_number < FINAL_ROUND:
                self._progress_round(tournament, decided, outcome)
            elif decided.match_number == BRONZE_MATCH_NUMBER:
                self._close_bronze_match(tournament, decided)
            else:
                rotation_error = self._close_tournament(tournament, decided, outcome)

        if rotation_error is not None:
            raise rotation_error
        return outcome

    def _require_contestant(self, contestant_id: int, match: Match) -> Contestant:
        contestant = self.repository.get_contestant(contestant_id)
        if contestant is None:
            logger.error(
                f"Match {match.id} references missing contestant {contestant_id}"
            )
            raise IntegrityViolationError(
                f"Match {match.id} references missing contestant {contestant_id}"
            )
        return contestant

    def _apply_exchange(self, match: Match, winner: Contestant, loser: Contestant) -> None:
        """Move ranking points between the two contestants and log both sides."""
        winner_after, loser_after = apply_exchange(
            winner.ranking_points, loser.ranking_points
        )

        self.repository.update_contestant(
            winner.id,
            ranking_points=winner_after,
            matches_played=winner.matches_played + 1,
            wins=winner.wins + 1,
        )
        self.repository.update_contestant(
            loser.id,
            ranking_points=loser_after,
            matches_played=loser.matches_played + 1,
            losses=loser.losses + 1,
        )

        self.repository.create_point_history(
            PointHistory(
                contestant_id=winner.id,
                tournament_id=match.tournament_id,
                match_id=match.id,
                points_before=winner.ranking_points,
                points_change=winner_after - winner.ranking_points,
                points_after=winner_after,
                reason=f"Win against {loser.name}",
            )
        )
        self.repository.create_point_history(
            PointHistory(
                contestant_id=loser.id,
                tournament_id=match.tournament_id,
                match_id=match.id,
                points_before=loser.ranking_points,
                points_change=loser_after - loser.ranking_points,
                points_after=loser_after,
                reason=f"Loss to {winner.name}",
            )
        )

    def _progress_round(
        self, tournament: Tournament, match: Match, outcome: DecisionOutcome
    ) -> None:
        round_number = match.round_number
        round_matches = self.repository.get_matches(tournament.id, round_number)
        pending = [m for m in round_matches if not m.completed]

        if pending:
            # Next higher undecided match, wrapping to the lowest
            later = [m for m in pending if m.match_number > match.match_number]
            next_match = later[0] if later else pending[0]
            self.repository.update_tournament(
                tournament.id, current_match=next_match.match_number
            )
            return

        if len(round_matches) != matches_in_round(round_number):
            raise IntegrityViolationError(
                f"Round {round_number} of tournament {tournament.id} has "
                f"{len(round_matches)} matches, expected {matches_in_round(round_number)}"
            )
        if self.repository.get_matches(tournament.id, round_number + 1):
            raise IntegrityViolationError(
                f"Round {round_number + 1} of tournament {tournament.id} already exists"
            )

        outcome.round_completed = True
        if round_number == SEMIFINAL_ROUND:
            self._create_final_round(tournament, round_matches)
        else:
            self._create_next_round(tournament, round_number, round_matches)

    def _create_next_round(
        self, tournament: Tournament, round_number: int, round_matches: list[Match]
    ) -> None:
        next_round = round_number + 1
        winners = [m.winner_id for m in round_matches]

        for i in range(0, len(winners), 2):
            self.repository.create_match(
                Match(
                    tournament_id=tournament.id,
                    round_number=next_round,
                    match_number=i // 2 + 1,
                    contestant1_id=winners[i],
                    contestant2_id=winners[i + 1],
                )
            )

        self.repository.update_tournament(
            tournament.id, current_round=next_round, current_match=1
        )
        logger.info(
            f"Tournament {tournament.id} advanced to {round_name(next_round)} "
            f"with {len(winners) // 2} matches"
        )

    def _create_final_round(
        self, tournament: Tournament, semifinals: list[Match]
    ) -> None:
        first, second = semifinals
        self.repository.create_match(
            Match(
                tournament_id=tournament.id,
                round_number=FINAL_ROUND,
                match_number=BRONZE_MATCH_NUMBER,
                contestant1_id=first.loser_id,
                contestant2_id=second.loser_id,
            )
        )
        self.repository.create_match(
            Match(
                tournament_id=tournament.id,
                round_number=FINAL_ROUND,
                match_number=FINAL_MATCH_NUMBER,
                contestant1_id=first.winner_id,
                contestant2_id=second.winner_id,
            )
        )
        self.repository.update_tournament(
            tournament.id, current_round=FINAL_ROUND, current_match=BRONZE_MATCH_NUMBER
        )
        logger.info(f"Tournament {tournament.id} created bronze match and final")

    def _close_bronze_match(self, tournament: Tournament, match: Match) -> None:
        self.repository.update_tournament(
            tournament.id,
            third_place_id=match.winner_id,
            current_match=FINAL_MATCH_NUMBER,
        )
        self._award_placement(
            tournament.id, match.winner_id, FINAL_ROUND, is_third=True
        )
        self._award_placement(
            tournament.id, match.loser_id, FINAL_ROUND, is_fourth=True
        )

    def _close_tournament(
        self, tournament: Tournament, match: Match, outcome: DecisionOutcome
    ) -> InsufficientRosterError | None:
        """Crown the podium, sweep placements and rotate in the next field.

        Returns the rotation error instead of raising it so the completed
        tournament is still committed.
        """
        self.repository.update_tournament(
            tournament.id,
            champion_id=match.winner_id,
            runner_up_id=match.loser_id,
            completed=True,
            ended_at=datetime.now(),
        )
        self._award_placement(
            tournament.id, match.winner_id, FINAL_ROUND, is_champion=True
        )
        self._award_placement(
            tournament.id, match.loser_id, FINAL_ROUND, is_runner_up=True
        )

        for exit_round in range(1, SEMIFINAL_ROUND):
            for eliminated in self.repository.get_matches(tournament.id, exit_round):
                if eliminated.completed:
                    self._award_placement(tournament.id, eliminated.loser_id, exit_round)

        outcome.tournament_completed = True
        logger.info(f"Tournament {tournament.id} completed, champion: {match.winner_id}")

        try:
            successor = self.rotation.rotate(tournament.id)
        except InsufficientRosterError as e:
            e.completed_tournament_id = tournament.id
            logger.error(f"No successor for tournament {tournament.id}: {e}")
            return e

        outcome.successor_tournament_id = successor.id
        return None

    def _award_placement(
        self, tournament_id: int, contestant_id: int, exit_round: int, **finish: bool
    ) -> None:
        if self.repository.get_placement_award(tournament_id, contestant_id):
            logger.warning(
                f"Contestant {contestant_id} already placed in tournament {tournament_id}"
            )
            return

        contestant = self.repository.get_contestant(contestant_id)
        if contestant is None:
            raise IntegrityViolationError(
                f"Tournament {tournament_id} places missing contestant {contestant_id}"
            )

        placement = placement_for(exit_round, **finish)
        points = placement_award(exit_round, **finish)
        fields = {"tournament_points": contestant.tournament_points + points}
        medal = MEDALS.get(placement)
        if medal:
            fields[medal] = getattr(contestant, medal) + 1

        self.repository.update_contestant(contestant_id, **fields)
        self.repository.create_placement_award(
            PlacementAward(
                tournament_id=tournament_id,
                contestant_id=contestant_id,
                placement=placement,
                points=points,
            )
        )
