"""Field selection and bracket seeding for the next tournament."""

import logging
import random

from .exceptions import InsufficientRosterError
from .models import FIELD_SIZE, Contestant, Match, Tournament
from .repository import TournamentRepository

logger = logging.getLogger(__name__)


class ContinuityRotation:
    """Builds each new field so that part of the roster carries over.

    Round-one winners of the previous tournament return. The rest of the
    field is drawn from contestants who did not play in it, and only when
    those run short are round-one losers drawn back in. Contestants with no
    ranking points left are never selected.
    """

    def __init__(
        self, repository: TournamentRepository, rng: random.Random | None = None
    ):
        self.repository = repository
        self.rng = rng or random.Random()

    def rotate(self, previous_tournament_id: int | None = None) -> Tournament:
        """Select a field, activate it and create the new tournament."""
        with self.repository.transaction():
            field_ids = self.select_field(previous_tournament_id)
            return self.create_tournament(field_ids)

    def select_field(self, previous_tournament_id: int | None = None) -> list[int]:
        """Pick the 64 contestant ids for the next tournament without writing."""
        eligible = self._eligible(self.repository.list_contestants())

        if previous_tournament_id is None:
            if len(eligible) < FIELD_SIZE:
                raise InsufficientRosterError(len(eligible), FIELD_SIZE)
            return [c.id for c in self.rng.sample(eligible, FIELD_SIZE)]

        eligible_ids = {c.id for c in eligible}
        winners: list[int] = []
        losers: list[int] = []
        for match in self.repository.get_matches(previous_tournament_id, 1):
            if match.completed:
                winners.append(match.winner_id)
                losers.append(match.loser_id)

        carry_over = [cid for cid in winners if cid in eligible_ids]
        remaining = FIELD_SIZE - len(carry_over)
        played = set(winners) | set(losers)
        unseen = [c.id for c in eligible if c.id not in played]

        if len(unseen) >= remaining:
            drawn = self.rng.sample(unseen, remaining)
        else:
            shortfall = remaining - len(unseen)
            returning = sorted(cid for cid in losers if cid in eligible_ids)
            if len(returning) < shortfall:
                raise InsufficientRosterError(
                    len(carry_over) + len(unseen) + len(returning),
                    FIELD_SIZE,
                    previous_tournament_id,
                )
            drawn = unseen + self.rng.sample(returning, shortfall)

        field_ids = carry_over + drawn
        if len(set(field_ids)) != FIELD_SIZE:
            raise InsufficientRosterError(
                len(set(field_ids)), FIELD_SIZE, previous_tournament_id
            )

        logger.info(
            f"Selected field: {len(carry_over)} returning winners, "
            f"{len(drawn)} drawn"
        )
        return field_ids

    def create_tournament(self, field_ids: list[int]) -> Tournament:
        """Activate the field, create the tournament and its round-one pairings."""
        with self.repository.transaction():
            self.repository.deactivate_all()
            for contestant_id in field_ids:
                self.repository.update_contestant(contestant_id, active=True)

            tournament = self.repository.create_tournament(
                Tournament(current_round=1, current_match=1)
            )

            seeded = list(field_ids)
            self.rng.shuffle(seeded)
            for i in range(0, len(seeded), 2):
                self.repository.create_match(
                    Match(
                        tournament_id=tournament.id,
                        round_number=1,
                        match_number=i // 2 + 1,
                        contestant1_id=seeded[i],
                        contestant2_id=seeded[i + 1],
                    )
                )

        logger.info(
            f"Created tournament {tournament.id} with {len(seeded)} contestants"
        )
        return tournament

    @staticmethod
    def _eligible(contestants: list[Contestant]) -> list[Contestant]:
        return [c for c in contestants if c.ranking_points > 0]
