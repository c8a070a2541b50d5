"""In-process tournament storage.

Records live in growable lists and their id is their position plus one.
Secondary indices map tournament/round, contestant and award keys to list
positions. A re-entrant lock serializes access. Inside a transaction every
write pushes an undo step, and the outermost transaction replays them in
reverse if the block raises. Stored records are never mutated in place, so
undoing a replacement only needs the previous record.
"""

import logging
import threading
from collections import defaultdict
from collections.abc import Callable
from contextlib import contextmanager
from typing import Any, Iterator

from .exceptions import ContestantNotFoundError, TournamentNotFoundError
from .models import Contestant, Match, PlacementAward, PointHistory, Tournament
from .repository import (
    CONTESTANT_UPDATE_FIELDS,
    TOURNAMENT_UPDATE_FIELDS,
    TournamentRepository,
)

logger = logging.getLogger(__name__)


class InMemoryTournamentRepository(TournamentRepository):
    """Arena-backed repository for tests and single-process use."""

    def __init__(self):
        self._lock = threading.RLock()
        self._depth = 0
        self._undo: list[Callable[[], Any]] = []
        self._contestants: list[Contestant] = []
        self._tournaments: list[Tournament] = []
        self._matches: list[Match] = []
        self._history: list[PointHistory] = []
        self._awards: list[PlacementAward] = []
        self._round_index: dict[tuple[int, int], list[int]] = defaultdict(list)
        self._history_index: dict[int, list[int]] = defaultdict(list)
        self._award_index: dict[tuple[int, int], int] = {}

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._lock:
            outermost = self._depth == 0
            self._depth += 1
            try:
                yield
            except BaseException:
                if outermost and self._undo:
                    logger.warning(
                        f"Rolling back in-memory transaction ({len(self._undo)} writes)"
                    )
                    while self._undo:
                        self._undo.pop()()
                raise
            finally:
                self._depth -= 1
                if outermost:
                    self._undo.clear()

    def _record(self, step: Callable[[], Any]) -> None:
        if self._depth:
            self._undo.append(step)

    def _append(self, records: list, item: Any) -> int:
        """Append and return the new position."""
        records.append(item)
        self._record(records.pop)
        return len(records) - 1

    def _replace(self, records: list, position: int, item: Any) -> None:
        previous = records[position]
        records[position] = item
        self._record(lambda: records.__setitem__(position, previous))

    @staticmethod
    def _at(records: list, record_id: int | None):
        if record_id is None or record_id < 1 or record_id > len(records):
            return None
        return records[record_id - 1]

    # ------------------------------------------------------------------
    # Contestants
    # ------------------------------------------------------------------

    def create_contestant(self, contestant: Contestant) -> Contestant:
        with self._lock:
            stored = contestant.model_copy(update={"id": len(self._contestants) + 1})
            self._append(self._contestants, stored)
            return stored.model_copy()

    def get_contestant(self, contestant_id: int) -> Contestant | None:
        with self._lock:
            contestant = self._at(self._contestants, contestant_id)
            return contestant.model_copy() if contestant else None

    def list_contestants(self) -> list[Contestant]:
        with self._lock:
            return [c.model_copy() for c in self._contestants]

    def list_active_contestants(self) -> list[Contestant]:
        with self._lock:
            return [c.model_copy() for c in self._contestants if c.active]

    def update_contestant(self, contestant_id: int, **fields: Any) -> Contestant:
        self._check_fields(fields, CONTESTANT_UPDATE_FIELDS)
        with self._lock:
            current = self._at(self._contestants, contestant_id)
            if current is None:
                raise ContestantNotFoundError(contestant_id)
            updated = Contestant.model_validate({**current.model_dump(), **fields})
            self._replace(self._contestants, contestant_id - 1, updated)
            return updated.model_copy()

    def deactivate_all(self) -> int:
        with self._lock:
            count = 0
            for index, contestant in enumerate(self._contestants):
                if contestant.active:
                    self._replace(
                        self._contestants,
                        index,
                        contestant.model_copy(update={"active": False}),
                    )
                    count += 1
            return count

    def top_contestants_by_points(self, limit: int | None = None) -> list[Contestant]:
        with self._lock:
            ranked = sorted(self._contestants, key=lambda c: (-c.ranking_points, c.id))
            return [c.model_copy() for c in ranked[:limit]]

    def top_contestants_by_tournament_points(
        self, limit: int | None = None
    ) -> list[Contestant]:
        with self._lock:
            ranked = sorted(
                self._contestants, key=lambda c: (-c.tournament_points, c.id)
            )
            return [c.model_copy() for c in ranked[:limit]]

    # ------------------------------------------------------------------
    # Tournaments
    # ------------------------------------------------------------------

    def create_tournament(self, tournament: Tournament) -> Tournament:
        with self._lock:
            stored = tournament.model_copy(update={"id": len(self._tournaments) + 1})
            self._append(self._tournaments, stored)
            return stored.model_copy()

    def get_tournament(self, tournament_id: int) -> Tournament | None:
        with self._lock:
            tournament = self._at(self._tournaments, tournament_id)
            return tournament.model_copy() if tournament else None

    def get_current_tournament(self) -> Tournament | None:
        with self._lock:
            for tournament in reversed(self._tournaments):
                if not tournament.completed:
                    return tournament.model_copy()
            return None

    def get_latest_tournament(self) -> Tournament | None:
        with self._lock:
            return self._tournaments[-1].model_copy() if self._tournaments else None

    def list_tournaments(self) -> list[Tournament]:
        with self._lock:
            return [t.model_copy() for t in reversed(self._tournaments)]

    def update_tournament(self, tournament_id: int, **fields: Any) -> Tournament:
        self._check_fields(fields, TOURNAMENT_UPDATE_FIELDS)
        with self._lock:
            current = self._at(self._tournaments, tournament_id)
            if current is None:
                raise TournamentNotFoundError(tournament_id)
            updated = current.model_copy(update=fields)
            self._replace(self._tournaments, tournament_id - 1, updated)
            return updated.model_copy()

    # ------------------------------------------------------------------
    # Matches
    # ------------------------------------------------------------------

    def create_match(self, match: Match) -> Match:
        with self._lock:
            stored = match.model_copy(update={"id": len(self._matches) + 1})
            position = self._append(self._matches, stored)
            self._append(
                self._round_index[(match.tournament_id, match.round_number)], position
            )
            return stored.model_copy()

    def get_match(self, match_id: int) -> Match | None:
        with self._lock:
            match = self._at(self._matches, match_id)
            return match.model_copy() if match else None

    def get_matches(
        self, tournament_id: int, round_number: int | None = None
    ) -> list[Match]:
        with self._lock:
            if round_number is not None:
                positions = self._round_index.get((tournament_id, round_number), [])
                found = [self._matches[p] for p in positions]
            else:
                found = [m for m in self._matches if m.tournament_id == tournament_id]
            found.sort(key=lambda m: (m.round_number, m.match_number))
            return [m.model_copy() for m in found]

    def decide_match(self, match_id: int, winner_id: int) -> bool:
        with self._lock:
            match = self._at(self._matches, match_id)
            if match is None or match.completed:
                return False
            if winner_id not in (match.contestant1_id, match.contestant2_id):
                return False
            self._replace(
                self._matches,
                match_id - 1,
                Match.model_validate(
                    {**match.model_dump(), "winner_id": winner_id, "completed": True}
                ),
            )
            return True

    # ------------------------------------------------------------------
    # Point history
    # ------------------------------------------------------------------

    def create_point_history(self, entry: PointHistory) -> PointHistory:
        with self._lock:
            stored = entry.model_copy(update={"id": len(self._history) + 1})
            position = self._append(self._history, stored)
            self._append(self._history_index[entry.contestant_id], position)
            return stored.model_copy()

    def get_point_history(
        self, contestant_id: int, limit: int | None = None
    ) -> list[PointHistory]:
        with self._lock:
            positions = self._history_index.get(contestant_id, [])
            newest_first = [self._history[p] for p in reversed(positions)]
            return [h.model_copy() for h in newest_first[:limit]]

    # ------------------------------------------------------------------
    # Placement awards
    # ------------------------------------------------------------------

    def create_placement_award(self, award: PlacementAward) -> PlacementAward:
        with self._lock:
            key = (award.tournament_id, award.contestant_id)
            if key in self._award_index:
                raise ValueError(
                    f"Contestant {award.contestant_id} already placed in "
                    f"tournament {award.tournament_id}"
                )
            stored = award.model_copy(update={"id": len(self._awards) + 1})
            self._award_index[key] = self._append(self._awards, stored)
            self._record(lambda: self._award_index.pop(key))
            return stored.model_copy()

    def get_placement_award(
        self, tournament_id: int, contestant_id: int
    ) -> PlacementAward | None:
        with self._lock:
            position = self._award_index.get((tournament_id, contestant_id))
            return self._awards[position].model_copy() if position is not None else None

    def get_placement_awards(self, tournament_id: int) -> list[PlacementAward]:
        with self._lock:
            return [
                a.model_copy() for a in self._awards if a.tournament_id == tournament_id
            ]
