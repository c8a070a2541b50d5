"""Tournament database operations."""

import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator, List

from .exceptions import ContestantNotFoundError, TournamentNotFoundError
from .models import (
    Contestant,
    Match,
    Placement,
    PlacementAward,
    PointHistory,
    Tournament,
)
from .repository import (
    CONTESTANT_UPDATE_FIELDS,
    TOURNAMENT_UPDATE_FIELDS,
    TournamentRepository,
)

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS contestants (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    nationality TEXT,
    ranking_points INTEGER NOT NULL DEFAULT 1000 CHECK (ranking_points >= 0),
    tournament_points INTEGER NOT NULL DEFAULT 0,
    matches_played INTEGER NOT NULL DEFAULT 0,
    wins INTEGER NOT NULL DEFAULT 0,
    losses INTEGER NOT NULL DEFAULT 0,
    gold_medals INTEGER NOT NULL DEFAULT 0,
    silver_medals INTEGER NOT NULL DEFAULT 0,
    bronze_medals INTEGER NOT NULL DEFAULT 0,
    active INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS tournaments (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    started_at TEXT NOT NULL,
    ended_at TEXT,
    completed INTEGER NOT NULL DEFAULT 0,
    current_round INTEGER NOT NULL DEFAULT 1,
    current_match INTEGER NOT NULL DEFAULT 1,
    champion_id INTEGER REFERENCES contestants (id),
    runner_up_id INTEGER REFERENCES contestants (id),
    third_place_id INTEGER REFERENCES contestants (id)
);

CREATE TABLE IF NOT EXISTS matches (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    tournament_id INTEGER NOT NULL REFERENCES tournaments (id),
    round_number INTEGER NOT NULL,
    match_number INTEGER NOT NULL,
    contestant1_id INTEGER NOT NULL REFERENCES contestants (id),
    contestant2_id INTEGER NOT NULL REFERENCES contestants (id),
    winner_id INTEGER REFERENCES contestants (id),
    completed INTEGER NOT NULL DEFAULT 0,
    UNIQUE (tournament_id, round_number, match_number)
);

CREATE TABLE IF NOT EXISTS point_history (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    contestant_id INTEGER NOT NULL REFERENCES contestants (id),
    tournament_id INTEGER NOT NULL REFERENCES tournaments (id),
    match_id INTEGER REFERENCES matches (id),
    points_before INTEGER NOT NULL,
    points_change INTEGER NOT NULL,
    points_after INTEGER NOT NULL,
    reason TEXT,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS placement_awards (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    tournament_id INTEGER NOT NULL REFERENCES tournaments (id),
    contestant_id INTEGER NOT NULL REFERENCES contestants (id),
    placement TEXT NOT NULL,
    points INTEGER NOT NULL,
    awarded_at TEXT NOT NULL,
    UNIQUE (tournament_id, contestant_id)
);

CREATE INDEX IF NOT EXISTS idx_matches_round
    ON matches (tournament_id, round_number, match_number);
CREATE INDEX IF NOT EXISTS idx_point_history_contestant
    ON point_history (contestant_id, id);
"""


def _timestamp(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


class TournamentDatabaseManager(TournamentRepository):
    """Manages SQLite database operations for contestants and tournaments.

    Outside a transaction every call opens its own autocommit connection.
    ``transaction()`` pins one connection to the calling thread and runs a
    ``BEGIN IMMEDIATE`` write transaction on it, so concurrent writers
    (threads or processes) queue on SQLite's reserved lock.
    """

    def __init__(self, db_path: str = "tournaments.db", timeout: float = 30.0):
        self.db_path = Path(db_path)
        self.timeout = timeout
        self._local = threading.local()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_database()

    def _init_database(self) -> None:
        """Initialize the database with required tables."""
        with self._get_connection() as conn:
            conn.executescript(SCHEMA)
        logger.info(f"Tournament database ready at {self.db_path}")

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(
            self.db_path, timeout=self.timeout, isolation_level=None
        )
        conn.row_factory = sqlite3.Row  # Enable column access by name
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def _get_connection(self) -> Iterator[sqlite3.Connection]:
        """Get the thread's transaction connection or a fresh autocommit one."""
        pinned = getattr(self._local, "conn", None)
        if pinned is not None:
            yield pinned
            return

        conn = None
        try:
            conn = self._connect()
            yield conn
        except sqlite3.Error as e:
            logger.error(f"Tournament database error: {e}")
            raise
        finally:
            if conn:
                conn.close()

    @contextmanager
    def transaction(self) -> Iterator[None]:
        if getattr(self._local, "conn", None) is not None:
            yield
            return

        conn = self._connect()
        try:
            conn.execute("BEGIN IMMEDIATE")
            self._local.conn = conn
            try:
                yield
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")
        except sqlite3.Error as e:
            logger.error(f"Tournament transaction failed: {e}")
            raise
        finally:
            self._local.conn = None
            conn.close()

    # ------------------------------------------------------------------
    # Row mapping
    # ------------------------------------------------------------------

    @staticmethod
    def _contestant(row: sqlite3.Row) -> Contestant:
        return Contestant(
            id=row["id"],
            name=row["name"],
            nationality=row["nationality"],
            ranking_points=row["ranking_points"],
            tournament_points=row["tournament_points"],
            matches_played=row["matches_played"],
            wins=row["wins"],
            losses=row["losses"],
            gold_medals=row["gold_medals"],
            silver_medals=row["silver_medals"],
            bronze_medals=row["bronze_medals"],
            active=bool(row["active"]),
        )

    @staticmethod
    def _tournament(row: sqlite3.Row) -> Tournament:
        return Tournament(
            id=row["id"],
            started_at=row["started_at"],
            ended_at=row["ended_at"],
            completed=bool(row["completed"]),
            current_round=row["current_round"],
            current_match=row["current_match"],
            champion_id=row["champion_id"],
            runner_up_id=row["runner_up_id"],
            third_place_id=row["third_place_id"],
        )

    @staticmethod
    def _match(row: sqlite3.Row) -> Match:
        return Match(
            id=row["id"],
            tournament_id=row["tournament_id"],
            round_number=row["round_number"],
            match_number=row["match_number"],
            contestant1_id=row["contestant1_id"],
            contestant2_id=row["contestant2_id"],
            winner_id=row["winner_id"],
            completed=bool(row["completed"]),
        )

    @staticmethod
    def _point_history(row: sqlite3.Row) -> PointHistory:
        return PointHistory(
            id=row["id"],
            contestant_id=row["contestant_id"],
            tournament_id=row["tournament_id"],
            match_id=row["match_id"],
            points_before=row["points_before"],
            points_change=row["points_change"],
            points_after=row["points_after"],
            reason=row["reason"],
            created_at=row["created_at"],
        )

    @staticmethod
    def _placement_award(row: sqlite3.Row) -> PlacementAward:
        return PlacementAward(
            id=row["id"],
            tournament_id=row["tournament_id"],
            contestant_id=row["contestant_id"],
            placement=Placement(row["placement"]),
            points=row["points"],
            awarded_at=row["awarded_at"],
        )

    def _insert(self, query: str, params: tuple) -> int:
        with self._get_connection() as conn:
            cursor = conn.execute(query, params)
            row_id = cursor.lastrowid
            if row_id is None:
                raise RuntimeError("Failed to get row ID from database")
            return row_id

    def _fetch_one(self, query: str, params: tuple = ()) -> sqlite3.Row | None:
        with self._get_connection() as conn:
            return conn.execute(query, params).fetchone()

    def _fetch_all(self, query: str, params: tuple = ()) -> List[sqlite3.Row]:
        with self._get_connection() as conn:
            return conn.execute(query, params).fetchall()

    def _update(self, table: str, record_id: int, fields: dict[str, Any]) -> bool:
        # Build dynamic update query
        set_clauses = []
        params: List[Any] = []
        for column, value in fields.items():
            set_clauses.append(f"{column} = ?")
            params.append(_timestamp(value) if isinstance(value, datetime) else value)
        params.append(record_id)

        query = f"""
            UPDATE {table}
            SET {', '.join(set_clauses)}
            WHERE id = ?
        """
        with self._get_connection() as conn:
            cursor = conn.execute(query, params)
            return cursor.rowcount > 0

    # ------------------------------------------------------------------
    # Contestants
    # ------------------------------------------------------------------

    def create_contestant(self, contestant: Contestant) -> Contestant:
        contestant_id = self._insert(
            """
            INSERT INTO contestants (
                name, nationality, ranking_points, tournament_points,
                matches_played, wins, losses, gold_medals, silver_medals,
                bronze_medals, active
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                contestant.name,
                contestant.nationality,
                contestant.ranking_points,
                contestant.tournament_points,
                contestant.matches_played,
                contestant.wins,
                contestant.losses,
                contestant.gold_medals,
                contestant.silver_medals,
                contestant.bronze_medals,
                int(contestant.active),
            ),
        )
        return contestant.model_copy(update={"id": contestant_id})

    def get_contestant(self, contestant_id: int) -> Contestant | None:
        row = self._fetch_one("SELECT * FROM contestants WHERE id = ?", (contestant_id,))
        return self._contestant(row) if row else None

    def list_contestants(self) -> list[Contestant]:
        rows = self._fetch_all("SELECT * FROM contestants ORDER BY id")
        return [self._contestant(row) for row in rows]

    def list_active_contestants(self) -> list[Contestant]:
        rows = self._fetch_all(
            "SELECT * FROM contestants WHERE active = 1 ORDER BY id"
        )
        return [self._contestant(row) for row in rows]

    def update_contestant(self, contestant_id: int, **fields: Any) -> Contestant:
        self._check_fields(fields, CONTESTANT_UPDATE_FIELDS)
        if "active" in fields:
            fields["active"] = int(fields["active"])
        if fields and not self._update("contestants", contestant_id, fields):
            raise ContestantNotFoundError(contestant_id)
        contestant = self.get_contestant(contestant_id)
        if contestant is None:
            raise ContestantNotFoundError(contestant_id)
        return contestant

    def deactivate_all(self) -> int:
        with self._get_connection() as conn:
            cursor = conn.execute("UPDATE contestants SET active = 0 WHERE active = 1")
            return cursor.rowcount

    def top_contestants_by_points(self, limit: int | None = None) -> list[Contestant]:
        rows = self._fetch_all(
            "SELECT * FROM contestants ORDER BY ranking_points DESC, id LIMIT ?",
            (limit if limit is not None else -1,),
        )
        return [self._contestant(row) for row in rows]

    def top_contestants_by_tournament_points(
        self, limit: int | None = None
    ) -> list[Contestant]:
        rows = self._fetch_all(
            "SELECT * FROM contestants ORDER BY tournament_points DESC, id LIMIT ?",
            (limit if limit is not None else -1,),
        )
        return [self._contestant(row) for row in rows]

    # ------------------------------------------------------------------
    # Tournaments
    # ------------------------------------------------------------------

    def create_tournament(self, tournament: Tournament) -> Tournament:
        tournament_id = self._insert(
            """
            INSERT INTO tournaments (
                started_at, ended_at, completed, current_round, current_match,
                champion_id, runner_up_id, third_place_id
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                _timestamp(tournament.started_at),
                _timestamp(tournament.ended_at),
                int(tournament.completed),
                tournament.current_round,
                tournament.current_match,
                tournament.champion_id,
                tournament.runner_up_id,
                tournament.third_place_id,
            ),
        )
        logger.info(f"Created tournament {tournament_id}")
        return tournament.model_copy(update={"id": tournament_id})

    def get_tournament(self, tournament_id: int) -> Tournament | None:
        """Get tournament by ID."""
        row = self._fetch_one("SELECT * FROM tournaments WHERE id = ?", (tournament_id,))
        return self._tournament(row) if row else None

    def get_current_tournament(self) -> Tournament | None:
        row = self._fetch_one(
            "SELECT * FROM tournaments WHERE completed = 0 ORDER BY id DESC LIMIT 1"
        )
        return self._tournament(row) if row else None

    def get_latest_tournament(self) -> Tournament | None:
        row = self._fetch_one("SELECT * FROM tournaments ORDER BY id DESC LIMIT 1")
        return self._tournament(row) if row else None

    def list_tournaments(self) -> list[Tournament]:
        rows = self._fetch_all("SELECT * FROM tournaments ORDER BY id DESC")
        return [self._tournament(row) for row in rows]

    def update_tournament(self, tournament_id: int, **fields: Any) -> Tournament:
        """Update tournament fields."""
        self._check_fields(fields, TOURNAMENT_UPDATE_FIELDS)
        if "completed" in fields:
            fields["completed"] = int(fields["completed"])
        if fields and not self._update("tournaments", tournament_id, fields):
            raise TournamentNotFoundError(tournament_id)
        tournament = self.get_tournament(tournament_id)
        if tournament is None:
            raise TournamentNotFoundError(tournament_id)
        return tournament

    # ------------------------------------------------------------------
    # Matches
    # ------------------------------------------------------------------

    def create_match(self, match: Match) -> Match:
        """Add match to tournament."""
        match_id = self._insert(
            """
            INSERT INTO matches (
                tournament_id, round_number, match_number, contestant1_id,
                contestant2_id, winner_id, completed
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                match.tournament_id,
                match.round_number,
                match.match_number,
                match.contestant1_id,
                match.contestant2_id,
                match.winner_id,
                int(match.completed),
            ),
        )
        return match.model_copy(update={"id": match_id})

    def get_match(self, match_id: int) -> Match | None:
        row = self._fetch_one("SELECT * FROM matches WHERE id = ?", (match_id,))
        return self._match(row) if row else None

    def get_matches(
        self, tournament_id: int, round_number: int | None = None
    ) -> List[Match]:
        """Get matches for tournament, optionally filtered by round."""
        if round_number is not None:
            rows = self._fetch_all(
                """
                SELECT * FROM matches
                WHERE tournament_id = ? AND round_number = ?
                ORDER BY match_number
                """,
                (tournament_id, round_number),
            )
        else:
            rows = self._fetch_all(
                """
                SELECT * FROM matches
                WHERE tournament_id = ?
                ORDER BY round_number, match_number
                """,
                (tournament_id,),
            )
        return [self._match(row) for row in rows]

    def get_match_by_number(
        self, tournament_id: int, round_number: int, match_number: int
    ) -> Match | None:
        row = self._fetch_one(
            """
            SELECT * FROM matches
            WHERE tournament_id = ? AND round_number = ? AND match_number = ?
            """,
            (tournament_id, round_number, match_number),
        )
        return self._match(row) if row else None

    def decide_match(self, match_id: int, winner_id: int) -> bool:
        with self._get_connection() as conn:
            cursor = conn.execute(
                """
                UPDATE matches
                SET winner_id = ?, completed = 1
                WHERE id = ? AND completed = 0
                  AND ? IN (contestant1_id, contestant2_id)
                """,
                (winner_id, match_id, winner_id),
            )
            decided = cursor.rowcount > 0

        if decided:
            logger.info(f"Recorded winner {winner_id} for match {match_id}")
        return decided

    # ------------------------------------------------------------------
    # Point history
    # ------------------------------------------------------------------

    def create_point_history(self, entry: PointHistory) -> PointHistory:
        entry_id = self._insert(
            """
            INSERT INTO point_history (
                contestant_id, tournament_id, match_id, points_before,
                points_change, points_after, reason, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                entry.contestant_id,
                entry.tournament_id,
                entry.match_id,
                entry.points_before,
                entry.points_change,
                entry.points_after,
                entry.reason,
                _timestamp(entry.created_at),
            ),
        )
        return entry.model_copy(update={"id": entry_id})

    def get_point_history(
        self, contestant_id: int, limit: int | None = None
    ) -> list[PointHistory]:
        rows = self._fetch_all(
            """
            SELECT * FROM point_history
            WHERE contestant_id = ?
            ORDER BY id DESC
            LIMIT ?
            """,
            (contestant_id, limit if limit is not None else -1),
        )
        return [self._point_history(row) for row in rows]

    # ------------------------------------------------------------------
    # Placement awards
    # ------------------------------------------------------------------

    def create_placement_award(self, award: PlacementAward) -> PlacementAward:
        try:
            award_id = self._insert(
                """
                INSERT INTO placement_awards (
                    tournament_id, contestant_id, placement, points, awarded_at
                ) VALUES (?, ?, ?, ?, ?)
                """,
                (
                    award.tournament_id,
                    award.contestant_id,
                    award.placement.value,
                    award.points,
                    _timestamp(award.awarded_at),
                ),
            )
        except sqlite3.IntegrityError as e:
            raise ValueError(
                f"Contestant {award.contestant_id} already placed in "
                f"tournament {award.tournament_id}"
            ) from e
        return award.model_copy(update={"id": award_id})

    def get_placement_award(
        self, tournament_id: int, contestant_id: int
    ) -> PlacementAward | None:
        row = self._fetch_one(
            """
            SELECT * FROM placement_awards
            WHERE tournament_id = ? AND contestant_id = ?
            """,
            (tournament_id, contestant_id),
        )
        return self._placement_award(row) if row else None

    def get_placement_awards(self, tournament_id: int) -> list[PlacementAward]:
        rows = self._fetch_all(
            "SELECT * FROM placement_awards WHERE tournament_id = ? ORDER BY id",
            (tournament_id,),
        )
        return [self._placement_award(row) for row in rows]
