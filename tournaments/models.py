"""Tournament system data models."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, model_validator

FIELD_SIZE = 64  # Contestants per tournament
FIRST_ROUND_MATCHES = FIELD_SIZE // 2
SEMIFINAL_ROUND = 5
FINAL_ROUND = 6  # Bronze match + final
BRONZE_MATCH_NUMBER = 1
FINAL_MATCH_NUMBER = 2
TOTAL_MATCHES = 64  # 32 + 16 + 8 + 4 + 2 + 2
STARTING_POINTS = 1000

ROUND_NAMES = {
    1: "Round of 64",
    2: "Round of 32",
    3: "Round of 16",
    4: "Quarter-Finals",
    5: "Semi-Finals",
}
BRONZE_MATCH_NAME = "Bronze Match"
FINAL_MATCH_NAME = "Final"
COMPLETED_NAME = "Completed"


def round_name(round_number: int, match_number: int | None = None) -> str:
    """Human label for a round, splitting round 6 into bronze match and final."""
    if round_number == FINAL_ROUND:
        if match_number == BRONZE_MATCH_NUMBER:
            return BRONZE_MATCH_NAME
        return FINAL_MATCH_NAME
    return ROUND_NAMES.get(round_number, f"Round {round_number}")


def matches_in_round(round_number: int) -> int:
    """Number of matches a full bracket holds in the given round."""
    if round_number == FINAL_ROUND:
        return 2
    return FIELD_SIZE // (2**round_number)


class MatchStatus(Enum):
    """Individual match status."""

    PENDING = "pending"
    DECIDED = "decided"


class Placement(Enum):
    """Final standing of a contestant within one tournament."""

    CHAMPION = "champion"  # Gold
    RUNNER_UP = "runner_up"  # Silver
    THIRD = "third"  # Bronze
    FOURTH = "fourth"
    QUARTER_FINALIST = "quarter_finalist"  # Lost in round 4
    ROUND_OF_16 = "round_of_16"  # Lost in round 3
    ROUND_OF_32 = "round_of_32"  # Lost in round 2
    ROUND_OF_64 = "round_of_64"  # Lost in round 1


class Contestant(BaseModel):
    """Persistent roster entry."""

    id: int | None = None
    name: str
    nationality: str | None = None
    ranking_points: int = Field(default=STARTING_POINTS, ge=0)
    tournament_points: int = Field(default=0, ge=0)
    matches_played: int = 0
    wins: int = 0
    losses: int = 0
    gold_medals: int = 0
    silver_medals: int = 0
    bronze_medals: int = 0
    active: bool = False  # In the current tournament's field


class Tournament(BaseModel):
    """One 64-contestant knockout run."""

    id: int | None = None
    started_at: datetime = Field(default_factory=datetime.now)
    ended_at: datetime | None = None
    completed: bool = False
    current_round: int = 1
    current_match: int = 1  # Match number within current_round
    champion_id: int | None = None
    runner_up_id: int | None = None
    third_place_id: int | None = None


class Match(BaseModel):
    """Individual tournament match."""

    id: int | None = None
    tournament_id: int
    round_number: int = Field(ge=1, le=FINAL_ROUND)
    match_number: int = Field(ge=1)
    contestant1_id: int
    contestant2_id: int
    winner_id: int | None = None  # None until decided
    completed: bool = False

    @model_validator(mode="after")
    def check_decision(self) -> "Match":
        if self.completed != (self.winner_id is not None):
            raise ValueError("completed must be set exactly when winner_id is set")
        if self.winner_id is not None and self.winner_id not in (
            self.contestant1_id,
            self.contestant2_id,
        ):
            raise ValueError(
                f"winner {self.winner_id} is not a contestant of this match"
            )
        return self

    @property
    def status(self) -> MatchStatus:
        return MatchStatus.DECIDED if self.completed else MatchStatus.PENDING

    @property
    def loser_id(self) -> int | None:
        if self.winner_id is None:
            return None
        return self.opponent_of(self.winner_id)

    def opponent_of(self, contestant_id: int) -> int:
        if contestant_id == self.contestant1_id:
            return self.contestant2_id
        return self.contestant1_id


class PointHistory(BaseModel):
    """Append-only audit row for one ranking-points change."""

    id: int | None = None
    contestant_id: int
    tournament_id: int
    match_id: int | None = None
    points_before: int
    points_change: int
    points_after: int
    reason: str | None = None
    created_at: datetime = Field(default_factory=datetime.now)


class PlacementAward(BaseModel):
    """Tournament points granted to a contestant for one tournament."""

    id: int | None = None
    tournament_id: int
    contestant_id: int
    placement: Placement
    points: int
    awarded_at: datetime = Field(default_factory=datetime.now)


class DecisionOutcome(BaseModel):
    """What a recorded decision did to the bracket."""

    match: Match
    tournament_id: int
    round_completed: bool = False
    tournament_completed: bool = False
    successor_tournament_id: int | None = None


class SelectWinnerResult(BaseModel):
    """Result returned to callers of select_winner."""

    next_match: Match | None = None
    tournament_changed: bool = False
    tournament_id: int | None = None
    message: str


class ContestantSummary(BaseModel):
    """Contestant identity as shown inside a bracket."""

    id: int
    name: str
    nationality: str | None = None
    ranking_points: int


class CurrentMatchContestant(BaseModel):
    """One side of the match awaiting a decision."""

    id: int
    name: str
    nationality: str | None = None
    ranking_points: int
    rank: int | None = None  # Position in the ranking-points leaderboard
    image_urls: list[str] = Field(default_factory=list)


class CurrentMatchView(BaseModel):
    """Match awaiting a decision, with both contestants resolved."""

    match_id: int
    tournament_id: int
    contestant1: CurrentMatchContestant
    contestant2: CurrentMatchContestant
    round_number: int
    match_number: int
    round_name: str


class BracketMatch(BaseModel):
    """Match entry in a bracket projection."""

    id: int
    round_number: int
    match_number: int
    contestant1: ContestantSummary | None = None
    contestant2: ContestantSummary | None = None
    winner: ContestantSummary | None = None
    completed: bool
    status: MatchStatus


class BracketRound(BaseModel):
    """Labelled group of bracket matches."""

    round_number: int
    name: str
    matches: list[BracketMatch]


class BracketView(BaseModel):
    """Tournament bracket visualization data."""

    tournament: Tournament
    rounds: list[BracketRound]


class ProgressView(BaseModel):
    """How far a tournament has progressed."""

    tournament_id: int
    total_matches: int = TOTAL_MATCHES
    completed_matches: int
    current_round: int
    current_match: int
    round_name: str
    percent_complete: int


class ContestantDetail(BaseModel):
    """Contestant with their most recent point history."""

    contestant: Contestant
    point_history: list[PointHistory]


class TournamentHistoryEntry(BaseModel):
    """Past or current tournament with its podium resolved."""

    tournament: Tournament
    champion: Contestant | None = None
    runner_up: Contestant | None = None
    third_place: Contestant | None = None


class TopPerformersHistory(BaseModel):
    """Leaderboard head and the point history of each entry."""

    top_performers: list[Contestant]
    point_history: dict[int, list[PointHistory]]
