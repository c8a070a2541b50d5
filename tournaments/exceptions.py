"""Tournament engine error taxonomy."""


class TournamentError(Exception):
    """Base class for all tournament engine errors."""


class NotFoundError(TournamentError, LookupError):
    """A match, tournament or contestant id does not resolve."""

    kind = "record"

    def __init__(self, record_id: int):
        self.record_id = record_id
        super().__init__(f"{self.kind.capitalize()} {record_id} not found")


class MatchNotFoundError(NotFoundError):
    kind = "match"


class TournamentNotFoundError(NotFoundError):
    kind = "tournament"


class ContestantNotFoundError(NotFoundError):
    kind = "contestant"


class AlreadyDecidedError(TournamentError):
    """The match already has a recorded winner."""

    def __init__(self, match_id: int, message: str | None = None):
        self.match_id = match_id
        super().__init__(
            message or f"Match {match_id} already has a recorded winner"
        )


class TournamentClosedError(AlreadyDecidedError):
    """The match belongs to a tournament that has already been completed."""

    def __init__(self, match_id: int, tournament_id: int):
        self.tournament_id = tournament_id
        super().__init__(
            match_id,
            f"Match {match_id} belongs to completed tournament {tournament_id}",
        )


class InvalidWinnerError(TournamentError, ValueError):
    """The submitted winner is not one of the match's two contestants."""

    def __init__(self, match_id: int, winner_id: int):
        self.match_id = match_id
        self.winner_id = winner_id
        super().__init__(
            f"Contestant {winner_id} is not playing in match {match_id}"
        )


class DuplicateContestantError(TournamentError, ValueError):
    """A contestant with the same name is already on the roster."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Contestant '{name}' is already registered")


class IntegrityViolationError(TournamentError):
    """Stored bracket state contradicts the progression rules.

    Raised when a decided round has a match without a winner, when a round
    the progression expects is missing, or when a match references a
    contestant that does not exist. Never retried.
    """


class InsufficientRosterError(TournamentError):
    """Continuity rotation could not assemble a full field.

    The completed tournament stays completed and no successor is created.
    """

    def __init__(
        self,
        available: int,
        required: int,
        completed_tournament_id: int | None = None,
    ):
        self.available = available
        self.required = required
        self.completed_tournament_id = completed_tournament_id
        super().__init__(
            f"Only {available} eligible contestants available, need {required}"
        )
