"""Knockout tournament engine with ranking economy and roster rotation."""

from .manager import TournamentManager
from .database import TournamentDatabaseManager
from .memory_store import InMemoryTournamentRepository
from .repository import TournamentRepository
from .resolver import MatchResolver
from .rotation import ContinuityRotation
from .roster import RosterService
from .images import ImageProvider, NoImageProvider, StaticImageProvider
from .api import TournamentAPI
from .exceptions import (
    TournamentError,
    NotFoundError,
    MatchNotFoundError,
    TournamentNotFoundError,
    ContestantNotFoundError,
    AlreadyDecidedError,
    TournamentClosedError,
    InvalidWinnerError,
    DuplicateContestantError,
    IntegrityViolationError,
    InsufficientRosterError,
)
from .models import (
    Contestant,
    Tournament,
    Match,
    MatchStatus,
    Placement,
    PointHistory,
    PlacementAward,
    SelectWinnerResult,
    CurrentMatchView,
    BracketView,
    ProgressView,
)

__all__ = [
    "TournamentManager",
    "TournamentDatabaseManager",
    "InMemoryTournamentRepository",
    "TournamentRepository",
    "MatchResolver",
    "ContinuityRotation",
    "RosterService",
    "ImageProvider",
    "NoImageProvider",
    "StaticImageProvider",
    "TournamentAPI",
    "TournamentError",
    "NotFoundError",
    "MatchNotFoundError",
    "TournamentNotFoundError",
    "ContestantNotFoundError",
    "AlreadyDecidedError",
    "TournamentClosedError",
    "InvalidWinnerError",
    "DuplicateContestantError",
    "IntegrityViolationError",
    "InsufficientRosterError",
    "Contestant",
    "Tournament",
    "Match",
    "MatchStatus",
    "Placement",
    "PointHistory",
    "PlacementAward",
    "SelectWinnerResult",
    "CurrentMatchView",
    "BracketView",
    "ProgressView",
]
