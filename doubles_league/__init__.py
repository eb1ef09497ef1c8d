"""doubles_league package exposing the scheduling and standings engine."""

from .errors import (
    DuplicateTeam,
    InsufficientTeams,
    InvalidCapacity,
    InvalidDate,
    InvalidMatch,
    InvalidResult,
    LeagueError,
    NoValidDayFound,
    NotFound,
    SlugConflict,
    ZeroCapacity,
)
from .models import (
    CapacityProfile,
    Match,
    MatchResult,
    MatchType,
    ScheduledMatch,
    Standing,
    Team,
    Tournament,
)
from .pairing import generate_schedule
from .repository import LeagueRepository, ResultUpdate
from .scheduling import assign_dates
from .standings import compute_standings

__all__ = [
    "CapacityProfile",
    "DuplicateTeam",
    "InsufficientTeams",
    "InvalidCapacity",
    "InvalidDate",
    "InvalidMatch",
    "InvalidResult",
    "LeagueError",
    "LeagueRepository",
    "Match",
    "MatchResult",
    "MatchType",
    "NoValidDayFound",
    "NotFound",
    "ResultUpdate",
    "ScheduledMatch",
    "SlugConflict",
    "Standing",
    "Team",
    "Tournament",
    "ZeroCapacity",
    "assign_dates",
    "compute_standings",
    "generate_schedule",
]
