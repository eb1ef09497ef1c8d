"""Domain models for the doubles_league project.

The scheduling and standings engine only works with the plain value objects
below. They carry no storage concerns so the SQLite repository and the HTTP
layer can both build them from their own representations.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Dict, List, Mapping, Optional, Tuple, Union

from .errors import InvalidCapacity

Pairing = Tuple[str, str]
Round = List[Pairing]

WEEKDAYS = range(7)  # 0=Sunday .. 6=Saturday
POINTS_PER_WIN = 3


def weekday_ordinal(day: date) -> int:
    """Return the weekday of ``day`` counted from Sunday (0) to Saturday (6)."""

    return day.isoweekday() % 7


class MatchType(Enum):
    """Kinds of match stored for a tournament."""

    ROUND_ROBIN = "ROUNDROBIN"
    SEMIFINAL = "SEMIFINAL"
    FINAL = "FINAL"


@dataclass(frozen=True)
class Tournament:
    """A tournament grouping teams and their matches."""

    id: str
    name: str
    slug: str
    starts_on: Optional[date] = None
    ends_on: Optional[date] = None
    is_active: bool = True
    is_finalized: bool = False
    created_at: datetime = field(default_factory=datetime.utcnow)


@dataclass(frozen=True)
class Team:
    """A doubles pair entered into a tournament."""

    id: str
    name: str
    tournament_id: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.utcnow)


@dataclass(frozen=True)
class CapacityProfile:
    """Maximum number of matches playable on each weekday.

    Weekdays are keyed 0 (Sunday) to 6 (Saturday); a missing weekday has no
    capacity. Malformed entries raise :class:`InvalidCapacity` rather than
    being clamped.
    """

    slots: Mapping[int, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        cleaned: Dict[int, int] = {}
        for weekday, capacity in self.slots.items():
            if isinstance(weekday, bool) or not isinstance(weekday, int) or weekday not in WEEKDAYS:
                raise InvalidCapacity(f"Weekday must be an integer from 0 to 6, got {weekday!r}")
            if isinstance(capacity, bool) or not isinstance(capacity, int):
                raise InvalidCapacity(f"Capacity for weekday {weekday} must be an integer, got {capacity!r}")
            if capacity < 0:
                raise InvalidCapacity(f"Capacity for weekday {weekday} must not be negative, got {capacity}")
            cleaned[weekday] = capacity
        object.__setattr__(self, "slots", cleaned)

    @classmethod
    def coerce(cls, value: Union[CapacityProfile, Mapping[int, int]]) -> CapacityProfile:
        """Return ``value`` as a validated profile, reusing existing profiles."""

        if isinstance(value, cls):
            return value
        return cls(dict(value))

    def for_weekday(self, weekday: int) -> int:
        """Capacity for a Sunday-based weekday ordinal, 0 when unset."""

        return self.slots.get(weekday, 0)

    def for_date(self, day: date) -> int:
        """Capacity of the weekday ``day`` falls on."""

        return self.for_weekday(weekday_ordinal(day))

    @property
    def total(self) -> int:
        """Matches playable over a whole week."""

        return sum(self.slots.values())


@dataclass(frozen=True)
class ScheduledMatch:
    """A pairing placed on a calendar date, not yet persisted."""

    team1_id: str
    team2_id: str
    play_date: date
    team1_points: int = 0
    team2_points: int = 0
    match_type: MatchType = MatchType.ROUND_ROBIN


@dataclass(frozen=True)
class MatchResult:
    """Score line of a match as read by the standings calculator."""

    team1_id: str
    team2_id: str
    team1_points: int = 0
    team2_points: int = 0
    winner_id: Optional[str] = None

    def involves(self, team_id: str) -> bool:
        """Whether ``team_id`` played on either side."""

        return team_id in (self.team1_id, self.team2_id)

    def score_for(self, team_id: str) -> Tuple[int, int]:
        """Return ``(scored, conceded)`` from the point of view of ``team_id``."""

        if team_id == self.team1_id:
            return self.team1_points, self.team2_points
        if team_id == self.team2_id:
            return self.team2_points, self.team1_points
        raise ValueError(f"Team {team_id!r} did not play in this match")


@dataclass(frozen=True)
class Match:
    """A stored match record belonging to a tournament."""

    id: str
    tournament_id: str
    team1_id: str
    team2_id: str
    play_date: date
    team1_points: int = 0
    team2_points: int = 0
    winner_id: Optional[str] = None
    match_type: MatchType = MatchType.ROUND_ROBIN
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)

    def to_result(self) -> MatchResult:
        return MatchResult(
            team1_id=self.team1_id,
            team2_id=self.team2_id,
            team1_points=self.team1_points,
            team2_points=self.team2_points,
            winner_id=self.winner_id,
        )


@dataclass
class Standing:
    """Aggregate statistics for a team, derived from its match results."""

    team_id: str
    team_name: str
    wins: int = 0
    losses: int = 0
    points_for: int = 0
    points_against: int = 0

    def record_match(self, match: MatchResult) -> None:
        """Update the standing with a match the team took part in."""

        scored, conceded = match.score_for(self.team_id)
        self.points_for += scored
        self.points_against += conceded

        if match.winner_id == self.team_id:
            self.wins += 1
        elif match.winner_id is not None:
            self.losses += 1

    @property
    def win_pct(self) -> float:
        games = self.wins + self.losses
        if games == 0:
            return 0.0
        pct = Decimal(self.wins / games).quantize(Decimal("0.001"), rounding=ROUND_HALF_UP)
        return float(pct)

    @property
    def point_diff(self) -> int:
        return self.points_for - self.points_against

    @property
    def ranking_points(self) -> int:
        return self.wins * POINTS_PER_WIN

    def sort_key(self) -> Tuple[int, int, int, int]:
        return (-self.ranking_points, -self.point_diff, -self.points_for, self.points_against)


__all__ = [
    "CapacityProfile",
    "Match",
    "MatchResult",
    "MatchType",
    "POINTS_PER_WIN",
    "Pairing",
    "Round",
    "ScheduledMatch",
    "Standing",
    "Team",
    "Tournament",
    "weekday_ordinal",
]
