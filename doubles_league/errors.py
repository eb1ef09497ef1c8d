"""Error types raised by the scheduling and standings engine."""

from __future__ import annotations

from datetime import date


class LeagueError(Exception):
    """Base class for every error raised by doubles_league."""


class InsufficientTeams(LeagueError):
    """Fewer than two teams were supplied for pairing."""

    def __init__(self, count: int) -> None:
        self.count = count
        super().__init__(f"At least 2 teams are required to generate matches, got {count}")


class DuplicateTeam(LeagueError):
    """The same team id was supplied more than once."""

    def __init__(self, team_id: str) -> None:
        self.team_id = team_id
        super().__init__(f"Team {team_id!r} appears more than once")


class InvalidCapacity(LeagueError):
    """A capacity profile entry is malformed."""


class ZeroCapacity(LeagueError):
    """Every weekday in the capacity profile maps to zero."""

    def __init__(self) -> None:
        super().__init__("Weekly capacity is zero for all days, cannot schedule matches")


class NoValidDayFound(LeagueError):
    """No day with free capacity exists within the search window."""

    def __init__(self, after: date, limit: int) -> None:
        self.after = after
        self.limit = limit
        super().__init__(f"Unable to find a valid day within {limit} days after {after.isoformat()}")


class InvalidDate(LeagueError):
    """A date string is not a valid ``YYYY-MM-DD`` calendar date."""

    def __init__(self, value: object) -> None:
        self.value = value
        super().__init__(f"Invalid date {value!r}, expected YYYY-MM-DD")


class InvalidMatch(LeagueError):
    """A match pairs a team with itself or with a team from another tournament."""


class InvalidResult(LeagueError):
    """A match result names a winner who did not play in the match."""


class SlugConflict(LeagueError):
    """A unique slug could not be generated within the attempt budget."""

    def __init__(self, base_slug: str, attempts: int) -> None:
        self.base_slug = base_slug
        self.attempts = attempts
        super().__init__(
            f"Failed to generate unique slug for {base_slug!r} after {attempts} attempts"
        )


class NotFound(LeagueError):
    """A referenced record does not exist."""

    def __init__(self, kind: str, identifier: object) -> None:
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} not found: {identifier}")


__all__ = [
    "DuplicateTeam",
    "InsufficientTeams",
    "InvalidCapacity",
    "InvalidDate",
    "InvalidMatch",
    "InvalidResult",
    "LeagueError",
    "NoValidDayFound",
    "NotFound",
    "SlugConflict",
    "ZeroCapacity",
]
