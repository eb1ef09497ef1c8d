"""Place round-robin rounds on calendar dates within weekday capacity."""

from __future__ import annotations

import logging
import re
from collections import Counter, deque
from datetime import date, datetime, timedelta
from typing import Deque, List, Mapping, Sequence, Union

from .errors import InvalidDate, NoValidDayFound, ZeroCapacity
from .models import CapacityProfile, Pairing, Round, ScheduledMatch

logger = logging.getLogger(__name__)

MAX_DAY_SEARCH = 14

_ISO_DAY = re.compile(r"\d{4}-\d{2}-\d{2}")


def parse_play_date(value: Union[date, str]) -> date:
    """Return ``value`` as a calendar date, parsing ``YYYY-MM-DD`` strings."""

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not _ISO_DAY.fullmatch(value):
        raise InvalidDate(value)
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise InvalidDate(value) from exc


def next_open_day(after: date, capacity: CapacityProfile, *, limit: int = MAX_DAY_SEARCH) -> date:
    """Return the first day after ``after`` whose weekday has capacity.

    At most ``limit`` days are inspected; :class:`NoValidDayFound` is raised
    when none of them qualifies.
    """

    for step in range(1, limit + 1):
        candidate = after + timedelta(days=step)
        if capacity.for_date(candidate) > 0:
            return candidate
    raise NoValidDayFound(after, limit)


def assign_dates(
    rounds: Sequence[Round],
    start_date: Union[date, str],
    capacity: Union[CapacityProfile, Mapping[int, int]],
    *,
    max_day_search: int = MAX_DAY_SEARCH,
) -> List[ScheduledMatch]:
    """Assign a play date to every pairing in ``rounds``.

    Rounds are placed in order starting on ``start_date``. A day never holds
    more matches than its weekday capacity, a round only spills onto a later
    day once the current one is full, and the next round may continue on the
    same day while capacity remains.
    """

    profile = CapacityProfile.coerce(capacity)
    if profile.total <= 0:
        raise ZeroCapacity()

    cursor = parse_play_date(start_date)
    booked: Counter = Counter()
    scheduled: List[ScheduledMatch] = []

    for round_pairs in rounds:
        pending: Deque[Pairing] = deque(round_pairs)

        while pending:
            remaining = profile.for_date(cursor) - booked[cursor]
            if remaining <= 0:
                cursor = next_open_day(cursor, profile, limit=max_day_search)
                continue

            for _ in range(min(remaining, len(pending))):
                team1_id, team2_id = pending.popleft()
                scheduled.append(ScheduledMatch(team1_id=team1_id, team2_id=team2_id, play_date=cursor))
                booked[cursor] += 1

            if pending:
                cursor = next_open_day(cursor, profile, limit=max_day_search)

        if booked[cursor] >= profile.for_date(cursor):
            cursor = next_open_day(cursor, profile, limit=max_day_search)

    logger.debug(
        "Assigned %d matches from %d rounds across %d days",
        len(scheduled),
        len(rounds),
        len(booked),
    )
    return scheduled


__all__ = ["MAX_DAY_SEARCH", "assign_dates", "next_open_day", "parse_play_date"]
