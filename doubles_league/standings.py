"""Ranked standings derived from match results."""

from __future__ import annotations

from typing import Iterable, List, Sequence

from .models import MatchResult, Standing, Team


def compute_standings(teams: Sequence[Team], matches: Iterable[MatchResult]) -> List[Standing]:
    """Return one standing per team, best first.

    Teams are ordered by ranking points, point difference and points scored
    (all descending), then by points conceded (ascending). Teams still tied
    keep their input order. Matches referring to unknown teams are ignored.
    """

    results = list(matches)
    standings = []
    for team in teams:
        standing = Standing(team_id=team.id, team_name=team.name)
        for match in results:
            if match.involves(team.id):
                standing.record_match(match)
        standings.append(standing)

    return sorted(standings, key=Standing.sort_key)


__all__ = ["compute_standings"]
