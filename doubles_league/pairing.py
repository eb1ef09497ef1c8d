"""Round-robin pairing using the circle method."""

from __future__ import annotations

from typing import List, Optional, Sequence

from .errors import DuplicateTeam, InsufficientTeams
from .models import Round

# Odd fields are padded with this sentinel; pairs touching it are dropped.
BYE: Optional[str] = None


def generate_schedule(team_ids: Sequence[str]) -> List[Round]:
    """Return round-robin rounds for ``team_ids``.

    The first team stays fixed while the others rotate around a ring. Each
    round pairs position ``i`` with position ``n - 1 - i``; after a round the
    last ring token moves to the slot right after the fixed team. ``n - 1``
    rounds are produced and every pair of real teams meets exactly once. The
    output depends only on the input order.
    """

    tokens: List[Optional[str]] = list(team_ids)
    if len(tokens) < 2:
        raise InsufficientTeams(len(tokens))

    seen = set()
    for team_id in tokens:
        if team_id in seen:
            raise DuplicateTeam(team_id)
        seen.add(team_id)

    if len(tokens) % 2:
        tokens.append(BYE)

    n = len(tokens)
    anchor = tokens[0]
    ring = tokens[1:]
    ring_size = n - 1

    def at(position: int, offset: int) -> Optional[str]:
        if position == 0:
            return anchor
        return ring[(position - 1 - offset) % ring_size]

    rounds: List[Round] = []
    for offset in range(ring_size):
        pairs: Round = []
        for i in range(n // 2):
            home = at(i, offset)
            away = at(n - 1 - i, offset)
            if home is BYE or away is BYE:
                continue
            pairs.append((home, away))
        rounds.append(pairs)

    return rounds


__all__ = ["BYE", "generate_schedule"]
