from __future__ import annotations

import pytest

from doubles_league.repository import LeagueRepository


@pytest.fixture
def repository(tmp_path) -> LeagueRepository:
    repo = LeagueRepository(str(tmp_path / "league.db"))
    repo.initialize_schema()
    return repo


@pytest.fixture
def tournament(repository):
    return repository.create_tournament("Spring Doubles")


@pytest.fixture
def teams(repository, tournament):
    return [repository.create_team(tournament.id, name) for name in ("Aces", "Blocks", "Cuts", "Drops")]
