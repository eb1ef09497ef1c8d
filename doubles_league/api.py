"""FastAPI application exposing tournaments, schedules and standings."""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import replace
from datetime import date, datetime
from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .config import Settings, get_settings
from .errors import (
    InvalidCapacity,
    InvalidDate,
    InvalidMatch,
    InvalidResult,
    LeagueError,
    NotFound,
    SlugConflict,
)
from .models import Match, MatchType, Standing, Team, Tournament
from .pairing import generate_schedule
from .repository import LeagueRepository, ResultUpdate
from .scheduling import assign_dates

logger = logging.getLogger(__name__)

app = FastAPI(title="Doubles League API")

_repository = LeagueRepository(get_settings().db_path)


@app.on_event("startup")
def _initialize() -> None:
    logging.basicConfig(level=get_settings().log_level)
    _repository.initialize_schema()


def get_repository() -> LeagueRepository:
    """Provide the repository instance for FastAPI dependencies."""

    return _repository


_ERROR_STATUS = {
    NotFound: status.HTTP_404_NOT_FOUND,
    SlugConflict: status.HTTP_409_CONFLICT,
    InvalidCapacity: status.HTTP_422_UNPROCESSABLE_ENTITY,
    InvalidDate: status.HTTP_422_UNPROCESSABLE_ENTITY,
    InvalidMatch: status.HTTP_422_UNPROCESSABLE_ENTITY,
    InvalidResult: status.HTTP_422_UNPROCESSABLE_ENTITY,
}


@app.exception_handler(LeagueError)
async def _league_error_handler(request: Request, exc: LeagueError) -> JSONResponse:
    status_code = _ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
    logger.warning("%s on %s: %s", type(exc).__name__, request.url.path, exc)
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "error": type(exc).__name__},
    )


class TournamentCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=192)
    starts_on: Optional[date] = None
    ends_on: Optional[date] = None
    is_active: bool = True
    is_finalized: bool = False


class TournamentUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=192)
    starts_on: Optional[date] = None
    ends_on: Optional[date] = None
    is_active: Optional[bool] = None
    is_finalized: Optional[bool] = None


class TournamentResponse(BaseModel):
    id: str
    name: str
    slug: str
    starts_on: Optional[date]
    ends_on: Optional[date]
    is_active: bool
    is_finalized: bool
    created_at: datetime


class TeamCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=192)


class TeamBulkCreate(BaseModel):
    tournament_id: str
    teams: List[TeamCreate]


class TeamResponse(BaseModel):
    id: str
    tournament_id: str
    name: str
    created_at: datetime


class ScheduleRequest(BaseModel):
    tournament_id: str
    start_date: date
    matches_per_day: Dict[int, int]


class MatchResponse(BaseModel):
    id: str
    tournament_id: str
    team1_id: str
    team2_id: str
    team1_points: int
    team2_points: int
    winner_id: Optional[str]
    play_date: date
    match_type: str


class MatchCreate(BaseModel):
    tournament_id: str
    team1_id: str
    team2_id: str
    play_date: date
    match_type: MatchType = MatchType.ROUND_ROBIN
    team1_points: int = Field(0, ge=0)
    team2_points: int = Field(0, ge=0)
    winner_id: Optional[str] = None


class MatchUpdate(BaseModel):
    team1_id: Optional[str] = None
    team2_id: Optional[str] = None
    play_date: Optional[date] = None
    match_type: Optional[MatchType] = None
    team1_points: Optional[int] = Field(None, ge=0)
    team2_points: Optional[int] = Field(None, ge=0)
    winner_id: Optional[str] = None


class MatchResultUpdate(BaseModel):
    id: str
    team1_points: int = Field(0, ge=0)
    team2_points: int = Field(0, ge=0)
    winner_id: Optional[str] = None
    play_date: Optional[date] = None


class StandingResponse(BaseModel):
    team_id: str
    team_name: str
    wins: int
    losses: int
    win_pct: float
    points_for: int
    points_against: int
    point_diff: int
    ranking_points: int


def _tournament_to_response(tournament: Tournament) -> TournamentResponse:
    return TournamentResponse(
        id=tournament.id,
        name=tournament.name,
        slug=tournament.slug,
        starts_on=tournament.starts_on,
        ends_on=tournament.ends_on,
        is_active=tournament.is_active,
        is_finalized=tournament.is_finalized,
        created_at=tournament.created_at,
    )


def _team_to_response(team: Team) -> TeamResponse:
    return TeamResponse(
        id=team.id,
        tournament_id=team.tournament_id,
        name=team.name,
        created_at=team.created_at,
    )


def _match_to_response(match: Match) -> MatchResponse:
    return MatchResponse(
        id=match.id,
        tournament_id=match.tournament_id,
        team1_id=match.team1_id,
        team2_id=match.team2_id,
        team1_points=match.team1_points,
        team2_points=match.team2_points,
        winner_id=match.winner_id,
        play_date=match.play_date,
        match_type=match.match_type.value,
    )


def _standing_to_response(standing: Standing) -> StandingResponse:
    return StandingResponse(
        team_id=standing.team_id,
        team_name=standing.team_name,
        wins=standing.wins,
        losses=standing.losses,
        win_pct=standing.win_pct,
        points_for=standing.points_for,
        points_against=standing.points_against,
        point_diff=standing.point_diff,
        ranking_points=standing.ranking_points,
    )


def _require_tournament(repository: LeagueRepository, tournament_id: str) -> Tournament:
    tournament = repository.get_tournament(tournament_id)
    if tournament is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tournament not found")
    return tournament


def _require_team(repository: LeagueRepository, team_id: str) -> Team:
    team = repository.get_team(team_id)
    if team is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Team not found")
    return team


def _require_match(repository: LeagueRepository, match_id: str) -> Match:
    match = repository.get_match(match_id)
    if match is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Match not found")
    return match


def _validate_date_range(starts_on: Optional[date], ends_on: Optional[date]) -> None:
    if starts_on and ends_on and ends_on < starts_on:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="ends_on must be on or after starts_on",
        )


def _parse_match_types(raw_types: Optional[List[str]]) -> List[MatchType]:
    """Accept ``?type=A&type=B`` as well as ``?type=A,B``; round robin when absent."""

    if not raw_types:
        return [MatchType.ROUND_ROBIN]

    names = [name.strip().upper() for raw in raw_types for name in raw.split(",")]
    names = [name for name in names if name]
    valid = {match_type.value: match_type for match_type in MatchType}
    invalid = [name for name in names if name not in valid]
    if invalid:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid match types: {', '.join(invalid)}; allowed: {', '.join(valid)}",
        )
    return [valid[name] for name in names]


# Tournaments ---------------------------------------------------------
@app.get("/tournaments", response_model=List[TournamentResponse])
def list_tournaments(
    is_active: Optional[bool] = None,
    is_finalized: Optional[bool] = None,
    repository: LeagueRepository = Depends(get_repository),
) -> List[TournamentResponse]:
    tournaments = repository.list_tournaments(is_active=is_active, is_finalized=is_finalized)
    return [_tournament_to_response(tournament) for tournament in tournaments]


@app.post("/tournaments", response_model=TournamentResponse, status_code=status.HTTP_201_CREATED)
def create_tournament(
    payload: TournamentCreate,
    repository: LeagueRepository = Depends(get_repository),
    settings: Settings = Depends(get_settings),
) -> TournamentResponse:
    _validate_date_range(payload.starts_on, payload.ends_on)
    try:
        tournament = repository.create_tournament(
            payload.name,
            starts_on=payload.starts_on,
            ends_on=payload.ends_on,
            is_active=payload.is_active,
            is_finalized=payload.is_finalized,
            slug_attempts=settings.slug_attempts,
        )
    except sqlite3.IntegrityError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A tournament with this name already exists",
        ) from exc
    return _tournament_to_response(tournament)


@app.get("/tournaments/{tournament_id}", response_model=TournamentResponse)
def get_tournament(
    tournament_id: str,
    repository: LeagueRepository = Depends(get_repository),
) -> TournamentResponse:
    return _tournament_to_response(_require_tournament(repository, tournament_id))


@app.put("/tournaments/{tournament_id}", response_model=TournamentResponse)
def update_tournament(
    tournament_id: str,
    payload: TournamentUpdate,
    repository: LeagueRepository = Depends(get_repository),
) -> TournamentResponse:
    existing = _require_tournament(repository, tournament_id)

    updated = Tournament(
        id=existing.id,
        name=payload.name if payload.name is not None else existing.name,
        slug=existing.slug,
        starts_on=payload.starts_on if payload.starts_on is not None else existing.starts_on,
        ends_on=payload.ends_on if payload.ends_on is not None else existing.ends_on,
        is_active=payload.is_active if payload.is_active is not None else existing.is_active,
        is_finalized=payload.is_finalized if payload.is_finalized is not None else existing.is_finalized,
        created_at=existing.created_at,
    )

    _validate_date_range(updated.starts_on, updated.ends_on)

    try:
        saved = repository.update_tournament(updated)
    except sqlite3.IntegrityError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A tournament with this name already exists",
        ) from exc
    if saved is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tournament not found")
    return _tournament_to_response(saved)


@app.delete("/tournaments/{tournament_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_tournament(
    tournament_id: str,
    repository: LeagueRepository = Depends(get_repository),
) -> None:
    if not repository.delete_tournament(tournament_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tournament not found")


# Teams ---------------------------------------------------------------
@app.get("/tournaments/{tournament_id}/teams", response_model=List[TeamResponse])
def list_teams(
    tournament_id: str,
    repository: LeagueRepository = Depends(get_repository),
) -> List[TeamResponse]:
    _require_tournament(repository, tournament_id)
    return [_team_to_response(team) for team in repository.list_teams(tournament_id)]


@app.post(
    "/tournaments/{tournament_id}/teams",
    response_model=TeamResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_team(
    tournament_id: str,
    payload: TeamCreate,
    repository: LeagueRepository = Depends(get_repository),
) -> TeamResponse:
    _require_tournament(repository, tournament_id)
    return _team_to_response(repository.create_team(tournament_id, payload.name))


@app.post("/teams/bulk", response_model=List[TeamResponse], status_code=status.HTTP_201_CREATED)
def replace_teams(
    payload: TeamBulkCreate,
    repository: LeagueRepository = Depends(get_repository),
) -> List[TeamResponse]:
    _require_tournament(repository, payload.tournament_id)
    teams = repository.replace_teams(payload.tournament_id, [team.name for team in payload.teams])
    logger.info("Replaced teams of tournament %s with %d teams", payload.tournament_id, len(teams))
    return [_team_to_response(team) for team in teams]


@app.get("/teams/{team_id}", response_model=TeamResponse)
def get_team(
    team_id: str,
    repository: LeagueRepository = Depends(get_repository),
) -> TeamResponse:
    return _team_to_response(_require_team(repository, team_id))


@app.put("/teams/{team_id}", response_model=TeamResponse)
def update_team(
    team_id: str,
    payload: TeamCreate,
    repository: LeagueRepository = Depends(get_repository),
) -> TeamResponse:
    team = repository.rename_team(team_id, payload.name)
    if team is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Team not found")
    return _team_to_response(team)


@app.delete("/teams/{team_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_team(
    team_id: str,
    repository: LeagueRepository = Depends(get_repository),
) -> None:
    if not repository.delete_team(team_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Team not found")


# Matches -------------------------------------------------------------
@app.get("/tournaments/{tournament_id}/matches", response_model=List[MatchResponse])
def list_tournament_matches(
    tournament_id: str,
    repository: LeagueRepository = Depends(get_repository),
) -> List[MatchResponse]:
    _require_tournament(repository, tournament_id)
    return [_match_to_response(match) for match in repository.list_matches(tournament_id)]


@app.get("/matches", response_model=List[MatchResponse])
def list_matches(
    tournament_id: Optional[str] = None,
    team_id: Optional[str] = None,
    match_types: Optional[List[str]] = Query(None, alias="type"),
    repository: LeagueRepository = Depends(get_repository),
) -> List[MatchResponse]:
    matches = repository.list_matches(
        tournament_id,
        team_id=team_id,
        match_types=_parse_match_types(match_types),
    )
    return [_match_to_response(match) for match in matches]


@app.post("/matches", response_model=MatchResponse, status_code=status.HTTP_201_CREATED)
def create_match(
    payload: MatchCreate,
    repository: LeagueRepository = Depends(get_repository),
) -> MatchResponse:
    _require_tournament(repository, payload.tournament_id)
    match = repository.create_match(
        payload.tournament_id,
        team1_id=payload.team1_id,
        team2_id=payload.team2_id,
        play_date=payload.play_date,
        match_type=payload.match_type,
        team1_points=payload.team1_points,
        team2_points=payload.team2_points,
        winner_id=payload.winner_id,
    )
    return _match_to_response(match)


@app.post("/matches/bulk", response_model=List[MatchResponse], status_code=status.HTTP_201_CREATED)
def regenerate_schedule(
    payload: ScheduleRequest,
    repository: LeagueRepository = Depends(get_repository),
    settings: Settings = Depends(get_settings),
) -> List[MatchResponse]:
    _require_tournament(repository, payload.tournament_id)
    teams = repository.list_teams(payload.tournament_id)

    rounds = generate_schedule([team.id for team in teams])
    scheduled = assign_dates(
        rounds,
        payload.start_date,
        payload.matches_per_day,
        max_day_search=settings.max_day_search,
    )
    matches = repository.replace_schedule(payload.tournament_id, scheduled)

    logger.info(
        "Regenerated schedule for tournament %s: %d teams, %d rounds, %d matches",
        payload.tournament_id,
        len(teams),
        len(rounds),
        len(matches),
    )
    return [_match_to_response(match) for match in matches]


@app.put("/matches/bulk", status_code=status.HTTP_204_NO_CONTENT)
def record_results(
    payload: List[MatchResultUpdate],
    repository: LeagueRepository = Depends(get_repository),
) -> None:
    repository.record_results(
        ResultUpdate(
            match_id=item.id,
            team1_points=item.team1_points,
            team2_points=item.team2_points,
            winner_id=item.winner_id,
            play_date=item.play_date,
        )
        for item in payload
    )


@app.get("/matches/{match_id}", response_model=MatchResponse)
def get_match(
    match_id: str,
    repository: LeagueRepository = Depends(get_repository),
) -> MatchResponse:
    return _match_to_response(_require_match(repository, match_id))


@app.put("/matches/{match_id}", response_model=MatchResponse)
def update_match(
    match_id: str,
    payload: MatchUpdate,
    repository: LeagueRepository = Depends(get_repository),
) -> MatchResponse:
    existing = _require_match(repository, match_id)

    # An explicit null winner clears the result; an omitted one keeps it.
    changes = {
        name: value
        for name, value in payload.model_dump(exclude_unset=True).items()
        if value is not None or name == "winner_id"
    }
    saved = repository.update_match(replace(existing, **changes))
    if saved is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Match not found")
    return _match_to_response(saved)


@app.delete("/matches/{match_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_match(
    match_id: str,
    repository: LeagueRepository = Depends(get_repository),
) -> None:
    if not repository.delete_match(match_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Match not found")


# Standings -----------------------------------------------------------
@app.get("/standings/{tournament_id}", response_model=List[StandingResponse])
def get_standings(
    tournament_id: str,
    repository: LeagueRepository = Depends(get_repository),
) -> List[StandingResponse]:
    standings = repository.compute_tournament_standings(tournament_id)
    return [_standing_to_response(standing) for standing in standings]
