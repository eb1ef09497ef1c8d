"""SQLite repository for the doubles_league domain models."""

from __future__ import annotations

import sqlite3
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Iterable, Iterator, List, Optional, Sequence

from .errors import InvalidMatch, InvalidResult, NotFound
from .models import Match, MatchType, ScheduledMatch, Standing, Team, Tournament
from .slugs import DEFAULT_SLUG_ATTEMPTS, generate_unique_slug
from .standings import compute_standings


def _new_id() -> str:
    return uuid.uuid4().hex


def _iso_datetime(value: datetime) -> str:
    return value.replace(microsecond=0).isoformat(timespec="seconds")


def _parse_datetime(value: str) -> datetime:
    return datetime.fromisoformat(value)


def _iso_date(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _parse_date(value: Optional[str]) -> Optional[date]:
    return date.fromisoformat(value) if value is not None else None


def _row_to_tournament(row: sqlite3.Row) -> Tournament:
    return Tournament(
        id=row["id"],
        name=row["name"],
        slug=row["slug"],
        starts_on=_parse_date(row["starts_on"]),
        ends_on=_parse_date(row["ends_on"]),
        is_active=bool(row["is_active"]),
        is_finalized=bool(row["is_finalized"]),
        created_at=_parse_datetime(row["created_at"]),
    )


def _row_to_team(row: sqlite3.Row) -> Team:
    return Team(
        id=row["id"],
        name=row["name"],
        tournament_id=row["tournament_id"],
        created_at=_parse_datetime(row["created_at"]),
    )


def _row_to_match(row: sqlite3.Row) -> Match:
    return Match(
        id=row["id"],
        tournament_id=row["tournament_id"],
        team1_id=row["team1_id"],
        team2_id=row["team2_id"],
        play_date=date.fromisoformat(row["play_date"]),
        team1_points=row["team1_points"],
        team2_points=row["team2_points"],
        winner_id=row["winner_id"],
        match_type=MatchType(row["match_type"]),
        created_at=_parse_datetime(row["created_at"]),
        updated_at=_parse_datetime(row["updated_at"]),
    )


@dataclass(frozen=True)
class ResultUpdate:
    """New score line for a stored match."""

    match_id: str
    team1_points: int = 0
    team2_points: int = 0
    winner_id: Optional[str] = None
    play_date: Optional[date] = None


class LeagueRepository:
    """Persistence layer backed by SQLite."""

    def __init__(self, path: str) -> None:
        self._path = path

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        # Leaving the block without commit discards every statement in it.
        conn = sqlite3.connect(self._path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON;")
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def initialize_schema(self) -> None:
        """Create tables if they do not already exist."""

        with self._connection() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS tournaments (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL UNIQUE,
                    slug TEXT NOT NULL UNIQUE,
                    starts_on TEXT,
                    ends_on TEXT,
                    is_active INTEGER NOT NULL DEFAULT 1,
                    is_finalized INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS teams (
                    id TEXT PRIMARY KEY,
                    tournament_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    FOREIGN KEY (tournament_id) REFERENCES tournaments (id) ON DELETE CASCADE
                );

                CREATE TABLE IF NOT EXISTS matches (
                    id TEXT PRIMARY KEY,
                    tournament_id TEXT NOT NULL,
                    team1_id TEXT NOT NULL,
                    team2_id TEXT NOT NULL,
                    team1_points INTEGER NOT NULL DEFAULT 0,
                    team2_points INTEGER NOT NULL DEFAULT 0,
                    winner_id TEXT,
                    play_date TEXT NOT NULL,
                    match_type TEXT NOT NULL DEFAULT 'ROUNDROBIN',
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    FOREIGN KEY (tournament_id) REFERENCES tournaments (id) ON DELETE CASCADE,
                    FOREIGN KEY (team1_id) REFERENCES teams (id) ON DELETE CASCADE,
                    FOREIGN KEY (team2_id) REFERENCES teams (id) ON DELETE CASCADE,
                    FOREIGN KEY (winner_id) REFERENCES teams (id)
                );
                """
            )

    # Tournament operations ---------------------------------------------
    def add_tournament(self, tournament: Tournament) -> None:
        with self._connection() as conn:
            conn.execute(
                """
                INSERT INTO tournaments (
                    id, name, slug, starts_on, ends_on, is_active, is_finalized, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    tournament.id,
                    tournament.name,
                    tournament.slug,
                    _iso_date(tournament.starts_on),
                    _iso_date(tournament.ends_on),
                    int(tournament.is_active),
                    int(tournament.is_finalized),
                    _iso_datetime(tournament.created_at),
                ),
            )

    def create_tournament(
        self,
        name: str,
        *,
        starts_on: Optional[date] = None,
        ends_on: Optional[date] = None,
        is_active: bool = True,
        is_finalized: bool = False,
        slug_attempts: int = DEFAULT_SLUG_ATTEMPTS,
    ) -> Tournament:
        slug = generate_unique_slug(name, self.slug_exists, attempts=slug_attempts)
        tournament = Tournament(
            id=_new_id(),
            name=name,
            slug=slug,
            starts_on=starts_on,
            ends_on=ends_on,
            is_active=is_active,
            is_finalized=is_finalized,
        )
        self.add_tournament(tournament)
        return tournament

    def slug_exists(self, slug: str) -> bool:
        with self._connection() as conn:
            row = conn.execute("SELECT 1 FROM tournaments WHERE slug = ?", (slug,)).fetchone()
        return row is not None

    def list_tournaments(
        self,
        *,
        is_active: Optional[bool] = None,
        is_finalized: Optional[bool] = None,
    ) -> List[Tournament]:
        clauses = []
        params: list = []
        if is_active is not None:
            clauses.append("is_active = ?")
            params.append(int(is_active))
        if is_finalized is not None:
            clauses.append("is_finalized = ?")
            params.append(int(is_finalized))

        query = "SELECT * FROM tournaments"
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        query += " ORDER BY created_at DESC"

        with self._connection() as conn:
            rows = conn.execute(query, params).fetchall()
        return [_row_to_tournament(row) for row in rows]

    def get_tournament(self, tournament_id: str) -> Optional[Tournament]:
        with self._connection() as conn:
            row = conn.execute("SELECT * FROM tournaments WHERE id = ?", (tournament_id,)).fetchone()
        if row is None:
            return None
        return _row_to_tournament(row)

    def update_tournament(self, tournament: Tournament) -> Optional[Tournament]:
        with self._connection() as conn:
            cursor = conn.execute(
                """
                UPDATE tournaments
                SET name = ?, starts_on = ?, ends_on = ?, is_active = ?, is_finalized = ?
                WHERE id = ?
                """,
                (
                    tournament.name,
                    _iso_date(tournament.starts_on),
                    _iso_date(tournament.ends_on),
                    int(tournament.is_active),
                    int(tournament.is_finalized),
                    tournament.id,
                ),
            )

        if cursor.rowcount == 0:
            return None
        return tournament

    def delete_tournament(self, tournament_id: str) -> bool:
        with self._connection() as conn:
            cursor = conn.execute("DELETE FROM tournaments WHERE id = ?", (tournament_id,))
        return cursor.rowcount > 0

    # Team operations ---------------------------------------------------
    def add_team(self, team: Team) -> None:
        with self._connection() as conn:
            conn.execute(
                "INSERT INTO teams (id, tournament_id, name, created_at) VALUES (?, ?, ?, ?)",
                (team.id, team.tournament_id, team.name, _iso_datetime(team.created_at)),
            )

    def create_team(self, tournament_id: str, name: str) -> Team:
        team = Team(id=_new_id(), name=name, tournament_id=tournament_id)
        self.add_team(team)
        return team

    def list_teams(self, tournament_id: str) -> List[Team]:
        with self._connection() as conn:
            rows = conn.execute(
                "SELECT * FROM teams WHERE tournament_id = ? ORDER BY created_at, rowid",
                (tournament_id,),
            ).fetchall()
        return [_row_to_team(row) for row in rows]

    def get_team(self, team_id: str) -> Optional[Team]:
        with self._connection() as conn:
            row = conn.execute("SELECT * FROM teams WHERE id = ?", (team_id,)).fetchone()
        if row is None:
            return None
        return _row_to_team(row)

    def rename_team(self, team_id: str, name: str) -> Optional[Team]:
        with self._connection() as conn:
            cursor = conn.execute("UPDATE teams SET name = ? WHERE id = ?", (name, team_id))
        if cursor.rowcount == 0:
            return None
        return self.get_team(team_id)

    def delete_team(self, team_id: str) -> bool:
        """Remove a team; its matches go with it."""

        with self._connection() as conn:
            cursor = conn.execute("DELETE FROM teams WHERE id = ?", (team_id,))
        return cursor.rowcount > 0

    def replace_teams(self, tournament_id: str, names: Sequence[str]) -> List[Team]:
        """Swap every team of a tournament for new teams named ``names``.

        Matches of the old teams are removed by the cascade, all in one
        transaction.
        """

        now = datetime.utcnow()
        teams = [Team(id=_new_id(), name=name, tournament_id=tournament_id, created_at=now) for name in names]
        with self._connection() as conn:
            conn.execute("DELETE FROM teams WHERE tournament_id = ?", (tournament_id,))
            conn.executemany(
                "INSERT INTO teams (id, tournament_id, name, created_at) VALUES (?, ?, ?, ?)",
                [(team.id, team.tournament_id, team.name, _iso_datetime(team.created_at)) for team in teams],
            )
        return teams

    # Match operations --------------------------------------------------
    @staticmethod
    def _insert_matches(conn: sqlite3.Connection, matches: Sequence[Match]) -> None:
        conn.executemany(
            """
            INSERT INTO matches (
                id,
                tournament_id,
                team1_id,
                team2_id,
                team1_points,
                team2_points,
                winner_id,
                play_date,
                match_type,
                created_at,
                updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                (
                    match.id,
                    match.tournament_id,
                    match.team1_id,
                    match.team2_id,
                    match.team1_points,
                    match.team2_points,
                    match.winner_id,
                    match.play_date.isoformat(),
                    match.match_type.value,
                    _iso_datetime(match.created_at),
                    _iso_datetime(match.updated_at),
                )
                for match in matches
            ],
        )

    @staticmethod
    def _check_match(conn: sqlite3.Connection, match: Match) -> None:
        if match.team1_id == match.team2_id:
            raise InvalidMatch(f"Team {match.team1_id!r} cannot play against itself")

        rows = conn.execute(
            "SELECT id FROM teams WHERE tournament_id = ? AND id IN (?, ?)",
            (match.tournament_id, match.team1_id, match.team2_id),
        ).fetchall()
        if len(rows) != 2:
            raise InvalidMatch(
                f"Teams {match.team1_id!r} and {match.team2_id!r} must both belong to "
                f"tournament {match.tournament_id!r}"
            )

        if match.winner_id is not None and match.winner_id not in (match.team1_id, match.team2_id):
            raise InvalidResult(f"Winner {match.winner_id!r} did not play in match {match.id!r}")

    def replace_schedule(
        self, tournament_id: str, scheduled: Iterable[ScheduledMatch]
    ) -> List[Match]:
        """Swap the stored matches of a tournament for ``scheduled``.

        The delete and every insert share one transaction, so readers see
        either the previous schedule or the complete new one.
        """

        now = datetime.utcnow()
        matches = [
            Match(
                id=_new_id(),
                tournament_id=tournament_id,
                team1_id=item.team1_id,
                team2_id=item.team2_id,
                play_date=item.play_date,
                team1_points=item.team1_points,
                team2_points=item.team2_points,
                match_type=item.match_type,
                created_at=now,
                updated_at=now,
            )
            for item in scheduled
        ]

        with self._connection() as conn:
            conn.execute("DELETE FROM matches WHERE tournament_id = ?", (tournament_id,))
            self._insert_matches(conn, matches)
        return matches

    def create_match(
        self,
        tournament_id: str,
        *,
        team1_id: str,
        team2_id: str,
        play_date: date,
        match_type: MatchType = MatchType.ROUND_ROBIN,
        team1_points: int = 0,
        team2_points: int = 0,
        winner_id: Optional[str] = None,
    ) -> Match:
        match = Match(
            id=_new_id(),
            tournament_id=tournament_id,
            team1_id=team1_id,
            team2_id=team2_id,
            play_date=play_date,
            team1_points=team1_points,
            team2_points=team2_points,
            winner_id=winner_id,
            match_type=match_type,
        )
        with self._connection() as conn:
            self._check_match(conn, match)
            self._insert_matches(conn, [match])
        return match

    def list_matches(
        self,
        tournament_id: Optional[str] = None,
        *,
        team_id: Optional[str] = None,
        match_types: Optional[Iterable[MatchType]] = None,
    ) -> List[Match]:
        clauses = []
        params: list = []
        if tournament_id is not None:
            clauses.append("tournament_id = ?")
            params.append(tournament_id)
        if team_id is not None:
            clauses.append("(team1_id = ? OR team2_id = ?)")
            params.extend([team_id, team_id])
        if match_types is not None:
            values = [match_type.value for match_type in match_types]
            if not values:
                return []
            clauses.append("match_type IN ({})".format(", ".join("?" for _ in values)))
            params.extend(values)

        query = "SELECT * FROM matches"
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        query += " ORDER BY play_date, rowid"

        with self._connection() as conn:
            rows = conn.execute(query, params).fetchall()
        return [_row_to_match(row) for row in rows]

    def get_match(self, match_id: str) -> Optional[Match]:
        with self._connection() as conn:
            row = conn.execute("SELECT * FROM matches WHERE id = ?", (match_id,)).fetchone()
        if row is None:
            return None
        return _row_to_match(row)

    def update_match(self, match: Match) -> Optional[Match]:
        """Overwrite the stored teams, score, date and type of ``match``."""

        updated_at = datetime.utcnow()
        with self._connection() as conn:
            self._check_match(conn, match)
            cursor = conn.execute(
                """
                UPDATE matches
                SET team1_id = ?, team2_id = ?, team1_points = ?, team2_points = ?,
                    winner_id = ?, play_date = ?, match_type = ?, updated_at = ?
                WHERE id = ? AND tournament_id = ?
                """,
                (
                    match.team1_id,
                    match.team2_id,
                    match.team1_points,
                    match.team2_points,
                    match.winner_id,
                    match.play_date.isoformat(),
                    match.match_type.value,
                    _iso_datetime(updated_at),
                    match.id,
                    match.tournament_id,
                ),
            )

        if cursor.rowcount == 0:
            return None
        return replace(match, updated_at=updated_at)

    def delete_match(self, match_id: str) -> bool:
        with self._connection() as conn:
            cursor = conn.execute("DELETE FROM matches WHERE id = ?", (match_id,))
        return cursor.rowcount > 0

    def record_results(self, updates: Iterable[ResultUpdate]) -> None:
        """Apply ``updates`` atomically; any invalid entry leaves all matches untouched."""

        now = _iso_datetime(datetime.utcnow())
        with self._connection() as conn:
            for update in updates:
                row = conn.execute(
                    "SELECT team1_id, team2_id, play_date FROM matches WHERE id = ?",
                    (update.match_id,),
                ).fetchone()
                if row is None:
                    raise NotFound("Match", update.match_id)
                if update.winner_id is not None and update.winner_id not in (
                    row["team1_id"],
                    row["team2_id"],
                ):
                    raise InvalidResult(
                        f"Winner {update.winner_id!r} did not play in match {update.match_id!r}"
                    )

                play_date = _iso_date(update.play_date) or row["play_date"]
                conn.execute(
                    """
                    UPDATE matches
                    SET team1_points = ?, team2_points = ?, winner_id = ?, play_date = ?, updated_at = ?
                    WHERE id = ?
                    """,
                    (
                        update.team1_points,
                        update.team2_points,
                        update.winner_id,
                        play_date,
                        now,
                        update.match_id,
                    ),
                )

    # Reporting helpers -------------------------------------------------
    def compute_tournament_standings(self, tournament_id: str) -> List[Standing]:
        if self.get_tournament(tournament_id) is None:
            raise NotFound("Tournament", tournament_id)

        teams = self.list_teams(tournament_id)
        matches = self.list_matches(tournament_id)
        return compute_standings(teams, (match.to_result() for match in matches))


__all__ = ["LeagueRepository", "ResultUpdate"]
