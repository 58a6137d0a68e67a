# services/tournament_service.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from domain.enums import TournamentStatus
from domain.errors import InvalidInputError, NotFoundError
from domain.models import BracketView, Team, Tournament
from domain.view import build_view
from repositories.match_repo import MatchRepo
from repositories.team_repo import TeamRepo
from repositories.tournament_repo import TournamentRepo
from services.bracket_service import BracketService

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class TournamentDetail:
    tournament: Tournament
    teams: list[Team]
    bracket: BracketView


class TournamentService:
    """
    Tournament lifecycle around the bracket engine.

    Creating a tournament writes the tournament, its seeded teams and the
    generated bracket in one transaction; deleting removes all three.
    """

    def __init__(
        self,
        *,
        tournament_repo: TournamentRepo,
        team_repo: TeamRepo,
        match_repo: MatchRepo,
        bracket_service: BracketService,
    ) -> None:
        self._tournaments = tournament_repo
        self._teams = team_repo
        self._matches = match_repo
        self._brackets = bracket_service

    async def create_tournament(self, *, name: str, team_names: Sequence[str]) -> TournamentDetail:
        name = (name or "").strip()
        if not name:
            raise InvalidInputError("Tournament name is required.")

        cleaned = [(n or "").strip() for n in team_names]
        if len(cleaned) < 2:
            raise InvalidInputError(f"A tournament needs at least 2 teams, got {len(cleaned)}.")
        blank = [i for i, n in enumerate(cleaned) if not n]
        if blank:
            raise InvalidInputError(f"Team names must not be blank (entries {blank}).")

        async with self._tournaments.unit_of_work() as tx:
            tournament_id = await self._tournaments.create_tournament(name=name, total_teams=len(cleaned), tx=tx)
            teams = await self._teams.create_teams(tournament_id=tournament_id, names=cleaned, tx=tx)
            matches = await self._brackets.seed_bracket(tournament_id=tournament_id, teams=teams, tx=tx)

        log.info("Created tournament %s %r with %s teams", tournament_id, name, len(teams))
        tournament = Tournament(
            id=tournament_id,
            name=name,
            total_teams=len(teams),
            status=TournamentStatus.DRAFT,
        )
        return TournamentDetail(tournament=tournament, teams=teams, bracket=build_view(matches, teams, len(teams)))

    async def get_tournament(self, *, tournament_id: int) -> TournamentDetail:
        tournament = await self._tournaments.get_tournament(tournament_id=tournament_id)
        if tournament is None:
            raise NotFoundError(f"Tournament {tournament_id} not found.")
        teams = await self._teams.list_teams(tournament_id=tournament_id)
        matches = await self._matches.list_matches(tournament_id=tournament_id)
        return TournamentDetail(tournament=tournament, teams=teams, bracket=build_view(matches, teams, len(teams)))

    async def list_tournaments(self) -> list[Tournament]:
        return await self._tournaments.list_tournaments()

    async def delete_tournament(self, *, tournament_id: int) -> None:
        async with self._brackets.locks.hold(tournament_id):
            tournament = await self._tournaments.get_tournament(tournament_id=tournament_id)
            if tournament is None:
                raise NotFoundError(f"Tournament {tournament_id} not found.")

            # FK-safe order: matches reference teams, teams reference the tournament
            async with self._tournaments.unit_of_work() as tx:
                deleted_matches = await self._matches.delete_matches(tournament_id=tournament_id, tx=tx)
                deleted_teams = await self._teams.delete_teams(tournament_id=tournament_id, tx=tx)
                await self._tournaments.delete_tournament(tournament_id=tournament_id, tx=tx)

        log.info(
            "Deleted tournament %s (%s teams, %s matches)",
            tournament_id,
            deleted_teams,
            deleted_matches,
        )
