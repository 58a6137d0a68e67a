# services/bracket_service.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional, Sequence

from db.tx import Tx
from domain.bracket import BracketTree, generate_matches
from domain.enums import MatchStatus, TournamentStatus
from domain.errors import BracketStateError, InvalidInputError, NotFoundError
from domain.models import BracketView, Match, Team, Tournament
from domain.view import build_view
from repositories.match_repo import MatchRepo
from repositories.team_repo import TeamRepo
from repositories.tournament_repo import TournamentRepo
from services.locks import TournamentLocks

log = logging.getLogger(__name__)


def _status_after_results(tree: BracketTree) -> TournamentStatus:
    final = tree.final
    if final is not None and final.completed:
        return TournamentStatus.COMPLETED
    return TournamentStatus.IN_PROGRESS


class BracketService:
    """
    Responsible for:
      - Creating the initial matches from the tournament's seeded teams
      - Recording results and propagating winners (and invalidations)
      - Building the bracket view
      - Resetting a bracket back to its generated state

    Notes:
      - Matches are rows keyed by (tournament_id, round_no, position).
      - Mutations run on an in-memory BracketTree; only the matches it marks
        dirty are written back, all in one transaction.
      - Writes for one tournament are serialized through TournamentLocks.
    """

    def __init__(
        self,
        *,
        tournament_repo: TournamentRepo,
        team_repo: TeamRepo,
        match_repo: MatchRepo,
        locks: TournamentLocks | None = None,
    ) -> None:
        self._tournaments = tournament_repo
        self._teams = team_repo
        self._matches = match_repo
        self._locks = locks or TournamentLocks()

    @property
    def locks(self) -> TournamentLocks:
        return self._locks

    # -------------------------
    # Public API
    # -------------------------

    async def generate(self, *, tournament_id: int, teams: Sequence[Team]) -> BracketView:
        """
        Create the initial bracket matches for `teams`.
        Requires:
          - the tournament exists
          - no matches exist yet for it (use reset to regenerate)
        """
        async with self._locks.hold(tournament_id):
            await self._require_tournament(tournament_id)

            for t in teams:
                if t.tournament_id != tournament_id:
                    raise InvalidInputError(f"Team {t.id} does not belong to tournament {tournament_id}.")

            existing = await self._matches.list_matches(tournament_id=tournament_id)
            if existing:
                raise BracketStateError(f"Matches already exist for tournament {tournament_id}.")

            async with self._matches.unit_of_work() as tx:
                matches = await self.seed_bracket(tournament_id=tournament_id, teams=teams, tx=tx)

        return build_view(matches, teams, len(teams))

    async def seed_bracket(self, *, tournament_id: int, teams: Sequence[Team], tx: Tx) -> list[Match]:
        """
        Generate and insert the matches inside the caller's transaction.
        No locking or existence checks; callers own both.
        """
        matches = generate_matches(tournament_id, teams)
        saved = await self._matches.create_many(matches, tx=tx)
        log.info("Generated bracket for tournament %s: %s teams, %s matches", tournament_id, len(teams), len(saved))
        return saved

    async def record_result(
        self,
        *,
        tournament_id: int,
        match_id: int,
        score1: int,
        score2: int,
    ) -> BracketView:
        """
        Record (or correct) a match result and propagate the winner.
        The match, every match touched by propagation and the tournament
        status are committed together.
        """
        async with self._locks.hold(tournament_id):
            tournament = await self._require_tournament(tournament_id)
            tree = await self._load_tree(tournament_id)

            match = tree.record_result(match_id, score1, score2)
            new_status = _status_after_results(tree)

            async with self._matches.unit_of_work() as tx:
                await self._matches.update_matches(tree.dirty, tx=tx)
                if new_status != tournament.status:
                    await self._tournaments.set_status(tournament_id=tournament_id, status=new_status, tx=tx)

            log.info(
                "Recorded %s-%s for match %s (%s) in tournament %s; winner %s, %s matches written",
                score1,
                score2,
                match_id,
                match.code,
                tournament_id,
                match.winner_id,
                len(tree.dirty),
            )

            teams = await self._teams.list_teams(tournament_id=tournament_id)
            return build_view(tree.matches, teams, len(teams))

    async def get_view(self, *, tournament_id: int) -> BracketView:
        await self._require_tournament(tournament_id)
        matches = await self._matches.list_matches(tournament_id=tournament_id)
        teams = await self._teams.list_teams(tournament_id=tournament_id)
        return build_view(matches, teams, len(teams))

    async def reset(self, *, tournament_id: int) -> BracketView:
        """
        Drop every match and regenerate from the existing teams (same seed order).
        """
        async with self._locks.hold(tournament_id):
            await self._require_tournament(tournament_id)
            teams = await self._teams.list_teams(tournament_id=tournament_id)
            matches = generate_matches(tournament_id, teams)

            async with self._matches.unit_of_work() as tx:
                saved = await self._matches.replace_matches(tournament_id=tournament_id, matches=matches, tx=tx)
                await self._tournaments.set_status(tournament_id=tournament_id, status=TournamentStatus.DRAFT, tx=tx)

        log.info("Reset bracket for tournament %s (%s matches)", tournament_id, len(saved))
        return build_view(saved, teams, len(teams))

    async def update_match_status(
        self,
        *,
        tournament_id: int,
        match_id: int,
        status: str,
        scheduled_time: Optional[datetime] = None,
    ) -> BracketView:
        """
        Set a match's informational status and optional start time.
        Never touches scores, winners or slots.
        """
        try:
            new_status = MatchStatus(str(status).strip().lower())
        except ValueError:
            allowed = ", ".join(s.value for s in MatchStatus)
            raise InvalidInputError(f"Invalid match status {status!r}; expected one of: {allowed}.") from None

        if new_status is MatchStatus.SCHEDULED and scheduled_time is None:
            raise InvalidInputError("scheduled_time is required when status is 'scheduled'.")

        async with self._locks.hold(tournament_id):
            await self._require_tournament(tournament_id)
            match = await self._matches.get_match(tournament_id=tournament_id, match_id=match_id)
            if match is None:
                raise NotFoundError(f"Match {match_id} not found in tournament {tournament_id}.")

            if match.completed and new_status is not MatchStatus.FINISHED:
                raise BracketStateError(
                    f"Match {match_id} already has a result; record a corrected result instead of changing its status."
                )

            match.status = new_status
            if scheduled_time is not None:
                match.scheduled_time = scheduled_time
            if new_status is MatchStatus.FINISHED and match.winner_id is not None:
                match.completed = True

            await self._matches.update_match(match)

        log.info("Match %s (%s) of tournament %s set to %s", match_id, match.code, tournament_id, new_status.value)
        return await self.get_view(tournament_id=tournament_id)

    # -------------------------
    # Internals
    # -------------------------

    async def _require_tournament(self, tournament_id: int) -> Tournament:
        tournament = await self._tournaments.get_tournament(tournament_id=tournament_id)
        if tournament is None:
            raise NotFoundError(f"Tournament {tournament_id} not found.")
        return tournament

    async def _load_tree(self, tournament_id: int) -> BracketTree:
        matches = await self._matches.list_matches(tournament_id=tournament_id)
        return BracketTree(tournament_id, matches)
