# repositories/match_repo.py
from __future__ import annotations

from typing import Any, Sequence

from db.tx import Tx
from domain.models import Match
from repositories.base_repo import BaseRepo

_INSERT_SQL = """
INSERT INTO bracket_match
  (tournament_id, round_no, position, team1_id, team2_id,
   score1, score2, winner_id, completed, status, scheduled_time)
VALUES
  (%s, %s, %s, %s, %s,
   %s, %s, %s, %s, %s, %s);
"""

_UPDATE_SQL = """
UPDATE bracket_match
SET
  team1_id=%s,
  team2_id=%s,
  score1=%s,
  score2=%s,
  winner_id=%s,
  completed=%s,
  status=%s,
  scheduled_time=%s,
  updated_at=NOW(6)
WHERE tournament_id=%s AND round_no=%s AND position=%s;
"""


def _insert_params(m: Match) -> tuple[Any, ...]:
    return (
        m.tournament_id,
        m.round_no,
        m.position,
        m.team1_id,
        m.team2_id,
        m.score1,
        m.score2,
        m.winner_id,
        1 if m.completed else 0,
        m.status.value,
        m.scheduled_time,
    )


def _update_params(m: Match) -> tuple[Any, ...]:
    return (
        m.team1_id,
        m.team2_id,
        m.score1,
        m.score2,
        m.winner_id,
        1 if m.completed else 0,
        m.status.value,
        m.scheduled_time,
        m.tournament_id,
        m.round_no,
        m.position,
    )


class MatchRepo(BaseRepo):
    async def create_many(self, matches: Sequence[Match], *, tx: Tx | None = None) -> list[Match]:
        """
        Inserts every match in one transaction and fills in their ids.
        """
        async with self._tx(tx) as t:
            for m in matches:
                m.id = await t.insert(_INSERT_SQL, _insert_params(m))
        return list(matches)

    async def list_matches(self, *, tournament_id: int) -> list[Match]:
        rows = await self.fetch_all(
            """
            SELECT *
            FROM bracket_match
            WHERE tournament_id=%s
            ORDER BY round_no, position;
            """,
            (tournament_id,),
        )
        return [Match.from_row(r) for r in rows]

    async def get_match(self, *, tournament_id: int, match_id: int) -> Match | None:
        row = await self.fetch_one(
            "SELECT * FROM bracket_match WHERE tournament_id=%s AND match_id=%s;",
            (tournament_id, match_id),
        )
        return Match.from_row(row) if row else None

    async def get_match_at(self, *, tournament_id: int, round_no: int, position: int) -> Match | None:
        row = await self.fetch_one(
            """
            SELECT *
            FROM bracket_match
            WHERE tournament_id=%s AND round_no=%s AND position=%s;
            """,
            (tournament_id, round_no, position),
        )
        return Match.from_row(row) if row else None

    async def update_matches(self, matches: Sequence[Match], *, tx: Tx | None = None) -> int:
        if not matches:
            return 0
        return await self.execute_many(_UPDATE_SQL, [_update_params(m) for m in matches], tx=tx)

    async def update_match(self, match: Match, *, tx: Tx | None = None) -> int:
        return await self.execute(_UPDATE_SQL, _update_params(match), tx=tx)

    async def delete_matches(self, *, tournament_id: int, tx: Tx | None = None) -> int:
        return await self.execute(
            "DELETE FROM bracket_match WHERE tournament_id=%s;",
            (tournament_id,),
            tx=tx,
        )

    async def replace_matches(
        self, *, tournament_id: int, matches: Sequence[Match], tx: Tx | None = None
    ) -> list[Match]:
        async with self._tx(tx) as t:
            await self.delete_matches(tournament_id=tournament_id, tx=t)
            return await self.create_many(matches, tx=t)
