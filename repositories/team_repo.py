# repositories/team_repo.py
from __future__ import annotations

from typing import Sequence

from db.tx import Tx
from domain.models import Team
from repositories.base_repo import BaseRepo


class TeamRepo(BaseRepo):
    async def create_teams(
        self,
        *,
        tournament_id: int,
        names: Sequence[str],
        tx: Tx | None = None,
    ) -> list[Team]:
        """
        Creates one team per name; seed_position is the index in `names`.
        """
        out: list[Team] = []
        async with self._tx(tx) as t:
            for seed_position, name in enumerate(names):
                team_id = await t.insert(
                    """
                    INSERT INTO tournament_team (tournament_id, seed_position, name)
                    VALUES (%s, %s, %s);
                    """,
                    (tournament_id, seed_position, name),
                )
                out.append(Team(id=team_id, tournament_id=tournament_id, seed_position=seed_position, name=name))
        return out

    async def list_teams(self, *, tournament_id: int) -> list[Team]:
        rows = await self.fetch_all(
            """
            SELECT team_id, tournament_id, seed_position, name
            FROM tournament_team
            WHERE tournament_id=%s
            ORDER BY seed_position, team_id;
            """,
            (tournament_id,),
        )
        return [Team.from_row(r) for r in rows]

    async def delete_teams(self, *, tournament_id: int, tx: Tx | None = None) -> int:
        return await self.execute(
            "DELETE FROM tournament_team WHERE tournament_id=%s;",
            (tournament_id,),
            tx=tx,
        )
