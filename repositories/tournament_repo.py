# repositories/tournament_repo.py
from __future__ import annotations

from db.tx import Tx
from domain.enums import TournamentStatus
from domain.models import Tournament
from repositories.base_repo import BaseRepo


class TournamentRepo(BaseRepo):
    async def create_tournament(
        self,
        *,
        name: str,
        total_teams: int,
        status: TournamentStatus = TournamentStatus.DRAFT,
        tx: Tx | None = None,
    ) -> int:
        return await self.insert_returning_id(
            """
            INSERT INTO tournament (name, total_teams, status)
            VALUES (%s, %s, %s);
            """,
            (name, total_teams, status.value),
            tx=tx,
        )

    async def get_tournament(self, *, tournament_id: int) -> Tournament | None:
        row = await self.fetch_one(
            """
            SELECT tournament_id, name, total_teams, status, created_at
            FROM tournament
            WHERE tournament_id=%s;
            """,
            (tournament_id,),
        )
        return Tournament.from_row(row) if row else None

    async def list_tournaments(self) -> list[Tournament]:
        rows = await self.fetch_all(
            """
            SELECT tournament_id, name, total_teams, status, created_at
            FROM tournament
            ORDER BY created_at DESC, tournament_id DESC;
            """
        )
        return [Tournament.from_row(r) for r in rows]

    async def set_status(self, *, tournament_id: int, status: TournamentStatus, tx: Tx | None = None) -> int:
        return await self.execute(
            "UPDATE tournament SET status=%s, updated_at=NOW(6) WHERE tournament_id=%s;",
            (status.value, tournament_id),
            tx=tx,
        )

    async def delete_tournament(self, *, tournament_id: int, tx: Tx | None = None) -> int:
        return await self.execute(
            "DELETE FROM tournament WHERE tournament_id=%s;",
            (tournament_id,),
            tx=tx,
        )
