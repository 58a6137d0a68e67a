# main.py
from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict
from typing import Optional

from config import EngineConfig, load_config
from db.pool import DbPool, MySqlPoolConfig
from repositories.match_repo import MatchRepo
from repositories.team_repo import TeamRepo
from repositories.tournament_repo import TournamentRepo
from services.bracket_service import BracketService
from services.locks import TournamentLocks
from services.tournament_service import TournamentService


class BracketEngine:
    """
    Wires the pool, repositories and services together.
    The surrounding application (HTTP layer, bot, ...) holds one of these.

    Usage:
        async with BracketEngine(cfg) as engine:
            detail = await engine.tournaments.create_tournament(name="Cup", team_names=[...])
            view = await engine.brackets.record_result(...)
    """

    def __init__(self, cfg: EngineConfig) -> None:
        self.cfg = cfg
        self.db: Optional[DbPool] = None
        self._brackets: Optional[BracketService] = None
        self._tournaments: Optional[TournamentService] = None

    @property
    def brackets(self) -> BracketService:
        if self._brackets is None:
            raise RuntimeError("Engine is not started. Call await BracketEngine.start() first.")
        return self._brackets

    @property
    def tournaments(self) -> TournamentService:
        if self._tournaments is None:
            raise RuntimeError("Engine is not started. Call await BracketEngine.start() first.")
        return self._tournaments

    async def start(self, *, apply_schema: bool = False) -> None:
        logging.info("Starting bracket engine...")

        # --- DB ---
        self.db = DbPool()
        await self.db.start(MySqlPoolConfig(**asdict(self.cfg.mysql)))
        if apply_schema:
            n = await self.db.apply_schema()
            logging.info("Schema applied (%s statements)", n)

        # --- Repos ---
        tournament_repo = TournamentRepo(self.db)
        team_repo = TeamRepo(self.db)
        match_repo = MatchRepo(self.db)

        # --- Services ---
        self._brackets = BracketService(
            tournament_repo=tournament_repo,
            team_repo=team_repo,
            match_repo=match_repo,
            locks=TournamentLocks(),
        )
        self._tournaments = TournamentService(
            tournament_repo=tournament_repo,
            team_repo=team_repo,
            match_repo=match_repo,
            bracket_service=self._brackets,
        )

        logging.info("Bracket engine ready (db=%s@%s:%s)", self.cfg.mysql.database, self.cfg.mysql.host, self.cfg.mysql.port)

    async def close(self) -> None:
        self._brackets = None
        self._tournaments = None
        if self.db:
            await self.db.close()
            self.db = None

    async def __aenter__(self) -> "BracketEngine":
        await self.start()
        return self

    async def __aexit__(self, *_exc) -> None:
        await self.close()


async def _migrate() -> None:
    cfg = load_config()

    logging.basicConfig(
        level=getattr(logging, cfg.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    engine = BracketEngine(cfg)
    try:
        await engine.start(apply_schema=True)
    finally:
        await engine.close()


def main() -> None:
    asyncio.run(_migrate())


if __name__ == "__main__":
    main()
