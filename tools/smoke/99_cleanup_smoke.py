from __future__ import annotations

import os, sys

HERE = os.path.dirname(__file__)
ROOT = os.path.abspath(os.path.join(HERE, "..", ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

import asyncio
from config import load_config
from main import BracketEngine

async def main() -> None:
    cfg = load_config()

    run_id = os.getenv("SMOKE_RUN_ID")
    if not run_id:
        raise RuntimeError("Set SMOKE_RUN_ID to the run_id you want to clean up.")

    async with BracketEngine(cfg) as engine:
        name = f"SMOKE_TOURNAMENT_{run_id}"
        for t in await engine.tournaments.list_tournaments():
            if t.name == name:
                await engine.tournaments.delete_tournament(tournament_id=t.id)
                print(f"OK: deleted tournament {t.id}")

    print(f"OK: cleanup done for run_id={run_id}")

if __name__ == "__main__":
    asyncio.run(main())
