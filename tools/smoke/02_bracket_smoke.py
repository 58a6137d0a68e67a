from __future__ import annotations

import os, sys
from uuid import uuid4

HERE = os.path.dirname(__file__)
ROOT = os.path.abspath(os.path.join(HERE, "..", ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

import asyncio
from config import load_config
from main import BracketEngine
from renderers.bracket_diagram import BracketDiagramRenderer
from renderers.bracket_text import BracketTextRenderer

async def main() -> None:
    cfg = load_config()

    run_id = os.getenv("SMOKE_RUN_ID") or f"smk_{uuid4().hex[:10]}"
    team_count = int(os.getenv("SMOKE_TEAMS") or "5")

    async with BracketEngine(cfg) as engine:
        detail = await engine.tournaments.create_tournament(
            name=f"SMOKE_TOURNAMENT_{run_id}",
            team_names=[f"SMOKE_TEAM_{i + 1}" for i in range(team_count)],
        )
        tid = detail.tournament.id

        # play every match with team1 winning, round by round
        view = detail.bracket
        while view.champion is None:
            playable = [m for r in view.rounds for m in r.matches if not m.completed and m.team1 and m.team2]
            assert playable, "bracket stalled with no playable match"
            view = await engine.brackets.record_result(tournament_id=tid, match_id=playable[0].id, score1=2, score2=1)

        print(BracketTextRenderer().render(view, title=f"SMOKE {run_id}"))
        png_path = os.getenv("SMOKE_PNG")
        if png_path:
            with open(png_path, "wb") as f:
                f.write(BracketDiagramRenderer().render_png(view, title=f"SMOKE {run_id}"))
            print(f"Wrote {png_path}")

        # correct the first match the other way; the final must reopen
        first = view.rounds[0].matches[0]
        view = await engine.brackets.record_result(tournament_id=tid, match_id=first.id, score1=0, score2=3)
        assert view.champion is None, "correction did not reopen the final"

        view = await engine.brackets.reset(tournament_id=tid)
        assert not any(m.completed for r in view.rounds for m in r.matches)

        if not os.getenv("SMOKE_KEEP"):
            await engine.tournaments.delete_tournament(tournament_id=tid)

    print(f"OK: bracket smoke passed. run_id={run_id} tournament_id={tid} teams={team_count}")

if __name__ == "__main__":
    asyncio.run(main())
