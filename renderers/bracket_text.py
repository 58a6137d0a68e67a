# renderers/bracket_text.py
from __future__ import annotations

from typing import Optional

from domain.models import BracketRound, BracketView, MatchSummary, TeamRef


def _pad(s: str, width: int) -> str:
    s = s or ""
    if len(s) >= width:
        return s[: max(0, width - 1)] + "…" if width >= 2 else s[:width]
    return s + (" " * (width - len(s)))


def _team_label(team: Optional[TeamRef], *, name_width: int) -> str:
    if team is None:
        return _pad("TBD", name_width)
    return _pad(team.name or f"Team {team.id}", name_width)


def _score(m: MatchSummary) -> str:
    if m.score1 is None or m.score2 is None:
        return "  -  "
    return f"{m.score1:>2}-{m.score2:<2}"


def _status_mark(m: MatchSummary) -> str:
    if m.completed and m.winner is not None:
        return f"W: {m.winner.name or m.winner.id}"
    if m.scheduled_time is not None:
        return f"@ {m.scheduled_time:%Y-%m-%d %H:%M}"
    return m.status.value


class BracketTextRenderer:
    """
    Monospace text bracket, one block per round.
    Open slots render as TBD; completed matches show the winner.
    """

    def __init__(self, *, name_width: int = 20) -> None:
        self._name_width = int(name_width)

    def render(self, view: BracketView, *, title: str = "Bracket", max_lines: int = 60) -> str:
        lines: list[str] = [f"=== {title} ({view.total_teams} teams) ===", ""]

        for rnd in view.rounds:
            lines.extend(self._render_round(rnd))
            lines.append("")

        champion = view.champion
        if champion is not None:
            lines.append(f"Champion: {champion.name or champion.id}")

        # keep the end when trimming; the final rounds matter most
        if len(lines) > max_lines:
            head = lines[:6]
            tail = lines[-max(1, max_lines - 8) :]
            lines = head + ["...", ""] + tail

        return "\n".join(lines).rstrip() + "\n"

    def _render_round(self, rnd: BracketRound) -> list[str]:
        out = [f"-- {rnd.label} --"]
        if not rnd.matches:
            out.append("(none)")
            return out
        for m in rnd.matches:
            left = _team_label(m.team1, name_width=self._name_width)
            right = _team_label(m.team2, name_width=self._name_width)
            out.append(f"  {m.code}  {left} vs {right} {_score(m)}  {_status_mark(m)}")
        return out
