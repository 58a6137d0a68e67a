# domain/view.py
from __future__ import annotations

from itertools import groupby
from typing import Iterable, Optional

from domain.models import BracketRound, BracketView, Match, MatchSummary, Team, TeamRef, round_label


def build_view(matches: Iterable[Match], teams: Iterable[Team], total_teams: int) -> BracketView:
    """Group matches into rounds ordered by round number, then position."""
    names = {t.id: t.name for t in teams}

    def ref(team_id: Optional[int]) -> Optional[TeamRef]:
        if team_id is None:
            return None
        return TeamRef(id=team_id, name=names.get(team_id))

    ordered = sorted(matches, key=lambda m: (m.round_no, m.position))
    rounds: list[BracketRound] = []
    for round_no, group in groupby(ordered, key=lambda m: m.round_no):
        summaries = [
            MatchSummary(
                id=m.id,
                round_no=m.round_no,
                position=m.position,
                team1=ref(m.team1_id),
                team2=ref(m.team2_id),
                score1=m.score1,
                score2=m.score2,
                winner=ref(m.winner_id),
                completed=m.completed,
                status=m.status,
                scheduled_time=m.scheduled_time,
            )
            for m in group
        ]
        rounds.append(BracketRound(round_no=round_no, label=round_label(round_no, len(summaries)), matches=summaries))

    return BracketView(rounds=rounds, total_teams=int(total_teams))
