# domain/models.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Optional

from domain.enums import MatchStatus, TournamentStatus

PRELIMINARY_ROUND = -1


def largest_power_of_two(n: int) -> int:
    """Largest power of two <= n (n >= 1)."""
    if n < 1:
        raise ValueError("n must be >= 1")
    return 1 << (n.bit_length() - 1)


def is_power_of_two(n: int) -> bool:
    return n > 0 and (n & (n - 1)) == 0


def match_code(round_no: int, position: int) -> str:
    """
    Short human label for a bracket slot.
    Example: (-1, 0) => P-01, (2, 1) => R3-02
    """
    if round_no == PRELIMINARY_ROUND:
        return f"P-{position + 1:02d}"
    return f"R{round_no + 1}-{position + 1:02d}"


def round_label(round_no: int, matches_in_round: int) -> str:
    if round_no == PRELIMINARY_ROUND:
        return "Preliminary"
    teams_in_round = matches_in_round * 2
    if teams_in_round == 2:
        return "Final"
    if teams_in_round == 4:
        return "Semifinal"
    if teams_in_round == 8:
        return "Quarterfinal"
    return f"Round of {teams_in_round}"


def _opt_int(v: Any) -> Optional[int]:
    return int(v) if v is not None else None


@dataclass(frozen=True)
class Tournament:
    id: int
    name: str
    total_teams: int
    status: TournamentStatus = TournamentStatus.DRAFT
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Tournament":
        return cls(
            id=int(row["tournament_id"]),
            name=str(row["name"]),
            total_teams=int(row["total_teams"]),
            status=TournamentStatus(str(row["status"])),
            created_at=row.get("created_at"),
        )


@dataclass(frozen=True)
class Team:
    id: int
    tournament_id: int
    seed_position: int
    name: str

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Team":
        return cls(
            id=int(row["team_id"]),
            tournament_id=int(row["tournament_id"]),
            seed_position=int(row["seed_position"]),
            name=str(row["name"]),
        )


@dataclass
class Match:
    """
    One bracket slot, keyed by (tournament_id, round_no, position).
    Mutated in place by result recording and propagation.
    """

    tournament_id: int
    round_no: int
    position: int
    team1_id: Optional[int] = None
    team2_id: Optional[int] = None
    score1: Optional[int] = None
    score2: Optional[int] = None
    winner_id: Optional[int] = None
    completed: bool = False
    status: MatchStatus = MatchStatus.CREATED
    scheduled_time: Optional[datetime] = None
    id: Optional[int] = None

    @property
    def key(self) -> tuple[int, int]:
        return (self.round_no, self.position)

    @property
    def code(self) -> str:
        return match_code(self.round_no, self.position)

    @property
    def idle_status(self) -> MatchStatus:
        return MatchStatus.SCHEDULED if self.scheduled_time is not None else MatchStatus.CREATED

    @property
    def has_both_teams(self) -> bool:
        return self.team1_id is not None and self.team2_id is not None

    def clear_result(self) -> None:
        self.score1 = None
        self.score2 = None
        self.winner_id = None
        self.completed = False
        self.status = self.idle_status

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Match":
        return cls(
            id=int(row["match_id"]),
            tournament_id=int(row["tournament_id"]),
            round_no=int(row["round_no"]),
            position=int(row["position"]),
            team1_id=_opt_int(row.get("team1_id")),
            team2_id=_opt_int(row.get("team2_id")),
            score1=_opt_int(row.get("score1")),
            score2=_opt_int(row.get("score2")),
            winner_id=_opt_int(row.get("winner_id")),
            completed=bool(row.get("completed")),
            status=MatchStatus(str(row.get("status") or MatchStatus.CREATED.value)),
            scheduled_time=row.get("scheduled_time"),
        )


@dataclass(frozen=True)
class TeamRef:
    id: int
    name: Optional[str]

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name}


@dataclass(frozen=True)
class MatchSummary:
    id: Optional[int]
    round_no: int
    position: int
    team1: Optional[TeamRef]
    team2: Optional[TeamRef]
    score1: Optional[int]
    score2: Optional[int]
    winner: Optional[TeamRef]
    completed: bool
    status: MatchStatus = MatchStatus.CREATED
    scheduled_time: Optional[datetime] = None

    @property
    def code(self) -> str:
        return match_code(self.round_no, self.position)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "round": self.round_no,
            "position": self.position,
            "team1": self.team1.to_dict() if self.team1 else None,
            "team2": self.team2.to_dict() if self.team2 else None,
            "score1": self.score1,
            "score2": self.score2,
            "winner": self.winner.to_dict() if self.winner else None,
            "completed": self.completed,
            "status": self.status.value,
            "scheduled_time": self.scheduled_time.isoformat() if self.scheduled_time else None,
        }


@dataclass(frozen=True)
class BracketRound:
    round_no: int
    label: str
    matches: list[MatchSummary] = field(default_factory=list)


@dataclass(frozen=True)
class BracketView:
    rounds: list[BracketRound]
    total_teams: int

    @property
    def final(self) -> Optional[MatchSummary]:
        if not self.rounds or self.rounds[-1].round_no == PRELIMINARY_ROUND:
            return None
        last = self.rounds[-1].matches
        return last[0] if len(last) == 1 else None

    @property
    def champion(self) -> Optional[TeamRef]:
        final = self.final
        return final.winner if final and final.completed else None

    def find(self, round_no: int, position: int) -> Optional[MatchSummary]:
        for r in self.rounds:
            if r.round_no != round_no:
                continue
            for m in r.matches:
                if m.position == position:
                    return m
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "rounds": [[m.to_dict() for m in r.matches] for r in self.rounds],
            "total_teams": self.total_teams,
        }
