# domain/enums.py
from __future__ import annotations

from enum import Enum


class TournamentStatus(str, Enum):
    DRAFT = "draft"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class MatchStatus(str, Enum):
    CREATED = "created"
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    FINISHED = "finished"


class Slot(int, Enum):
    TEAM1 = 1
    TEAM2 = 2
