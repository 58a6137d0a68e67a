"""
Shared fixtures: an in-memory store that honours the repository contract
(including transactional rollback), and services wired on top of it.
"""
from __future__ import annotations

import copy
import dataclasses
from contextlib import asynccontextmanager
from typing import AsyncIterator, Sequence

import pytest

from domain.enums import TournamentStatus
from domain.models import Match, Team, Tournament
from services.bracket_service import BracketService
from services.locks import TournamentLocks
from services.tournament_service import TournamentService


class MemoryDb:
    def __init__(self) -> None:
        self.tournaments: dict[int, Tournament] = {}
        self.teams: dict[int, Team] = {}
        self.matches: dict[int, Match] = {}
        self._ids = {"tournament": 0, "team": 0, "match": 0}
        self.commits = 0
        self.rollbacks = 0

    def next_id(self, kind: str) -> int:
        self._ids[kind] += 1
        return self._ids[kind]

    def _snapshot(self):
        return copy.deepcopy((self.tournaments, self.teams, self.matches, self._ids))

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["MemoryDb"]:
        snap = self._snapshot()
        try:
            yield self
        except Exception:
            self.tournaments, self.teams, self.matches, self._ids = snap
            self.rollbacks += 1
            raise
        self.commits += 1


class _MemoryRepo:
    def __init__(self, db: MemoryDb) -> None:
        self.db = db

    @asynccontextmanager
    async def unit_of_work(self) -> AsyncIterator[MemoryDb]:
        async with self.db.transaction() as tx:
            yield tx

    @asynccontextmanager
    async def _tx(self, tx):
        if tx is not None:
            yield tx
            return
        async with self.db.transaction() as own:
            yield own


class MemoryTournamentRepo(_MemoryRepo):
    async def create_tournament(self, *, name, total_teams, status=TournamentStatus.DRAFT, tx=None) -> int:
        async with self._tx(tx):
            tid = self.db.next_id("tournament")
            self.db.tournaments[tid] = Tournament(id=tid, name=name, total_teams=total_teams, status=status)
            return tid

    async def get_tournament(self, *, tournament_id):
        return self.db.tournaments.get(tournament_id)

    async def list_tournaments(self):
        return sorted(self.db.tournaments.values(), key=lambda t: t.id, reverse=True)

    async def set_status(self, *, tournament_id, status, tx=None) -> int:
        async with self._tx(tx):
            t = self.db.tournaments.get(tournament_id)
            if t is None:
                return 0
            self.db.tournaments[tournament_id] = dataclasses.replace(t, status=status)
            return 1

    async def delete_tournament(self, *, tournament_id, tx=None) -> int:
        async with self._tx(tx):
            return 1 if self.db.tournaments.pop(tournament_id, None) else 0


class MemoryTeamRepo(_MemoryRepo):
    async def create_teams(self, *, tournament_id, names: Sequence[str], tx=None) -> list[Team]:
        out = []
        async with self._tx(tx):
            for seed_position, name in enumerate(names):
                team = Team(id=self.db.next_id("team"), tournament_id=tournament_id, seed_position=seed_position, name=name)
                self.db.teams[team.id] = team
                out.append(team)
        return out

    async def list_teams(self, *, tournament_id) -> list[Team]:
        teams = [t for t in self.db.teams.values() if t.tournament_id == tournament_id]
        return sorted(teams, key=lambda t: (t.seed_position, t.id))

    async def delete_teams(self, *, tournament_id, tx=None) -> int:
        async with self._tx(tx):
            ids = [i for i, t in self.db.teams.items() if t.tournament_id == tournament_id]
            for i in ids:
                del self.db.teams[i]
            return len(ids)


class MemoryMatchRepo(_MemoryRepo):
    def __init__(self, db: MemoryDb) -> None:
        super().__init__(db)
        self.update_calls = 0
        self.fail_next_update = False

    async def create_many(self, matches, *, tx=None) -> list[Match]:
        async with self._tx(tx):
            for m in matches:
                if any(
                    x.tournament_id == m.tournament_id and x.key == m.key for x in self.db.matches.values()
                ):
                    raise RuntimeError(f"duplicate slot {m.key}")
                m.id = self.db.next_id("match")
                self.db.matches[m.id] = copy.copy(m)
        return list(matches)

    async def list_matches(self, *, tournament_id) -> list[Match]:
        ms = [copy.copy(m) for m in self.db.matches.values() if m.tournament_id == tournament_id]
        return sorted(ms, key=lambda m: m.key)

    async def get_match(self, *, tournament_id, match_id):
        m = self.db.matches.get(match_id)
        if m is None or m.tournament_id != tournament_id:
            return None
        return copy.copy(m)

    async def get_match_at(self, *, tournament_id, round_no, position):
        for m in self.db.matches.values():
            if m.tournament_id == tournament_id and m.key == (round_no, position):
                return copy.copy(m)
        return None

    async def update_matches(self, matches, *, tx=None) -> int:
        self.update_calls += 1
        async with self._tx(tx):
            n = 0
            for m in matches:
                self.db.matches[m.id] = copy.copy(m)
                n += 1
                if self.fail_next_update:
                    self.fail_next_update = False
                    raise RuntimeError("simulated storage failure")
            return n

    async def update_match(self, match, *, tx=None) -> int:
        return await self.update_matches([match], tx=tx)

    async def delete_matches(self, *, tournament_id, tx=None) -> int:
        async with self._tx(tx):
            ids = [i for i, m in self.db.matches.items() if m.tournament_id == tournament_id]
            for i in ids:
                del self.db.matches[i]
            return len(ids)

    async def replace_matches(self, *, tournament_id, matches, tx=None) -> list[Match]:
        async with self._tx(tx) as t:
            await self.delete_matches(tournament_id=tournament_id, tx=t)
            return await self.create_many(matches, tx=t)


@pytest.fixture
def memory_db() -> MemoryDb:
    return MemoryDb()


@pytest.fixture
def tournament_repo(memory_db) -> MemoryTournamentRepo:
    return MemoryTournamentRepo(memory_db)


@pytest.fixture
def team_repo(memory_db) -> MemoryTeamRepo:
    return MemoryTeamRepo(memory_db)


@pytest.fixture
def match_repo(memory_db) -> MemoryMatchRepo:
    return MemoryMatchRepo(memory_db)


@pytest.fixture
def bracket_service(tournament_repo, team_repo, match_repo) -> BracketService:
    return BracketService(
        tournament_repo=tournament_repo,
        team_repo=team_repo,
        match_repo=match_repo,
        locks=TournamentLocks(),
    )


@pytest.fixture
def tournament_service(tournament_repo, team_repo, match_repo, bracket_service) -> TournamentService:
    return TournamentService(
        tournament_repo=tournament_repo,
        team_repo=team_repo,
        match_repo=match_repo,
        bracket_service=bracket_service,
    )


def make_teams(n: int, *, tournament_id: int = 1, first_id: int = 100) -> list[Team]:
    return [Team(id=first_id + i, tournament_id=tournament_id, seed_position=i, name=f"T{i}") for i in range(n)]


@pytest.fixture
def teams_factory():
    return make_teams


@pytest.fixture
def create_tournament(tournament_service):
    async def _create(n: int, name: str = "Cup"):
        return await tournament_service.create_tournament(name=name, team_names=[f"T{i}" for i in range(n)])

    return _create
