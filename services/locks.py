# services/locks.py
from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator


@dataclass
class _Entry:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


class TournamentLocks:
    """
    One asyncio.Lock per tournament id.

    Every mutating bracket operation holds its tournament's lock for the whole
    read-modify-write, so two result submissions never interleave their
    propagation chains. Different tournaments never block each other.

    An entry lives only while some caller holds or waits for it.
    """

    def __init__(self) -> None:
        self._entries: dict[int, _Entry] = {}

    @asynccontextmanager
    async def hold(self, tournament_id: int) -> AsyncIterator[None]:
        key = int(tournament_id)
        entry = self._entries.get(key)
        if entry is None:
            entry = self._entries[key] = _Entry()
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0:
                del self._entries[key]

    def locked(self, tournament_id: int) -> bool:
        entry = self._entries.get(int(tournament_id))
        return entry is not None and entry.lock.locked()

    def __len__(self) -> int:
        return len(self._entries)
