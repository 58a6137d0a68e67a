# repositories/base_repo.py
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Iterable, Mapping, Sequence

import aiomysql

from db.pool import DbPool
from db.tx import Tx, get_cursor, transaction


class BaseRepo:
    """
    Base repository with small helpers to keep concrete repos readable.
    Repos should not contain bracket rules.

    Write helpers take an optional open Tx; without one each call commits
    on its own.
    """

    def __init__(self, db: DbPool) -> None:
        self._db = db

    @property
    def pool(self) -> aiomysql.Pool:
        return self._db.pool

    @asynccontextmanager
    async def unit_of_work(self) -> AsyncIterator[Tx]:
        async with transaction(self.pool) as tx:
            yield tx

    @asynccontextmanager
    async def _tx(self, tx: Tx | None) -> AsyncIterator[Tx]:
        if tx is not None:
            yield tx
            return
        async with transaction(self.pool) as own:
            yield own

    async def fetch_one(self, sql: str, params: Sequence[Any] | None = None) -> Mapping[str, Any] | None:
        async with get_cursor(self.pool) as cur:
            await cur.execute(sql, params or ())
            return await cur.fetchone()

    async def fetch_all(self, sql: str, params: Sequence[Any] | None = None) -> list[Mapping[str, Any]]:
        async with get_cursor(self.pool) as cur:
            await cur.execute(sql, params or ())
            rows = await cur.fetchall()
            return list(rows or [])

    async def execute(self, sql: str, params: Sequence[Any] | None = None, *, tx: Tx | None = None) -> int:
        async with self._tx(tx) as t:
            return await t.execute(sql, params)

    async def execute_many(
        self, sql: str, params_seq: Iterable[Sequence[Any]], *, tx: Tx | None = None
    ) -> int:
        async with self._tx(tx) as t:
            return await t.execute_many(sql, params_seq)

    async def insert_returning_id(self, sql: str, params: Sequence[Any] | None = None, *, tx: Tx | None = None) -> int:
        async with self._tx(tx) as t:
            return await t.insert(sql, params)
