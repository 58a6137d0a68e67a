# db/tx.py
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Iterable, Mapping, Sequence

import aiomysql


class Tx:
    """
    A connection + cursor pair inside an open transaction.
    Repositories accept one of these so several writes can share a commit.
    """

    def __init__(self, conn: aiomysql.Connection, cur: aiomysql.Cursor) -> None:
        self.conn = conn
        self.cur = cur

    async def execute(self, sql: str, params: Sequence[Any] | None = None) -> int:
        await self.cur.execute(sql, params or ())
        return self.cur.rowcount

    async def execute_many(self, sql: str, params_seq: Iterable[Sequence[Any]]) -> int:
        await self.cur.executemany(sql, list(params_seq))
        return self.cur.rowcount

    async def insert(self, sql: str, params: Sequence[Any] | None = None) -> int:
        await self.cur.execute(sql, params or ())
        return int(self.cur.lastrowid)

    async def fetch_all(self, sql: str, params: Sequence[Any] | None = None) -> list[Mapping[str, Any]]:
        await self.cur.execute(sql, params or ())
        rows = await self.cur.fetchall()
        return list(rows or [])


@asynccontextmanager
async def get_cursor(pool: aiomysql.Pool) -> AsyncIterator[aiomysql.Cursor]:
    """
    Acquire a DictCursor for autocommit reads.
    """
    async with pool.acquire() as conn:
        async with conn.cursor(aiomysql.DictCursor) as cur:
            yield cur


@asynccontextmanager
async def transaction(pool: aiomysql.Pool) -> AsyncIterator[Tx]:
    """
    Runs statements inside a transaction.
    - Commits on success
    - Rolls back on exception

    Usage:
        async with transaction(pool) as tx:
            await match_repo.update_matches(matches, tx=tx)
            await tournament_repo.set_status(..., tx=tx)
    """
    async with pool.acquire() as conn:
        # pool runs with autocommit=True; explicit begin/commit/rollback still applies
        await conn.begin()
        try:
            async with conn.cursor(aiomysql.DictCursor) as cur:
                yield Tx(conn, cur)
            await conn.commit()
        except Exception:
            await conn.rollback()
            raise
