# db/pool.py
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import aiomysql

SCHEMA_PATH = Path(__file__).resolve().parent / "schema.sql"


@dataclass(frozen=True)
class MySqlPoolConfig:
    host: str
    port: int
    user: str
    password: str
    database: str
    minsize: int = 1
    maxsize: int = 5
    connect_timeout: int = 10


def split_statements(script: str) -> list[str]:
    """
    Split a schema script on ';' line endings, dropping '--' comment lines.
    Good enough for plain DDL; not a SQL parser.
    """
    statements: list[str] = []
    buf: list[str] = []
    for raw in script.splitlines():
        line = raw.strip()
        if not line or line.startswith("--"):
            continue
        buf.append(line)
        if line.endswith(";"):
            statements.append(" ".join(buf))
            buf = []
    if buf:
        statements.append(" ".join(buf))
    return statements


class DbPool:
    """
    Central DB pool lifecycle manager.
    - Create once at startup
    - Reuse pool everywhere (repositories)
    - Close on shutdown
    """

    def __init__(self) -> None:
        self._pool: Optional[aiomysql.Pool] = None

    @property
    def pool(self) -> aiomysql.Pool:
        if self._pool is None:
            raise RuntimeError("DB pool is not initialized. Call await DbPool.start() first.")
        return self._pool

    async def start(self, cfg: MySqlPoolConfig) -> None:
        if self._pool is not None:
            return

        self._pool = await aiomysql.create_pool(
            host=cfg.host,
            port=cfg.port,
            user=cfg.user,
            password=cfg.password,
            db=cfg.database,
            minsize=cfg.minsize,
            maxsize=cfg.maxsize,
            connect_timeout=cfg.connect_timeout,
            autocommit=True,  # repositories can do single statements without explicit commit
            charset="utf8mb4",
        )

        await self.ping()

    async def ping(self) -> None:
        """
        Verifies pool is usable. Raises if not.
        """
        async with self.pool.acquire() as conn:
            async with conn.cursor() as cur:
                await cur.execute("SELECT 1;")
                await cur.fetchone()

    async def apply_schema(self, path: Path = SCHEMA_PATH) -> int:
        """
        Runs the CREATE TABLE IF NOT EXISTS script. Returns the statement count.
        """
        statements = split_statements(path.read_text(encoding="utf-8"))
        async with self.pool.acquire() as conn:
            async with conn.cursor() as cur:
                for sql in statements:
                    await cur.execute(sql)
        return len(statements)

    async def close(self) -> None:
        if self._pool is None:
            return
        self._pool.close()
        await self._pool.wait_closed()
        self._pool = None
