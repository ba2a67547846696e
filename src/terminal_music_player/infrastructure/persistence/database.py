"""SQLite storage for the saved queue.

Each operation opens its own aiosqlite connection in WAL mode. An
in-memory database is shared between connections through a named
shared-cache URI and kept alive by one extra connection.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

import aiosqlite

from terminal_music_player.domain.shared.constants import DatabaseTables, SQLPragmas
from terminal_music_player.domain.shared.messages import LogTemplates

if TYPE_CHECKING:
    from ...config.settings import DatabaseSettings

logger = logging.getLogger(__name__)

MEMORY = ":memory:"

SCHEMA: tuple[str, ...] = (
    f"""
    CREATE TABLE IF NOT EXISTS {DatabaseTables.PLAYER_STATE} (
        name TEXT PRIMARY KEY,
        cursor INTEGER,
        ordering_mode TEXT NOT NULL DEFAULT 'sequential',
        repeat_mode TEXT NOT NULL DEFAULT 'off',
        volume REAL NOT NULL DEFAULT 0.5,
        updated_at TEXT NOT NULL
    )
    """,
    f"""
    CREATE TABLE IF NOT EXISTS {DatabaseTables.QUEUE_TRACKS} (
        queue_name TEXT NOT NULL
            REFERENCES {DatabaseTables.PLAYER_STATE}(name) ON DELETE CASCADE,
        position INTEGER NOT NULL,
        path TEXT NOT NULL,
        title TEXT,
        artist TEXT,
        album TEXT,
        duration_seconds REAL,
        PRIMARY KEY (queue_name, position)
    )
    """,
)


class Database:
    """Connection manager for the queue database.

    Accepts either a ``sqlite:///`` URL or a bare path; ``:memory:`` gives a
    private in-memory database that lives until :meth:`close`.
    """

    def __init__(self, url: str, settings: DatabaseSettings | None = None) -> None:
        self._db_path = url.removeprefix("sqlite:///")
        self._busy_timeout = settings.busy_timeout_ms if settings else 5000
        self._connection_timeout = settings.connection_timeout_s if settings else 10
        self._keepalive: aiosqlite.Connection | None = None
        self._initialized = False

    @property
    def db_path(self) -> str:
        return self._db_path

    @property
    def is_memory(self) -> bool:
        return self._db_path == MEMORY

    async def initialize(self) -> None:
        """Create the schema, and the database file's directory when needed."""
        if self._initialized:
            return

        if self.is_memory:
            self._keepalive = await self._connect()
        else:
            Path(self._db_path).expanduser().parent.mkdir(parents=True, exist_ok=True)

        async with self.transaction() as conn:
            for statement in SCHEMA:
                await conn.execute(statement)

        self._initialized = True
        logger.info(LogTemplates.DATABASE_INITIALIZED, self._db_path)

    async def close(self) -> None:
        keepalive, self._keepalive = self._keepalive, None
        if keepalive is not None:
            await keepalive.close()
        self._initialized = False
        logger.info(LogTemplates.DATABASE_CLOSED)

    # ---- Connections ----

    async def _connect(self) -> aiosqlite.Connection:
        if self.is_memory:
            target, uri = f"file:terminal-music-player-{id(self)}?mode=memory&cache=shared", True
        else:
            target, uri = str(Path(self._db_path).expanduser()), False

        conn = await aiosqlite.connect(target, uri=uri, timeout=self._connection_timeout)
        conn.row_factory = aiosqlite.Row
        for pragma in (
            SQLPragmas.JOURNAL_MODE_WAL,
            SQLPragmas.FOREIGN_KEYS_ON,
            SQLPragmas.BUSY_TIMEOUT.format(timeout=self._busy_timeout),
        ):
            await conn.execute(pragma)
        return conn

    @asynccontextmanager
    async def connection(self) -> AsyncGenerator[aiosqlite.Connection, None]:
        conn = await self._connect()
        try:
            yield conn
        finally:
            await conn.close()

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[aiosqlite.Connection, None]:
        """Commit on success, roll back on any exception."""
        async with self.connection() as conn:
            try:
                yield conn
            except BaseException:
                await conn.rollback()
                raise
            await conn.commit()

    # ---- Queries ----

    async def execute(self, sql: str, parameters: tuple[Any, ...] = ()) -> int:
        """Run one statement in its own transaction and return the affected row count."""
        async with self.transaction() as conn:
            cursor = await conn.execute(sql, parameters)
            return cursor.rowcount

    async def fetch_one(
        self, sql: str, parameters: tuple[Any, ...] = ()
    ) -> dict[str, Any] | None:
        rows = await self.fetch_all(sql, parameters)
        return rows[0] if rows else None

    async def fetch_all(self, sql: str, parameters: tuple[Any, ...] = ()) -> list[dict[str, Any]]:
        async with self.connection() as conn:
            rows = await conn.execute_fetchall(sql, parameters)
            return [dict(row) for row in rows]
