"""SQLite implementation of the queue repository."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from terminal_music_player.domain.music.entities import SavedQueue, Track
from terminal_music_player.domain.music.repository import DEFAULT_QUEUE_NAME, QueueRepository
from terminal_music_player.domain.music.value_objects import OrderingMode, RepeatMode
from terminal_music_player.domain.shared.constants import DatabaseTables
from terminal_music_player.domain.shared.datetime_utils import UtcDateTime
from terminal_music_player.domain.shared.messages import LogTemplates

if TYPE_CHECKING:
    from ..database import Database

logger = logging.getLogger(__name__)


class SQLiteQueueRepository(QueueRepository):
    def __init__(self, database: Database) -> None:
        self._db = database

    async def get(self, name: str = DEFAULT_QUEUE_NAME) -> SavedQueue | None:
        state_row = await self._db.fetch_one(
            f"SELECT * FROM {DatabaseTables.PLAYER_STATE} WHERE name = ?",
            (name,),
        )

        if state_row is None:
            return None

        track_rows = await self._db.fetch_all(
            f"""
            SELECT * FROM {DatabaseTables.QUEUE_TRACKS}
            WHERE queue_name = ?
            ORDER BY position ASC
            """,
            (name,),
        )

        tracks = [self._row_to_track(row) for row in track_rows]
        cursor = state_row["cursor"]
        if cursor is not None and not 0 <= cursor < len(tracks):
            cursor = None

        saved = SavedQueue(
            tracks=tracks,
            cursor=cursor,
            mode=OrderingMode(state_row["ordering_mode"]),
            repeat=RepeatMode(state_row["repeat_mode"]),
            volume=min(1.0, max(0.0, float(state_row["volume"]))),
        )
        logger.debug(LogTemplates.QUEUE_RESTORED, len(tracks), cursor)
        return saved

    async def save(self, saved: SavedQueue, name: str = DEFAULT_QUEUE_NAME) -> None:
        async with self._db.transaction() as conn:
            await conn.execute(
                f"""
                INSERT INTO {DatabaseTables.PLAYER_STATE}
                    (name, cursor, ordering_mode, repeat_mode, volume, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(name) DO UPDATE SET
                    cursor = excluded.cursor,
                    ordering_mode = excluded.ordering_mode,
                    repeat_mode = excluded.repeat_mode,
                    volume = excluded.volume,
                    updated_at = excluded.updated_at
                """,
                (
                    name,
                    saved.cursor,
                    saved.mode.value,
                    saved.repeat.value,
                    saved.volume,
                    UtcDateTime.now().iso,
                ),
            )

            await conn.execute(
                f"DELETE FROM {DatabaseTables.QUEUE_TRACKS} WHERE queue_name = ?",
                (name,),
            )

            await conn.executemany(
                f"""
                INSERT INTO {DatabaseTables.QUEUE_TRACKS} (
                    queue_name, position, path, title, artist, album, duration_seconds
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    self._track_to_params(track, name, position)
                    for position, track in enumerate(saved.tracks)
                ],
            )

        logger.debug(LogTemplates.QUEUE_SAVED, len(saved.tracks), saved.cursor)

    async def delete(self, name: str = DEFAULT_QUEUE_NAME) -> bool:
        # Track rows go with the state row (ON DELETE CASCADE).
        deleted = await self._db.execute(
            f"DELETE FROM {DatabaseTables.PLAYER_STATE} WHERE name = ?",
            (name,),
        )
        if deleted:
            logger.debug(LogTemplates.QUEUE_DELETED)
        return deleted > 0

    async def exists(self, name: str = DEFAULT_QUEUE_NAME) -> bool:
        row = await self._db.fetch_one(
            f"SELECT 1 FROM {DatabaseTables.PLAYER_STATE} WHERE name = ?",
            (name,),
        )
        return row is not None

    def _row_to_track(self, row: dict[str, Any]) -> Track:
        return Track(
            path=row["path"],
            title=row["title"],
            artist=row["artist"],
            album=row["album"],
            duration_seconds=row["duration_seconds"],
        )

    def _track_to_params(self, track: Track, name: str, position: int) -> tuple[Any, ...]:
        return (
            name,
            position,
            track.path,
            track.title,
            track.artist,
            track.album,
            track.duration_seconds,
        )
