"""
Snapshot persistence for the EPG cache

Serializes a CacheIndex into a standalone SQLite file and reads it back at startup.
"""
import logging
import os
import sqlite3
from pathlib import Path
from time import perf_counter

from sqlalchemy import insert, select
from sqlalchemy.exc import SQLAlchemyError

from app.database import create_schema, create_snapshot_engine, session_scope
from app.exceptions import NoSnapshot, PersistError, SnapshotCorrupt
from app.models import ChannelName, ProgramItemRow, SnapshotMeta
from app.services.epg_types import CacheIndex, ProgramItem
from app.utils.file_operations import cleanup_temp_file


logger = logging.getLogger(__name__)

SNAPSHOT_META_ID = 1


class SnapshotRepository:
    """Reads and writes the durable CacheIndex snapshot."""

    def __init__(self, database_path: Path | str):
        self.path = Path(database_path)

    @property
    def _staging_path(self) -> Path:
        return self.path.with_name(self.path.name + ".tmp")

    async def save(self, index: CacheIndex) -> None:
        """
        Write the index to a staging file and swap it over the snapshot.

        Raises:
            PersistError: If the snapshot cannot be written
        """
        started = perf_counter()
        staging = self._staging_path
        cleanup_temp_file(staging)

        channel_rows = [
            {"name": name, "channel_id": channel_id}
            for name, channel_id in index.channel_map.items()
        ]
        item_rows = [
            {
                "channel_id": channel_id,
                "date": date,
                "start": item.start,
                "end": item.end,
                "title": item.title,
            }
            for channel_id, dates in index.program_data.items()
            for date, items in dates.items()
            for item in items
        ]

        engine = create_snapshot_engine(staging)
        try:
            await create_schema(engine)
            async with session_scope(engine) as session:
                session.add(SnapshotMeta(
                    id=SNAPSHOT_META_ID,
                    channel_count=len(channel_rows),
                    item_count=len(item_rows),
                ))
                if channel_rows:
                    await session.execute(insert(ChannelName), channel_rows)
                if item_rows:
                    await session.execute(insert(ProgramItemRow), item_rows)
        except (SQLAlchemyError, sqlite3.Error, OSError) as exc:
            logger.error("Failed to write snapshot to %s: %s", staging, exc)
            cleanup_temp_file(staging)
            raise PersistError(f"Failed to write snapshot: {exc}") from exc
        finally:
            await engine.dispose()

        try:
            os.replace(staging, self.path)
        except OSError as exc:
            cleanup_temp_file(staging)
            raise PersistError(f"Failed to install snapshot at {self.path}: {exc}") from exc

        logger.info(
            "Saved snapshot to %s: %s channels, %s programmes in %.2fs",
            self.path,
            len(channel_rows),
            len(item_rows),
            perf_counter() - started,
        )

    async def load(self) -> CacheIndex:
        """
        Read the snapshot back into a CacheIndex.

        Raises:
            NoSnapshot: If no snapshot has been written
            SnapshotCorrupt: If the snapshot is unreadable or incomplete
        """
        try:
            missing = not self.path.exists() or self.path.stat().st_size == 0
        except OSError as exc:
            logger.error("Cannot access snapshot %s: %s", self.path, exc)
            raise SnapshotCorrupt(f"Cannot access snapshot {self.path}: {exc}") from exc
        if missing:
            raise NoSnapshot(f"No snapshot at {self.path}")

        engine = create_snapshot_engine(self.path)
        try:
            async with session_scope(engine) as session:
                meta = await session.get(SnapshotMeta, SNAPSHOT_META_ID)
                if meta is None:
                    raise NoSnapshot(f"Snapshot at {self.path} has no metadata row")

                names = (await session.execute(select(ChannelName))).scalars().all()
                rows = (
                    await session.execute(select(ProgramItemRow).order_by(ProgramItemRow.id))
                ).scalars().all()
                expected_channels = meta.channel_count
                expected_items = meta.item_count
        except (SQLAlchemyError, sqlite3.Error) as exc:
            logger.error("Failed to read snapshot %s: %s", self.path, exc)
            raise SnapshotCorrupt(f"Unreadable snapshot {self.path}: {exc}") from exc
        finally:
            await engine.dispose()

        if len(names) != expected_channels or len(rows) != expected_items:
            raise SnapshotCorrupt(
                f"Snapshot {self.path} is incomplete: "
                f"{len(names)}/{expected_channels} channels, {len(rows)}/{expected_items} programmes"
            )

        program_data: dict[str, dict[str, list[ProgramItem]]] = {}
        for row in rows:
            item = ProgramItem(start=row.start, end=row.end, title=row.title)
            program_data.setdefault(row.channel_id, {}).setdefault(row.date, []).append(item)

        index = CacheIndex(
            channel_map={row.name: row.channel_id for row in names},
            program_data=program_data,
        )
        logger.info(
            "Loaded snapshot from %s: %s channels, %s programmes",
            self.path,
            len(index.channel_map),
            index.program_count,
        )
        return index
