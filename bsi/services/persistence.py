"""
Snapshot persisters — where the serialised store lives between processes.

Every backend stores one opaque text blob under a storage key and raises
``PersistenceFailure`` when it cannot read or write it.
"""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from bsi.core.config import Settings
from bsi.core.exceptions import PersistenceFailure
from bsi.db.base import Base
from bsi.db.session import build_engine, build_session_factory
from bsi.models.snapshot import Snapshot

logger = logging.getLogger(__name__)


class Persister(Protocol):
    async def load(self) -> str | None: ...

    async def save(self, blob: str) -> None: ...


class MemoryPersister:
    """Process-local persister; survives store re-creation, not restarts."""

    def __init__(self, key: str = "FUTUREPATH_DB", initial: str | None = None) -> None:
        self.key = key
        self.blobs: dict[str, str] = {}
        if initial is not None:
            self.blobs[key] = initial

    async def load(self) -> str | None:
        return self.blobs.get(self.key)

    async def save(self, blob: str) -> None:
        self.blobs[self.key] = blob


class FilePersister:
    """JSON file on local disk, replaced atomically on every save."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path)

    def _read(self) -> str | None:
        if not self.path.exists():
            return None
        return self.path.read_text(encoding="utf-8")

    def _write(self, blob: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        tmp.write_text(blob, encoding="utf-8")
        os.replace(tmp, self.path)

    async def load(self) -> str | None:
        try:
            return await asyncio.to_thread(self._read)
        except (OSError, UnicodeDecodeError) as exc:
            raise PersistenceFailure(f"Cannot read snapshot {self.path}: {exc}") from exc

    async def save(self, blob: str) -> None:
        try:
            await asyncio.to_thread(self._write, blob)
        except OSError as exc:
            raise PersistenceFailure(f"Cannot write snapshot {self.path}: {exc}") from exc


class DatabasePersister:
    """One ``snapshots`` row per storage key, via async SQLAlchemy."""

    def __init__(self, database_url: str, key: str, schema_version: str) -> None:
        self.key = key
        self.schema_version = schema_version
        self.engine = build_engine(database_url)
        self._session_factory = build_session_factory(self.engine)
        self._ready = False

    async def _ensure_schema(self) -> None:
        if self._ready:
            return
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        self._ready = True
        logger.info("Snapshot table initialised")

    async def load(self) -> str | None:
        try:
            await self._ensure_schema()
            async with self._session_factory() as session:
                result = await session.execute(
                    select(Snapshot.payload).where(Snapshot.key == self.key)
                )
                return result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise PersistenceFailure(f"Cannot read snapshot {self.key!r}: {exc}") from exc

    async def save(self, blob: str) -> None:
        try:
            await self._ensure_schema()
            async with self._session_factory() as session:
                await session.merge(
                    Snapshot(key=self.key, schema_version=self.schema_version, payload=blob)
                )
                await session.commit()
        except SQLAlchemyError as exc:
            raise PersistenceFailure(f"Cannot write snapshot {self.key!r}: {exc}") from exc

    async def dispose(self) -> None:
        await self.engine.dispose()


def build_persister(cfg: Settings) -> Persister:
    """Pick the snapshot backend named by ``STORAGE_BACKEND``."""
    if cfg.STORAGE_BACKEND == "memory":
        return MemoryPersister(cfg.STORAGE_KEY)
    if cfg.STORAGE_BACKEND == "database":
        return DatabasePersister(cfg.DATABASE_URL, cfg.STORAGE_KEY, cfg.SCHEMA_VERSION)
    return FilePersister(cfg.SNAPSHOT_PATH)
