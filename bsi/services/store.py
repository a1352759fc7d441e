"""
Record store — named tables of opaque records plus the audit log.

The whole store is serialised as one JSON object under a single storage
key and written back in full after every mutation. A corrupt snapshot is
discarded on load rather than blocking startup.
"""

from __future__ import annotations

import asyncio
import json
import logging
import secrets
import string
import warnings
from datetime import datetime, timezone
from typing import Any

from bsi.core.config import settings
from bsi.core.exceptions import PersistenceFailure, PersistenceWarning
from bsi.schemas.audit import AUDIT_LOG_LIMIT, AUDIT_TABLE
from bsi.services.persistence import Persister

logger = logging.getLogger(__name__)

DEFAULT_TABLES = (
    "users",
    "profiles",
    "assessments",
    "reflections",
    "plans",
    "skill_audits",
    "logs",
)
SCHEMA_TAG = "schemaVersion"

_ID_ALPHABET = string.ascii_lowercase + string.digits


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def random_token(length: int) -> str:
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(length))


def _default_schema() -> dict[str, list[dict[str, Any]]]:
    return {name: [] for name in DEFAULT_TABLES}


class RecordStore:
    """In-memory tables with write-through snapshot persistence.

    ``lock`` serialises every read-modify-persist sequence; services hold
    it for the whole of an operation.
    """

    def __init__(self, persister: Persister, schema_version: str | None = None) -> None:
        self.persister = persister
        self.schema_version = schema_version or settings.SCHEMA_VERSION
        self.tables: dict[str, list[dict[str, Any]]] = _default_schema()
        self.lock = asyncio.Lock()
        self.last_persist_error: str | None = None

    @classmethod
    async def open(cls, persister: Persister, schema_version: str | None = None) -> RecordStore:
        store = cls(persister, schema_version)
        await store.load()
        return store

    # ── Snapshot ────────────────────────────────────────────────────
    async def load(self) -> None:
        """Load the snapshot, merging it shallowly over the default schema.

        Never raises: unreadable or corrupt content resets the store to
        the default schema, which is then written back.
        """
        try:
            blob = await self.persister.load()
        except PersistenceFailure as exc:
            logger.error("Database unreadable. Re-initializing: %s", exc.message)
            await self._reinitialise()
            return

        if blob is None:
            logger.info("No snapshot found, starting with empty schema")
            self.tables = _default_schema()
            return

        try:
            parsed = json.loads(blob)
        except (ValueError, RecursionError) as exc:
            logger.error("Database corrupted. Re-initializing: %s", exc)
            await self._reinitialise()
            return
        if not isinstance(parsed, dict):
            logger.error("Database corrupted. Re-initializing: snapshot root is not an object")
            await self._reinitialise()
            return

        version = parsed.pop(SCHEMA_TAG, None)
        if version is not None and version != self.schema_version:
            logger.info("Snapshot schema %s loaded by %s", version, self.schema_version)

        merged = _default_schema()
        for name, rows in parsed.items():
            if not isinstance(rows, list):
                logger.warning("Dropping table %r: expected a list, got %s", name, type(rows).__name__)
                continue
            kept = [row for row in rows if isinstance(row, dict)]
            if len(kept) != len(rows):
                logger.warning("Dropped %d malformed rows from %r", len(rows) - len(kept), name)
            merged[name] = kept
        if len(merged[AUDIT_TABLE]) > AUDIT_LOG_LIMIT:
            logger.warning("Trimming audit log from %d to %d entries", len(merged[AUDIT_TABLE]), AUDIT_LOG_LIMIT)
            del merged[AUDIT_TABLE][AUDIT_LOG_LIMIT:]
        self.tables = merged
        logger.info("Snapshot loaded: %d tables, %d records", self.table_count, self.record_count)

    async def _reinitialise(self) -> None:
        self.tables = _default_schema()
        await self.persist()

    def serialise(self) -> str:
        return json.dumps({SCHEMA_TAG: self.schema_version, **self.tables}, default=str)

    async def persist(self) -> bool:
        """Write the full snapshot.

        A failed save keeps the in-memory state, logs, and emits a
        ``PersistenceWarning`` instead of raising.
        """
        try:
            await self.persister.save(self.serialise())
        except PersistenceFailure as exc:
            self.last_persist_error = exc.message
            logger.warning("Snapshot persist failed: %s", exc.message)
            warnings.warn(exc.message, PersistenceWarning, stacklevel=2)
            return False
        self.last_persist_error = None
        logger.debug("Snapshot saved: %d tables", self.table_count)
        return True

    async def reset(self) -> None:
        """Clear every table and persist the empty default schema."""
        async with self.lock:
            await self._reinitialise()

    # ── Tables ──────────────────────────────────────────────────────
    def table(self, name: str, create: bool = False) -> list[dict[str, Any]]:
        """Return the live row list for ``name``.

        A missing table yields an empty list, created and kept only
        when ``create`` is set.
        """
        if name in self.tables:
            return self.tables[name]
        if create:
            self.tables[name] = []
            return self.tables[name]
        return []

    def find_one(self, table: str, field: str, value: Any) -> dict[str, Any] | None:
        for row in self.table(table):
            if row.get(field) == value:
                return row
        return None

    @property
    def table_count(self) -> int:
        return len(self.tables)

    @property
    def record_count(self) -> int:
        return sum(len(rows) for rows in self.tables.values())
