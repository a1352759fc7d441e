"""Audit log — bounded, newest-first trail of attempted actions."""

from __future__ import annotations

import enum
import logging

from pydantic import ValidationError

from bsi.schemas.audit import AUDIT_LOG_LIMIT, AUDIT_TABLE, AuditEntry, AuditStatus
from bsi.services.store import RecordStore, random_token, utc_now

logger = logging.getLogger(__name__)

__all__ = ["AUDIT_LOG_LIMIT", "AUDIT_TABLE", "AuditService"]


def _value(v: str | enum.Enum) -> str:
    return v.value if isinstance(v, enum.Enum) else v


class AuditService:
    """Records audit entries inside the store's ``logs`` table.

    Entries are inserted at the front; once the log holds
    ``AUDIT_LOG_LIMIT`` entries the oldest is evicted. Persisting is left
    to the caller, which saves once per operation.
    """

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def log(self, user_id: str, action: str | enum.Enum, status: AuditStatus) -> AuditEntry:
        entry = AuditEntry(
            id=random_token(9),
            user_id=user_id,
            action=_value(action),
            status=status,
            timestamp=utc_now(),
        )
        logs = self._store.table(AUDIT_TABLE, create=True)
        logs.insert(0, entry.model_dump(by_alias=True, mode="json"))
        del logs[AUDIT_LOG_LIMIT:]
        logger.info("Audit %s %s (actor %s)", entry.action, entry.status.value, user_id)
        return entry

    def entries(self, limit: int | None = None) -> list[AuditEntry]:
        """Return parsed entries, newest first.

        Rows that no longer parse (e.g. from a hand-edited snapshot) are
        skipped.
        """
        rows = self._store.table(AUDIT_TABLE)
        if limit is not None:
            rows = rows[:limit]
        parsed = []
        for row in rows:
            try:
                parsed.append(AuditEntry.model_validate(row))
            except ValidationError as exc:
                logger.warning("Skipping malformed audit row %r: %d errors", row.get("id"), exc.error_count())
        return parsed
