"""
Access-controlled record service — the generic read/write path used by
profiles, assessments, reflections, plans and skill audits.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from bsi.core.exceptions import InvalidRecord, RbacViolation
from bsi.core.rbac import Action, Role, has_permission
from bsi.schemas.audit import (
    SYSTEM_ACTOR,
    UNKNOWN_ACTOR,
    AuditStatus,
    read_action,
    write_action,
)
from bsi.schemas.record import OWNER_FIELD, RecordPayload
from bsi.services.audit_service import AuditService
from bsi.services.store import RecordStore, utc_now

logger = logging.getLogger(__name__)


class RecordService:
    def __init__(self, store: RecordStore, audit: AuditService) -> None:
        self._store = store
        self._audit = audit

    async def write(self, table: str, payload: Mapping[str, Any], role: Role | str) -> bool:
        """Append ``payload`` to ``table`` if ``role`` may write.

        The stored copy gets an ``updatedAt`` timestamp; ``payload`` itself
        is left untouched.

        Raises:
            RbacViolation: If ``role`` lacks WRITE_OWN (audited as DENIED).
            InvalidRecord: If ``payload`` is not a mapping or its owner id
                is not a string.
        """
        async with self._store.lock:
            if not has_permission(role, Action.WRITE_OWN):
                self._audit.log(UNKNOWN_ACTOR, write_action(table), AuditStatus.DENIED)
                await self._store.persist()
                logger.warning("Write to %s denied for role %s", table, Role(role).value)
                raise RbacViolation()

            if not isinstance(payload, Mapping):
                raise InvalidRecord(f"Record for {table} must be a mapping")
            try:
                record = RecordPayload.model_validate(payload)
            except ValidationError as exc:
                raise InvalidRecord(f"Invalid record for {table}: {exc.errors()[0]['msg']}") from exc

            row = {**payload, "updatedAt": utc_now().isoformat()}
            self._store.table(table, create=True).append(row)
            self._audit.log(record.user_id or SYSTEM_ACTOR, write_action(table), AuditStatus.SUCCESS)
            await self._store.persist()
            return True

    async def read_own(self, table: str, user_id: str, role: Role | str) -> list[dict[str, Any]]:
        """Return copies of ``user_id``'s records in ``table``, in stored order.

        Raises:
            RbacViolation: If ``role`` lacks READ_OWN (audited as DENIED).
        """
        async with self._store.lock:
            if not has_permission(role, Action.READ_OWN):
                self._audit.log(user_id, read_action(table), AuditStatus.DENIED)
                await self._store.persist()
                logger.warning("Read of %s denied for role %s", table, Role(role).value)
                raise RbacViolation()

            return [dict(row) for row in self._store.table(table) if row.get(OWNER_FIELD) == user_id]
