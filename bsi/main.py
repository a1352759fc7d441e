"""
BSI composition root.

This is the **only** place that assembles the core: it owns the record
store and injects it into the identity manager and the record service.
Collaborators hold on to the returned ``Backend`` for the whole session.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from bsi.core.config import Settings, settings
from bsi.core.rbac import Role
from bsi.schemas.health import SystemHealth
from bsi.schemas.user import UserAuth
from bsi.services.audit_service import AuditService
from bsi.services.identity_service import IdentityService
from bsi.services.persistence import Persister, build_persister
from bsi.services.record_service import RecordService
from bsi.services.store import RecordStore

logger = logging.getLogger(__name__)


def configure_logging(cfg: Settings = settings) -> None:
    logging.basicConfig(
        level=getattr(logging, cfg.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )


@dataclass
class Backend:
    store: RecordStore
    audit: AuditService
    identity: IdentityService
    records: RecordService

    # ── Collaborator-facing operations ──────────────────────────────
    async def authenticate(self, email: str, secret: str) -> UserAuth:
        return await self.identity.authenticate(email, secret)

    async def register(self, name: str, email: str, secret: str) -> UserAuth:
        return await self.identity.register(name, email, secret)

    async def federated_auth(self) -> UserAuth:
        return await self.identity.federated_auth()

    async def reset_password(self, email: str) -> bool:
        return await self.identity.reset_password(email)

    async def write(self, table: str, payload: Mapping[str, Any], role: Role | str) -> bool:
        return await self.records.write(table, payload, role)

    async def read_own(self, table: str, user_id: str, role: Role | str) -> list[dict[str, Any]]:
        return await self.records.read_own(table, user_id, role)

    def system_health(self) -> SystemHealth:
        """Read-only summary of the in-memory state. Never fails."""
        return SystemHealth(
            schema_version=self.store.schema_version,
            tables=self.store.table_count,
            records=self.store.record_count,
            persisted=self.store.last_persist_error is None,
        )


async def create_backend(
    cfg: Settings | None = None,
    persister: Persister | None = None,
) -> Backend:
    """Load the snapshot and wire the services around one shared store."""
    cfg = cfg or settings
    configure_logging(cfg)
    if persister is None:
        persister = build_persister(cfg)
    store = await RecordStore.open(persister, cfg.SCHEMA_VERSION)
    audit = AuditService(store)
    backend = Backend(
        store=store,
        audit=audit,
        identity=IdentityService(store, audit),
        records=RecordService(store, audit),
    )
    logger.info("%s v%s ready (%s backend)", cfg.PROJECT_NAME, cfg.VERSION, cfg.STORAGE_BACKEND)
    return backend
