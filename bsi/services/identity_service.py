"""
Identity & session manager — sign-in, sign-up, federated sign-in and
password recovery against the ``users`` table.

This is a simulation: no credential is verified or stored, and recovery
sends nothing. Any existing identity authenticates with any secret.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from bsi.core.exceptions import (
    EmailNotFound,
    IdentityExists,
    IdentityNotFound,
    PersistenceFailure,
)
from bsi.core.rbac import role_for_email
from bsi.schemas.audit import AuditAction, AuditStatus
from bsi.schemas.user import UserAuth
from bsi.services.audit_service import AuditService
from bsi.services.store import RecordStore, random_token, utc_now

logger = logging.getLogger(__name__)

USERS_TABLE = "users"

# Stand-in for an OAuth provider: every federated sign-in is this user.
FEDERATED_EMAIL = "google.user@gmail.com"
FEDERATED_NAME = "Google User"


class IdentityService:
    def __init__(self, store: RecordStore, audit: AuditService) -> None:
        self._store = store
        self._audit = audit

    def _find(self, email: str) -> dict | None:
        return self._store.find_one(USERS_TABLE, "email", email)

    def _identity(self, row: dict) -> UserAuth:
        try:
            return UserAuth.model_validate(row)
        except ValidationError as exc:
            raise PersistenceFailure(
                f"Stored identity {row.get('email')!r} is unreadable ({exc.error_count()} errors)"
            ) from exc

    def _new_user_id(self) -> str:
        while True:
            user_id = f"USR-{random_token(6)}"
            if self._store.find_one(USERS_TABLE, "id", user_id) is None:
                return user_id

    async def authenticate(self, email: str, secret: str) -> UserAuth:
        """Resolve ``email`` to its identity and refresh ``lastLogin``.

        Raises:
            IdentityNotFound: If no user is registered with ``email``.
        """
        async with self._store.lock:
            row = self._find(email)
            if row is None:
                logger.info("Sign-in for unknown identity %s", email)
                raise IdentityNotFound()

            user = self._identity(row)
            user.last_login = utc_now()
            row.update(user.to_row())
            self._audit.log(user.id, AuditAction.LOGIN, AuditStatus.SUCCESS)
            await self._store.persist()
            return user

    async def register(self, name: str, email: str, secret: str) -> UserAuth:
        """Create a user; the role comes from the email heuristic.

        Raises:
            IdentityExists: If ``email`` is already registered.
        """
        async with self._store.lock:
            return await self._register(name, email)

    async def _register(self, name: str, email: str) -> UserAuth:
        if self._find(email) is not None:
            raise IdentityExists()

        user = UserAuth(
            id=self._new_user_id(),
            email=email,
            name=name,
            role=role_for_email(email),
            is_authenticated=True,
            last_login=utc_now(),
        )
        self._store.table(USERS_TABLE, create=True).append(user.to_row())
        self._audit.log(user.id, AuditAction.REGISTER, AuditStatus.SUCCESS)
        await self._store.persist()
        logger.info("Registered %s as %s (%s)", user.id, user.role.value, email)
        return user

    async def federated_auth(self) -> UserAuth:
        """Sign in as the fixed federated identity, registering it on first use."""
        async with self._store.lock:
            row = self._find(FEDERATED_EMAIL)
            if row is None:
                user = await self._register(FEDERATED_NAME, FEDERATED_EMAIL)
            else:
                user = self._identity(row)

            self._audit.log(user.id, AuditAction.FEDERATED_AUTH, AuditStatus.SUCCESS)
            await self._store.persist()
            return user

    async def reset_password(self, email: str) -> bool:
        """Log a recovery request. Nothing is changed or sent.

        Raises:
            EmailNotFound: If no user is registered with ``email``.
        """
        async with self._store.lock:
            row = self._find(email)
            if row is None:
                raise EmailNotFound()

            user = self._identity(row)
            self._audit.log(user.id, AuditAction.PWD_RECOVERY_REQ, AuditStatus.SUCCESS)
            await self._store.persist()
            return True
