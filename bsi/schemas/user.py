"""Pydantic schema for the user identity stored in the ``users`` table."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field, computed_field, model_validator
from pydantic.alias_generators import to_camel

from bsi.core.rbac import Role, permissions_for, role_for_email


class UserAuth(BaseModel):
    """An authenticated identity with its resolved permission set.

    ``permissions`` is always derived from ``role``; a stored value is
    ignored on load. Rows from older snapshots may lack ``name``,
    ``role`` or ``lastLogin``: the role then follows the email heuristic
    and the others get empty / current values.
    """

    id: str
    email: str
    name: str = ""
    role: Role
    is_authenticated: bool = True
    last_login: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "extra": "ignore",
    }

    @model_validator(mode="before")
    @classmethod
    def _default_role(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("role") is None and isinstance(data.get("email"), str):
            data = {**data, "role": role_for_email(data["email"])}
        return data

    @computed_field  # type: ignore[prop-decorator]
    @property
    def permissions(self) -> list[str]:
        return sorted(permissions_for(self.role))

    def to_row(self) -> dict:
        """Serialise to the camelCase layout used in the snapshot."""
        return self.model_dump(by_alias=True, mode="json")
