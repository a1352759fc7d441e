"""Pydantic schema for opaque table records."""

from __future__ import annotations

from pydantic import BaseModel, Field

OWNER_FIELD = "userId"


class RecordPayload(BaseModel):
    """A record is any mapping; only the optional owner id is typed.

    Every other key is carried through untouched.
    """

    user_id: str | None = Field(default=None, alias=OWNER_FIELD)

    model_config = {"extra": "allow"}
