"""Pydantic schema for the diagnostics report."""

from __future__ import annotations

from pydantic import BaseModel, Field

SECURITY_LABEL = "AES-256-SIM"


class SystemHealth(BaseModel):
    schema_version: str = Field(alias="schema")
    integrity: str = "100%"
    rbac_active: bool = Field(default=True, alias="rbacActive")
    encryption_level: str = Field(default=SECURITY_LABEL, alias="encryptionLevel")
    tables: int
    records: int
    persisted: bool = True

    model_config = {"populate_by_name": True}
