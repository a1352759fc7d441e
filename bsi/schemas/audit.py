"""Pydantic schemas for audit log entries."""

from __future__ import annotations

import enum
from datetime import datetime

from pydantic import BaseModel
from pydantic.alias_generators import to_camel

AUDIT_TABLE = "logs"
AUDIT_LOG_LIMIT = 100

# Actor ids used when no real user can be attributed.
SYSTEM_ACTOR = "SYSTEM"
UNKNOWN_ACTOR = "UNKNOWN"


class AuditStatus(str, enum.Enum):
    SUCCESS = "SUCCESS"
    DENIED = "DENIED"


class AuditAction(str, enum.Enum):
    LOGIN = "LOGIN"
    REGISTER = "REGISTER"
    FEDERATED_AUTH = "FEDERATED_AUTH"
    PWD_RECOVERY_REQ = "PWD_RECOVERY_REQ"


def write_action(table: str) -> str:
    return f"WRITE_{table}"


def read_action(table: str) -> str:
    return f"READ_{table}"


class AuditEntry(BaseModel):
    id: str
    user_id: str
    action: str
    status: AuditStatus
    timestamp: datetime

    model_config = {"alias_generator": to_camel, "populate_by_name": True}
