from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel

from src.clinical_records.domain.models.user import UserRole


class AuditAction:
    """Well-known audit action names."""

    AUTH_FAILED = "AUTH_FAILED"
    AUTHORIZATION_FAILED = "AUTHORIZATION_FAILED"
    LOGIN_SUCCESS = "LOGIN_SUCCESS"
    LOGIN_FAILED = "LOGIN_FAILED"
    LOGIN_BLOCKED = "LOGIN_BLOCKED"
    PATIENTS_LIST_ACCESSED = "PATIENTS_LIST_ACCESSED"
    PATIENT_CREATED = "PATIENT_CREATED"
    MEDICAL_RECORDS_ACCESSED = "MEDICAL_RECORDS_ACCESSED"
    MEDICAL_RECORD_CREATED = "MEDICAL_RECORD_CREATED"
    AUDIT_LOGS_ACCESSED = "AUDIT_LOGS_ACCESSED"
    SERVER_ERROR = "SERVER_ERROR"


class AuditLog(BaseModel):
    """A persisted audit trail entry.

    ``details`` carries small, non-secret metadata (ids, counts, role names);
    passwords and tokens never end up here.
    """

    id: int
    user_id: Optional[int] = None
    action: str
    resource_type: Optional[str] = None
    resource_id: Optional[int] = None
    details: Optional[Dict[str, Any]] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    timestamp: datetime


class AuditUserSummary(BaseModel):
    username: str
    name: str
    role: UserRole


class AuditLogEntry(AuditLog):
    """Audit entry as listed to administrators, with the acting user."""

    user: Optional[AuditUserSummary] = None
