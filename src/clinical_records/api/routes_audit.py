from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from src.clinical_records.domain.models.audit_log import AuditAction
from src.clinical_records.domain.models.user import User, UserRole
from src.clinical_records.security import require_roles
from src.clinical_records.services.audit.service import AuditLogPage, audit_service

router = APIRouter(prefix="/audit-logs", tags=["audit"])


@router.get("", response_model=AuditLogPage)
async def list_audit_logs(
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    action: Optional[str] = None,
    user_id: Optional[int] = None,
    current_user: User = Depends(require_roles(UserRole.ADMIN)),
) -> AuditLogPage:
    result = audit_service.list_logs(page=page, limit=limit, action=action, user_id=user_id)

    audit_service.log_event(
        action=AuditAction.AUDIT_LOGS_ACCESSED,
        user_id=current_user.id,
        resource_type="audit_log",
        details={"page": page, "limit": limit, "filters": {"action": action, "user_id": user_id}},
        request=request,
    )
    return result
