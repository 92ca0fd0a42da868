from __future__ import annotations

import json
import logging
import math
from typing import Any, Dict, List, Optional, Union

from fastapi import Request
from pydantic import BaseModel, ConfigDict, Field

from src.clinical_records.config import settings
from src.clinical_records.domain.models.audit_log import AuditLog, AuditLogEntry, AuditUserSummary
from src.clinical_records.domain.models.timestamps import utc_now
from src.clinical_records.infra.db.registry import repositories

logger = logging.getLogger("audit")


class AuditLogPage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    logs: List[AuditLogEntry]
    total: int
    page: int
    total_pages: int = Field(alias="totalPages")


def client_address(request: Request) -> Optional[str]:
    """Address of the caller, as seen by the rate limiter and the audit trail.

    X-Forwarded-For is client-controlled, so it is only read when
    TRUST_PROXY_HEADERS is enabled.
    """

    forwarded_for = request.headers.get("X-Forwarded-For") if settings.trust_proxy_headers else None
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    if request.client:
        return request.client.host
    return None


class AuditService:
    def log_event(
        self,
        *,
        action: str,
        user_id: Optional[int] = None,
        resource_type: Optional[str] = None,
        resource_id: Optional[int] = None,
        details: Union[str, Dict[str, Any], None] = None,
        request: Optional[Request] = None,
    ) -> Optional[AuditLog]:
        """Record one audit event.

        - `action`: upper-case verb, see ``AuditAction``.
        - `user_id`: acting user. When omitted, the user authenticated for
          the current request is used, if any.
        - `details`: small non-secret metadata; a plain string is stored as
          ``{"message": ...}``.
        - `request`: source of the client address and user agent.

        The event is logged as a JSON line and then inserted into the audit
        repository. A failed insert is logged and swallowed so that auditing
        never breaks the request being audited; the method then returns None.
        """

        if user_id is None:
            from src.clinical_records.security import get_current_user_id

            user_id = get_current_user_id()

        if isinstance(details, str):
            details = {"message": details}

        ip_address = client_address(request) if request is not None else None
        user_agent = request.headers.get("User-Agent") if request is not None else None
        timestamp = utc_now()

        try:
            logger.info(
                json.dumps(
                    {
                        "timestamp": timestamp.isoformat(),
                        "action": action,
                        "user_id": user_id,
                        "resource_type": resource_type,
                        "resource_id": resource_id,
                        "details": details,
                        "ip_address": ip_address,
                    }
                )
            )
        except TypeError:
            logger.info(json.dumps({"timestamp": timestamp.isoformat(), "action": action, "user_id": user_id}))

        try:
            return repositories.audit_logs.add(
                action=action,
                timestamp=timestamp,
                user_id=user_id,
                resource_type=resource_type,
                resource_id=resource_id,
                details=details,
                ip_address=ip_address,
                user_agent=user_agent,
            )
        except Exception:
            logger.exception("Failed to write audit log entry for %s", action)
            return None

    def list_logs(
        self,
        *,
        page: int = 1,
        limit: int = 50,
        action: Optional[str] = None,
        user_id: Optional[int] = None,
    ) -> AuditLogPage:
        logs, total = repositories.audit_logs.list_page(
            offset=(page - 1) * limit,
            limit=limit,
            action=action,
            user_id=user_id,
        )
        return AuditLogPage(
            logs=self._with_users(logs),
            total=total,
            page=page,
            total_pages=math.ceil(total / limit),
        )

    def _with_users(self, logs: List[AuditLog]) -> List[AuditLogEntry]:
        summaries: Dict[Optional[int], Optional[AuditUserSummary]] = {}
        for user_id in {log.user_id for log in logs if log.user_id is not None}:
            user = repositories.users.get(user_id)
            summaries[user_id] = (
                AuditUserSummary(username=user.username, name=user.name, role=user.role) if user is not None else None
            )
        return [
            AuditLogEntry(**log.model_dump(), user=summaries.get(log.user_id))
            for log in logs
        ]


audit_service = AuditService()
