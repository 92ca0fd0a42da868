from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from src.clinical_records.domain.models.audit_log import AuditLog
from src.clinical_records.errors import PersistenceError
from src.clinical_records.infra.db.models import AuditLogORM
from src.clinical_records.infra.db.repositories import AuditLogRepository
from src.clinical_records.infra.db.session import SessionFactory


class SqlAuditLogRepository(AuditLogRepository):
    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    def add(
        self,
        *,
        action: str,
        timestamp: datetime,
        user_id: Optional[int] = None,
        resource_type: Optional[str] = None,
        resource_id: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> AuditLog:
        try:
            with self._session_factory() as session:
                orm = AuditLogORM(
                    action=action,
                    timestamp=timestamp,
                    user_id=user_id,
                    resource_type=resource_type,
                    resource_id=resource_id,
                    details=details,
                    ip_address=ip_address,
                    user_agent=user_agent,
                )
                session.add(orm)
                session.commit()
                return orm.to_domain()
        except SQLAlchemyError as exc:
            raise PersistenceError("failed to write audit log") from exc

    def list_page(
        self,
        *,
        offset: int,
        limit: int,
        action: Optional[str] = None,
        user_id: Optional[int] = None,
    ) -> Tuple[List[AuditLog], int]:
        filters = []
        if action is not None:
            filters.append(AuditLogORM.action == action)
        if user_id is not None:
            filters.append(AuditLogORM.user_id == user_id)

        page_query = (
            select(AuditLogORM)
            .where(*filters)
            .order_by(AuditLogORM.timestamp.desc(), AuditLogORM.id.desc())
            .offset(offset)
            .limit(limit)
        )
        count_query = select(func.count()).select_from(AuditLogORM).where(*filters)
        try:
            with self._session_factory() as session:
                total = session.scalar(count_query) or 0
                return [orm.to_domain() for orm in session.scalars(page_query)], total
        except SQLAlchemyError as exc:
            raise PersistenceError("failed to list audit logs") from exc
