from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import Engine

from src.clinical_records.config import settings
from src.clinical_records.infra.db.models import Base
from src.clinical_records.infra.db.registry import repositories
from src.clinical_records.infra.db.session import create_db_engine, create_sqlalchemy_session_factory
from src.clinical_records.infra.db.sql_audit import SqlAuditLogRepository
from src.clinical_records.infra.db.sql_patients import SqlMedicalRecordRepository, SqlPatientRepository
from src.clinical_records.infra.db.sql_users import SqlUserRepository

logger = logging.getLogger(__name__)

_engine: Optional[Engine] = None


def init_sql_repositories(database_url: Optional[str] = None, *, force: bool = False) -> bool:
    """Switch the repository registry to SQL-backed implementations.

    Without ``force`` this only happens when USE_SQL_REPOS is enabled and a
    database URL is available; otherwise the in-memory repositories stay
    active. Returns True when the switch happened.
    """

    global _engine

    if not (force or settings.use_sql_repos):
        return False

    db_url = database_url or settings.database_url
    if not db_url:
        logger.warning("USE_SQL_REPOS is enabled but DATABASE_URL is not set; keeping in-memory repositories")
        return False

    engine = create_db_engine(db_url)

    # Create tables if they do not exist. Real deployments should manage the
    # schema with migrations.
    Base.metadata.create_all(engine)

    session_factory = create_sqlalchemy_session_factory(engine)
    repositories.users = SqlUserRepository(session_factory)
    repositories.patients = SqlPatientRepository(session_factory)
    repositories.medical_records = SqlMedicalRecordRepository(session_factory)
    repositories.audit_logs = SqlAuditLogRepository(session_factory)
    dispose_engine()
    _engine = engine
    logger.info("Using SQL repositories (%s)", engine.url.render_as_string(hide_password=True))
    return True


def dispose_engine() -> bool:
    """Close the pooled connections of the active SQL engine, if any."""

    global _engine
    if _engine is None:
        return False
    _engine.dispose()
    _engine = None
    logger.info("Disposed SQL engine")
    return True
