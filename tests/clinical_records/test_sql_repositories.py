from datetime import timedelta

import pytest

from src.clinical_records.domain.models.audit_log import AuditAction
from src.clinical_records.domain.models.medical_record import MedicalRecordCreate
from src.clinical_records.domain.models.server_patient import PatientCreate
from src.clinical_records.domain.models.timestamps import utc_now
from src.clinical_records.domain.models.user import UserRole
from src.clinical_records.infra.db.bootstrap import dispose_engine, init_sql_repositories
from src.clinical_records.infra.db.registry import repositories
from src.clinical_records.infra.db.sql_users import SqlUserRepository
from src.clinical_records.main import on_shutdown
from src.clinical_records.ratelimit import auth_rate_limiter
from src.clinical_records.services.audit.service import audit_service
from src.clinical_records.services.users.service import user_service


@pytest.fixture
def sql_repositories():
    assert init_sql_repositories("sqlite://", force=True)
    yield repositories
    dispose_engine()


def test_bootstrap_is_opt_in():
    assert init_sql_repositories("sqlite://") is False
    assert not isinstance(repositories.users, SqlUserRepository)


def test_users_round_trip(sql_repositories, make_user):
    user = make_user(UserRole.NURSE, username="Enfermera")

    loaded = sql_repositories.users.get_by_username("ENFERMERA")
    assert loaded is not None
    assert loaded.id == user.id
    assert loaded.role == UserRole.NURSE

    locked_until = utc_now() + timedelta(minutes=15)
    loaded.failed_login_attempts = 3
    loaded.locked_until = locked_until
    sql_repositories.users.save(loaded)

    reloaded = sql_repositories.users.get(user.id)
    assert reloaded.failed_login_attempts == 3
    assert reloaded.locked_until == locked_until
    assert reloaded.locked_until.tzinfo is not None


def test_default_admin_is_created_once(sql_repositories):
    first = user_service.ensure_default_admin()
    second = user_service.ensure_default_admin()

    assert first.id == second.id
    assert first.role == UserRole.ADMIN


def test_patients_and_medical_records(sql_repositories, make_user):
    doctor = make_user(UserRole.PHYSICIAN)
    older = sql_repositories.patients.create(
        PatientCreate(name="Ana Torres", phone="5551234567"),
        created_by=doctor.id,
    )
    newer = sql_repositories.patients.create(
        PatientCreate(name="Carlos Ruiz", phone="5557654321", email="carlos@example.com"),
        created_by=doctor.id,
    )

    assert [p.id for p in sql_repositories.patients.list_active()] == [newer.id, older.id]
    assert sql_repositories.patients.get(newer.id).email == "carlos@example.com"
    assert sql_repositories.patients.get(9999) is None

    record = sql_repositories.medical_records.create(
        older.id,
        MedicalRecordCreate(diagnosis="Faringitis", management_plan="Reposo"),
        doctor_id=doctor.id,
    )

    assert record.version == 1
    assert sql_repositories.medical_records.list_for_patient(older.id) == [record]
    assert sql_repositories.medical_records.list_for_patient(newer.id) == []


def test_audit_log_paging(sql_repositories):
    for index in range(3):
        audit_service.log_event(action=AuditAction.LOGIN_FAILED, details={"attempt": index})
    audit_service.log_event(action=AuditAction.LOGIN_SUCCESS, user_id=7)

    page, total = sql_repositories.audit_logs.list_page(offset=0, limit=2, action=AuditAction.LOGIN_FAILED)
    assert total == 3
    assert [entry.details for entry in page] == [{"attempt": 2}, {"attempt": 1}]

    page, total = sql_repositories.audit_logs.list_page(offset=0, limit=10, user_id=7)
    assert total == 1
    assert page[0].action == AuditAction.LOGIN_SUCCESS


async def test_login_lockout_is_persisted(sql_repositories, client, make_user, password, monkeypatch):
    monkeypatch.setattr(auth_rate_limiter, "max_requests", 100)
    user = make_user(username="drhouse")

    for _ in range(5):
        await client.post("/api/auth/login", json={"username": "drhouse", "password": "not-it-at-all"})
    response = await client.post("/api/auth/login", json={"username": "drhouse", "password": password})

    assert response.status_code == 423
    assert sql_repositories.users.get(user.id).locked_until is not None


async def test_shutdown_disposes_engine(sql_repositories):
    await on_shutdown()

    assert dispose_engine() is False


def test_reinitialising_replaces_previous_engine(sql_repositories):
    assert init_sql_repositories("sqlite://", force=True)

    assert dispose_engine() is True
    assert dispose_engine() is False
