from __future__ import annotations

from datetime import datetime
from itertools import count
from typing import Any, Dict, List, Optional, Tuple

from src.clinical_records.domain.models.audit_log import AuditLog
from src.clinical_records.domain.models.medical_record import MedicalRecord, MedicalRecordCreate
from src.clinical_records.domain.models.server_patient import PatientCreate, PatientStatus, ServerPatient
from src.clinical_records.domain.models.timestamps import utc_now
from src.clinical_records.domain.models.user import User, UserRole
from src.clinical_records.infra.db.repositories import (
    AuditLogRepository,
    MedicalRecordRepository,
    PatientRepository,
    UserRepository,
)


class InMemoryUserRepository(UserRepository):
    """Dict-backed user store used for tests and local development."""

    def __init__(self) -> None:
        self._users: Dict[int, User] = {}
        self._ids = count(1)

    def get(self, user_id: int) -> Optional[User]:
        user = self._users.get(user_id)
        return user.model_copy() if user is not None else None

    def get_by_username(self, username: str) -> Optional[User]:
        wanted = username.lower()
        for user in self._users.values():
            if user.username == wanted:
                return user.model_copy()
        return None

    def create(
        self,
        *,
        username: str,
        email: str,
        password_hash: str,
        role: UserRole,
        name: str,
        speciality: Optional[str] = None,
    ) -> User:
        user = User(
            id=next(self._ids),
            username=username.lower(),
            email=email,
            password_hash=password_hash,
            role=role,
            name=name,
            speciality=speciality,
        )
        self._users[user.id] = user
        return user.model_copy()

    def save(self, user: User) -> None:
        if user.id not in self._users:
            raise KeyError(f"Unknown user id {user.id}")
        self._users[user.id] = user.model_copy()


class InMemoryPatientRepository(PatientRepository):
    def __init__(self) -> None:
        self._patients: Dict[int, ServerPatient] = {}
        self._ids = count(1)

    def get(self, patient_id: int) -> Optional[ServerPatient]:
        return self._patients.get(patient_id)

    def list_active(self) -> List[ServerPatient]:
        active = [
            p for p in self._patients.values()
            if p.is_active and p.status == PatientStatus.ACTIVE
        ]
        return sorted(active, key=lambda p: (p.created_at, p.id), reverse=True)

    def create(self, data: PatientCreate, *, created_by: Optional[int]) -> ServerPatient:
        now = utc_now()
        patient = ServerPatient(
            id=next(self._ids),
            created_by=created_by,
            created_at=now,
            updated_at=now,
            **data.model_dump(),
        )
        self._patients[patient.id] = patient
        return patient


class InMemoryMedicalRecordRepository(MedicalRecordRepository):
    def __init__(self) -> None:
        self._records: Dict[int, MedicalRecord] = {}
        self._ids = count(1)

    def list_for_patient(self, patient_id: int) -> List[MedicalRecord]:
        records = [r for r in self._records.values() if r.patient_id == patient_id and r.is_active]
        return sorted(records, key=lambda r: (r.created_at, r.id), reverse=True)

    def create(self, patient_id: int, data: MedicalRecordCreate, *, doctor_id: int) -> MedicalRecord:
        now = utc_now()
        record = MedicalRecord(
            id=next(self._ids),
            patient_id=patient_id,
            doctor_id=doctor_id,
            created_at=now,
            updated_at=now,
            **data.model_dump(),
        )
        self._records[record.id] = record
        return record


class InMemoryAuditLogRepository(AuditLogRepository):
    def __init__(self) -> None:
        self._entries: List[AuditLog] = []
        self._ids = count(1)

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
        entry = AuditLog(
            id=next(self._ids),
            user_id=user_id,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            details=details,
            ip_address=ip_address,
            user_agent=user_agent,
            timestamp=timestamp,
        )
        self._entries.append(entry)
        return entry

    def list_page(
        self,
        *,
        offset: int,
        limit: int,
        action: Optional[str] = None,
        user_id: Optional[int] = None,
    ) -> Tuple[List[AuditLog], int]:
        matching = [
            e for e in self._entries
            if (action is None or e.action == action) and (user_id is None or e.user_id == user_id)
        ]
        matching.sort(key=lambda e: (e.timestamp, e.id), reverse=True)
        return matching[offset:offset + limit], len(matching)
