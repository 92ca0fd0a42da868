from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Optional

from sqlalchemy import JSON, Boolean, Date, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from src.clinical_records.domain.models.audit_log import AuditLog
from src.clinical_records.domain.models.medical_record import MedicalRecord
from src.clinical_records.domain.models.server_patient import Gender, PatientStatus, ServerPatient
from src.clinical_records.domain.models.timestamps import ensure_utc
from src.clinical_records.domain.models.user import User, UserRole


class Base(DeclarativeBase):
    pass


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite drops tzinfo on the way back.
    return ensure_utc(value) if value is not None else None


class UserORM(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(50), nullable=False, unique=True, index=True)
    email: Mapped[str] = mapped_column(String, nullable=False, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String, nullable=False)
    role: Mapped[str] = mapped_column(String, nullable=False, default=UserRole.PATIENT.value, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    speciality: Mapped[str | None] = mapped_column(String, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    last_login: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    failed_login_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    locked_until: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def apply(self, user: User) -> None:
        """Copy mutable domain fields onto this row."""

        self.username = user.username
        self.email = user.email
        self.password_hash = user.password_hash
        self.role = user.role.value
        self.name = user.name
        self.speciality = user.speciality
        self.is_active = user.is_active
        self.last_login = user.last_login
        self.failed_login_attempts = user.failed_login_attempts
        self.locked_until = user.locked_until

    def to_domain(self) -> User:
        return User(
            id=self.id,
            username=self.username,
            email=self.email,
            password_hash=self.password_hash,
            role=UserRole(self.role),
            name=self.name,
            speciality=self.speciality,
            is_active=self.is_active,
            last_login=_aware(self.last_login),
            failed_login_attempts=self.failed_login_attempts,
            locked_until=_aware(self.locked_until),
        )


class PatientORM(Base):
    __tablename__ = "patients"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    phone: Mapped[str] = mapped_column(String(15), nullable=False, index=True)
    email: Mapped[str | None] = mapped_column(String, nullable=True)
    birth_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    gender: Mapped[str | None] = mapped_column(String(1), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    emergency_contact: Mapped[str | None] = mapped_column(String, nullable=True)
    emergency_phone: Mapped[str | None] = mapped_column(String, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default=PatientStatus.ACTIVE.value, index=True)
    created_by: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def to_domain(self) -> ServerPatient:
        return ServerPatient(
            id=self.id,
            name=self.name,
            phone=self.phone,
            email=self.email,
            birth_date=self.birth_date,
            gender=Gender(self.gender) if self.gender else None,
            address=self.address,
            emergency_contact=self.emergency_contact,
            emergency_phone=self.emergency_phone,
            is_active=self.is_active,
            status=PatientStatus(self.status),
            created_by=self.created_by,
            created_at=_aware(self.created_at),
            updated_at=_aware(self.updated_at),
        )


class MedicalRecordORM(Base):
    __tablename__ = "medical_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    patient_id: Mapped[int] = mapped_column(ForeignKey("patients.id"), nullable=False, index=True)
    doctor_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    history: Mapped[str | None] = mapped_column(Text, nullable=True)
    physical_exam: Mapped[str | None] = mapped_column(Text, nullable=True)
    diagnosis: Mapped[str | None] = mapped_column(Text, nullable=True)
    analysis: Mapped[str | None] = mapped_column(Text, nullable=True)
    management_plan: Mapped[str | None] = mapped_column(Text, nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def to_domain(self) -> MedicalRecord:
        return MedicalRecord(
            id=self.id,
            patient_id=self.patient_id,
            doctor_id=self.doctor_id,
            reason=self.reason,
            history=self.history,
            physical_exam=self.physical_exam,
            diagnosis=self.diagnosis,
            analysis=self.analysis,
            management_plan=self.management_plan,
            version=self.version,
            is_active=self.is_active,
            created_at=_aware(self.created_at),
            updated_at=_aware(self.updated_at),
        )


class AuditLogORM(Base):
    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Not a foreign key: audit rows must be writable even for unknown users.
    user_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    action: Mapped[str] = mapped_column(String, nullable=False, index=True)
    resource_type: Mapped[str | None] = mapped_column(String, nullable=True)
    resource_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    details: Mapped[Dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String, nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)

    def to_domain(self) -> AuditLog:
        return AuditLog(
            id=self.id,
            user_id=self.user_id,
            action=self.action,
            resource_type=self.resource_type,
            resource_id=self.resource_id,
            details=self.details,
            ip_address=self.ip_address,
            user_agent=self.user_agent,
            timestamp=_aware(self.timestamp),
        )
