from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from src.clinical_records.domain.models.audit_log import AuditLog
from src.clinical_records.domain.models.medical_record import MedicalRecord, MedicalRecordCreate
from src.clinical_records.domain.models.server_patient import PatientCreate, ServerPatient
from src.clinical_records.domain.models.user import User, UserRole


class UserRepository(ABC):
    @abstractmethod
    def get(self, user_id: int) -> Optional[User]:
        raise NotImplementedError

    @abstractmethod
    def get_by_username(self, username: str) -> Optional[User]:
        """Case-insensitive lookup; usernames are stored lowercase."""
        raise NotImplementedError

    @abstractmethod
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
        raise NotImplementedError

    @abstractmethod
    def save(self, user: User) -> None:
        raise NotImplementedError


class PatientRepository(ABC):
    @abstractmethod
    def get(self, patient_id: int) -> Optional[ServerPatient]:
        raise NotImplementedError

    @abstractmethod
    def list_active(self) -> List[ServerPatient]:
        """Active patients, most recently created first."""
        raise NotImplementedError

    @abstractmethod
    def create(self, data: PatientCreate, *, created_by: Optional[int]) -> ServerPatient:
        raise NotImplementedError


class MedicalRecordRepository(ABC):
    @abstractmethod
    def list_for_patient(self, patient_id: int) -> List[MedicalRecord]:
        """Active records of one patient, most recent first."""
        raise NotImplementedError

    @abstractmethod
    def create(self, patient_id: int, data: MedicalRecordCreate, *, doctor_id: int) -> MedicalRecord:
        raise NotImplementedError


class AuditLogRepository(ABC):
    @abstractmethod
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
        raise NotImplementedError

    @abstractmethod
    def list_page(
        self,
        *,
        offset: int,
        limit: int,
        action: Optional[str] = None,
        user_id: Optional[int] = None,
    ) -> Tuple[List[AuditLog], int]:
        """Return one page of entries (newest first) and the filtered total."""
        raise NotImplementedError
