from __future__ import annotations

from dataclasses import dataclass, field

from src.clinical_records.infra.db.inmemory import (
    InMemoryAuditLogRepository,
    InMemoryMedicalRecordRepository,
    InMemoryPatientRepository,
    InMemoryUserRepository,
)
from src.clinical_records.infra.db.repositories import (
    AuditLogRepository,
    MedicalRecordRepository,
    PatientRepository,
    UserRepository,
)


@dataclass
class RepositoryRegistry:
    """Active repository implementations.

    Services read the attributes at call time, so swapping an implementation
    (see ``bootstrap.init_sql_repositories``) takes effect everywhere.
    """

    users: UserRepository = field(default_factory=InMemoryUserRepository)
    patients: PatientRepository = field(default_factory=InMemoryPatientRepository)
    medical_records: MedicalRecordRepository = field(default_factory=InMemoryMedicalRecordRepository)
    audit_logs: AuditLogRepository = field(default_factory=InMemoryAuditLogRepository)

    def use_inmemory(self) -> None:
        self.users = InMemoryUserRepository()
        self.patients = InMemoryPatientRepository()
        self.medical_records = InMemoryMedicalRecordRepository()
        self.audit_logs = InMemoryAuditLogRepository()


repositories = RepositoryRegistry()
