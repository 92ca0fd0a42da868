from __future__ import annotations

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from src.clinical_records.domain.models.medical_record import MedicalRecord, MedicalRecordCreate
from src.clinical_records.domain.models.server_patient import PatientCreate, PatientStatus, ServerPatient
from src.clinical_records.domain.models.timestamps import utc_now
from src.clinical_records.errors import PersistenceError
from src.clinical_records.infra.db.models import MedicalRecordORM, PatientORM
from src.clinical_records.infra.db.repositories import MedicalRecordRepository, PatientRepository
from src.clinical_records.infra.db.session import SessionFactory


class SqlPatientRepository(PatientRepository):
    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    def get(self, patient_id: int) -> Optional[ServerPatient]:
        try:
            with self._session_factory() as session:
                orm = session.get(PatientORM, patient_id)
                return orm.to_domain() if orm is not None else None
        except SQLAlchemyError as exc:
            raise PersistenceError("failed to load patient") from exc

    def list_active(self) -> List[ServerPatient]:
        query = (
            select(PatientORM)
            .where(PatientORM.is_active.is_(True), PatientORM.status == PatientStatus.ACTIVE.value)
            .order_by(PatientORM.created_at.desc(), PatientORM.id.desc())
        )
        try:
            with self._session_factory() as session:
                return [orm.to_domain() for orm in session.scalars(query)]
        except SQLAlchemyError as exc:
            raise PersistenceError("failed to list patients") from exc

    def create(self, data: PatientCreate, *, created_by: Optional[int]) -> ServerPatient:
        now = utc_now()
        fields = data.model_dump()
        if fields["gender"] is not None:
            fields["gender"] = fields["gender"].value
        try:
            with self._session_factory() as session:
                orm = PatientORM(
                    is_active=True,
                    status=PatientStatus.ACTIVE.value,
                    created_by=created_by,
                    created_at=now,
                    updated_at=now,
                    **fields,
                )
                session.add(orm)
                session.commit()
                return orm.to_domain()
        except SQLAlchemyError as exc:
            raise PersistenceError("failed to create patient") from exc


class SqlMedicalRecordRepository(MedicalRecordRepository):
    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    def list_for_patient(self, patient_id: int) -> List[MedicalRecord]:
        query = (
            select(MedicalRecordORM)
            .where(MedicalRecordORM.patient_id == patient_id, MedicalRecordORM.is_active.is_(True))
            .order_by(MedicalRecordORM.created_at.desc(), MedicalRecordORM.id.desc())
        )
        try:
            with self._session_factory() as session:
                return [orm.to_domain() for orm in session.scalars(query)]
        except SQLAlchemyError as exc:
            raise PersistenceError("failed to list medical records") from exc

    def create(self, patient_id: int, data: MedicalRecordCreate, *, doctor_id: int) -> MedicalRecord:
        now = utc_now()
        try:
            with self._session_factory() as session:
                orm = MedicalRecordORM(
                    patient_id=patient_id,
                    doctor_id=doctor_id,
                    version=1,
                    is_active=True,
                    created_at=now,
                    updated_at=now,
                    **data.model_dump(),
                )
                session.add(orm)
                session.commit()
                return orm.to_domain()
        except SQLAlchemyError as exc:
            raise PersistenceError("failed to create medical record") from exc
