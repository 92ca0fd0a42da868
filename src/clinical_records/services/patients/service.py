from __future__ import annotations

from typing import List, Optional

from fastapi import Request

from src.clinical_records.domain.models.audit_log import AuditAction
from src.clinical_records.domain.models.medical_record import MedicalRecord, MedicalRecordCreate
from src.clinical_records.domain.models.server_patient import PatientCreate, ServerPatient
from src.clinical_records.domain.models.user import User
from src.clinical_records.errors import PatientNotFoundError
from src.clinical_records.infra.db.registry import repositories
from src.clinical_records.services.audit.service import audit_service


class PatientService:
    """Patient and medical record operations of the REST API.

    Every call performs one repository operation followed by one audit
    entry attributed to ``user``.
    """

    def list_patients(self, *, user: User, request: Optional[Request] = None) -> List[ServerPatient]:
        patients = repositories.patients.list_active()
        audit_service.log_event(
            action=AuditAction.PATIENTS_LIST_ACCESSED,
            user_id=user.id,
            resource_type="patient",
            details=f"Retrieved {len(patients)} patients",
            request=request,
        )
        return patients

    def create_patient(self, data: PatientCreate, *, user: User, request: Optional[Request] = None) -> ServerPatient:
        patient = repositories.patients.create(data, created_by=user.id)
        audit_service.log_event(
            action=AuditAction.PATIENT_CREATED,
            user_id=user.id,
            resource_type="patient",
            resource_id=patient.id,
            details={"patient_id": patient.id},
            request=request,
        )
        return patient

    def list_medical_records(
        self,
        patient_id: int,
        *,
        user: User,
        request: Optional[Request] = None,
    ) -> List[MedicalRecord]:
        records = repositories.medical_records.list_for_patient(patient_id)
        audit_service.log_event(
            action=AuditAction.MEDICAL_RECORDS_ACCESSED,
            user_id=user.id,
            resource_type="patient",
            resource_id=patient_id,
            details={"patient_id": patient_id, "count": len(records)},
            request=request,
        )
        return records

    def create_medical_record(
        self,
        patient_id: int,
        data: MedicalRecordCreate,
        *,
        user: User,
        request: Optional[Request] = None,
    ) -> MedicalRecord:
        if repositories.patients.get(patient_id) is None:
            raise PatientNotFoundError(patient_id)

        record = repositories.medical_records.create(patient_id, data, doctor_id=user.id)
        audit_service.log_event(
            action=AuditAction.MEDICAL_RECORD_CREATED,
            user_id=user.id,
            resource_type="medical_record",
            resource_id=record.id,
            details={"patient_id": patient_id},
            request=request,
        )
        return record


patient_service = PatientService()
