from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, status

from src.clinical_records.domain.models.medical_record import MedicalRecord, MedicalRecordCreate
from src.clinical_records.domain.models.server_patient import PatientCreate, ServerPatient
from src.clinical_records.domain.models.user import User
from src.clinical_records.errors import PatientNotFoundError
from src.clinical_records.security import CLINICAL_STAFF, PRESCRIBERS, require_roles
from src.clinical_records.services.patients.service import patient_service

router = APIRouter(prefix="/patients", tags=["patients"])


@router.get("", response_model=List[ServerPatient])
async def list_patients(
    request: Request,
    current_user: User = Depends(require_roles(*CLINICAL_STAFF)),
) -> List[ServerPatient]:
    return patient_service.list_patients(user=current_user, request=request)


@router.post("", response_model=ServerPatient, status_code=status.HTTP_201_CREATED)
async def create_patient(
    payload: PatientCreate,
    request: Request,
    current_user: User = Depends(require_roles(*PRESCRIBERS)),
) -> ServerPatient:
    return patient_service.create_patient(payload, user=current_user, request=request)


@router.get("/{patient_id}/medical-records", response_model=List[MedicalRecord])
async def list_medical_records(
    patient_id: int,
    request: Request,
    current_user: User = Depends(require_roles(*CLINICAL_STAFF)),
) -> List[MedicalRecord]:
    return patient_service.list_medical_records(patient_id, user=current_user, request=request)


@router.post(
    "/{patient_id}/medical-records",
    response_model=MedicalRecord,
    status_code=status.HTTP_201_CREATED,
)
async def create_medical_record(
    patient_id: int,
    payload: MedicalRecordCreate,
    request: Request,
    current_user: User = Depends(require_roles(*PRESCRIBERS)),
) -> MedicalRecord:
    try:
        return patient_service.create_medical_record(patient_id, payload, user=current_user, request=request)
    except PatientNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Patient not found")
