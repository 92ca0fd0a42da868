from __future__ import annotations

from typing import Literal, Union

from pydantic import BaseModel, ConfigDict

from src.clinical_records.domain.models.app_state import AppState
from src.clinical_records.domain.models.clinical_record import ClinicalRecord
from src.clinical_records.domain.models.patient import Patient
from src.clinical_records.domain.models.prescription import Prescription


class AddPatientAndRecord(BaseModel):
    """Register a visit: the record is always appended, the patient only if new."""

    model_config = ConfigDict(frozen=True)

    type: Literal["ADD_PATIENT_AND_RECORD"] = "ADD_PATIENT_AND_RECORD"
    patient: Patient
    record: ClinicalRecord


class AddPrescription(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["ADD_PRESCRIPTION"] = "ADD_PRESCRIPTION"
    prescription: Prescription


class SetState(BaseModel):
    """Replace the whole aggregate. Only used to hydrate from a snapshot."""

    model_config = ConfigDict(frozen=True)

    type: Literal["SET_STATE"] = "SET_STATE"
    state: AppState


Action = Union[AddPatientAndRecord, AddPrescription, SetState]
