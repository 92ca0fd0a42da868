from __future__ import annotations

from datetime import date, datetime
from typing import Callable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from src.clinical_records.config import Settings, settings as default_settings
from src.clinical_records.domain.models.clinical_record import ClinicalRecord
from src.clinical_records.domain.models.patient import Patient
from src.clinical_records.domain.models.prescription import Prescription
from src.clinical_records.domain.models.timeline import TimelineItem
from src.clinical_records.domain.models.timestamps import utc_now
from src.clinical_records.domain.records.actions import AddPatientAndRecord, AddPrescription
from src.clinical_records.domain.records.views import (
    DashboardCounts,
    dashboard_counts,
    filter_patients,
    find_patient,
    patient_timeline,
)
from src.clinical_records.errors import PatientNotFoundError, RecordValidationError
from src.clinical_records.services.prescriptions.document import prescription_filename, render_prescription
from src.clinical_records.services.records.holder import StateHolder


class PatientRegistration(BaseModel):
    """Fields of the new-patient form: patient identity plus the first visit."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1)
    birth_date: date
    reason_for_visit: str = ""
    history: str = ""
    physical_exam: str = ""
    diagnosis: str = Field(min_length=1)
    analysis: str = ""
    management_plan: str = ""


class RecordsService:
    """Form flows of the local records store.

    Each write builds the entities, dispatches one action on the holder and
    then persists the new state.
    """

    def __init__(
        self,
        holder: StateHolder,
        *,
        clock: Callable[[], datetime] = utc_now,
        settings: Optional[Settings] = None,
    ) -> None:
        self._holder = holder
        self._clock = clock
        self._settings = settings or default_settings
        self._last_id_millis = 0

    def _next_id_millis(self, now: datetime) -> int:
        # Identifiers are derived from the creation time in milliseconds; bump
        # by one when two entities are created within the same millisecond.
        millis = int(now.timestamp() * 1000)
        if millis <= self._last_id_millis:
            millis = self._last_id_millis + 1
        self._last_id_millis = millis
        return millis

    def register_patient(self, form: PatientRegistration) -> Tuple[Patient, ClinicalRecord]:
        now = self._clock()
        patient = Patient(
            id=f"P{self._next_id_millis(now)}",
            name=form.name,
            birth_date=form.birth_date,
        )
        record = ClinicalRecord(
            id=f"R{self._next_id_millis(now)}",
            patient_id=patient.id,
            created_at=now,
            reason_for_visit=form.reason_for_visit,
            history=form.history,
            physical_exam=form.physical_exam,
            diagnosis=form.diagnosis,
            analysis=form.analysis,
            management_plan=form.management_plan,
        )
        self._holder.dispatch(AddPatientAndRecord(patient=patient, record=record))
        self._holder.persist()
        return patient, record

    def add_prescription(self, patient_id: str, medications: str, indications: str = "") -> Prescription:
        if not medications or not medications.strip():
            raise RecordValidationError("medications must not be empty")
        if find_patient(self._holder.state, patient_id) is None:
            raise PatientNotFoundError(patient_id)

        now = self._clock()
        prescription = Prescription(
            id=f"PRES{self._next_id_millis(now)}",
            patient_id=patient_id,
            created_at=now,
            medications=medications,
            indications=indications,
        )
        self._holder.dispatch(AddPrescription(prescription=prescription))
        self._holder.persist()
        return prescription

    # Read side

    def dashboard(self) -> DashboardCounts:
        return dashboard_counts(self._holder.state)

    def search_patients(self, search_term: str = "") -> List[Patient]:
        return filter_patients(self._holder.state, search_term)

    def get_patient(self, patient_id: str) -> Patient:
        patient = find_patient(self._holder.state, patient_id)
        if patient is None:
            raise PatientNotFoundError(patient_id)
        return patient

    def timeline(self, patient_id: str) -> List[TimelineItem]:
        return patient_timeline(self._holder.state, patient_id)

    def prescription_document(self, prescription_id: str) -> Tuple[str, str]:
        """Return ``(filename, text)`` of the printable prescription."""

        state = self._holder.state
        prescription = next((p for p in state.prescriptions if p.id == prescription_id), None)
        if prescription is None:
            raise LookupError(f"Prescription not found: {prescription_id}")
        patient = self.get_patient(prescription.patient_id)
        return (
            prescription_filename(prescription, patient),
            render_prescription(prescription, patient, settings=self._settings),
        )
