from __future__ import annotations

import unicodedata
from datetime import date
from typing import List, Optional

from pydantic import BaseModel

from src.clinical_records.domain.models.app_state import AppState
from src.clinical_records.domain.models.patient import Patient
from src.clinical_records.domain.models.timeline import PrescriptionItem, RecordItem, TimelineItem


class DashboardCounts(BaseModel):
    total_patients: int
    total_records: int
    total_prescriptions: int


def dashboard_counts(state: AppState) -> DashboardCounts:
    return DashboardCounts(
        total_patients=len(state.patients),
        total_records=len(state.records),
        total_prescriptions=len(state.prescriptions),
    )


def _collation_key(text: str) -> str:
    # Accents only break ties: "Álvaro" sorts with the A names, not after "Z".
    decomposed = unicodedata.normalize("NFKD", text.casefold())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def _name_sort_key(patient: Patient) -> tuple:
    return (_collation_key(patient.name), patient.name.casefold(), patient.name)


def filter_patients(state: AppState, search_term: str = "") -> List[Patient]:
    """Return patients whose name contains ``search_term``, sorted by name.

    Matching is case-insensitive. An empty term matches everyone.
    """

    needle = search_term.casefold()
    matches = [p for p in state.patients if needle in p.name.casefold()]
    return sorted(matches, key=_name_sort_key)


def find_patient(state: AppState, patient_id: str) -> Optional[Patient]:
    for patient in state.patients:
        if patient.id == patient_id:
            return patient
    return None


def patient_timeline(state: AppState, patient_id: str) -> List[TimelineItem]:
    """Records and prescriptions of one patient, most recent first."""

    items: List[TimelineItem] = [RecordItem(record=r) for r in state.records if r.patient_id == patient_id]
    items.extend(PrescriptionItem(prescription=p) for p in state.prescriptions if p.patient_id == patient_id)
    # sorted() is stable: equal timestamps keep records ahead of prescriptions.
    return sorted(items, key=lambda item: item.created_at, reverse=True)


def calculate_age(birth_date: date, today: Optional[date] = None) -> int:
    today = today or date.today()
    age = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        age -= 1
    return age
