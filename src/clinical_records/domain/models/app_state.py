from __future__ import annotations

from typing import Tuple

from src.clinical_records.domain.models.base import LocalRecordModel
from src.clinical_records.domain.models.clinical_record import ClinicalRecord
from src.clinical_records.domain.models.patient import Patient
from src.clinical_records.domain.models.prescription import Prescription


class AppState(LocalRecordModel):
    """The aggregate state of the local records store.

    Each collection keeps insertion order. Entities are only ever appended;
    the reducer produces a new ``AppState`` for every transition.
    """

    patients: Tuple[Patient, ...] = ()
    records: Tuple[ClinicalRecord, ...] = ()
    prescriptions: Tuple[Prescription, ...] = ()


EMPTY_STATE = AppState()
