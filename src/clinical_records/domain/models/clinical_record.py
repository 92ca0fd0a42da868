from __future__ import annotations

from src.clinical_records.domain.models.base import LocalRecordModel
from src.clinical_records.domain.models.timestamps import UtcDatetime


class ClinicalRecord(LocalRecordModel):
    """One clinical visit note for a patient. Append-only."""

    id: str
    patient_id: str
    created_at: UtcDatetime
    reason_for_visit: str = ""
    history: str = ""
    physical_exam: str = ""
    diagnosis: str = ""
    analysis: str = ""
    management_plan: str = ""
