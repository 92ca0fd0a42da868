from __future__ import annotations

from src.clinical_records.domain.models.base import LocalRecordModel
from src.clinical_records.domain.models.timestamps import UtcDatetime


class Prescription(LocalRecordModel):
    id: str
    patient_id: str
    created_at: UtcDatetime
    medications: str
    indications: str = ""
