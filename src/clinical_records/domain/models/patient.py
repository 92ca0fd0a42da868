from __future__ import annotations

from datetime import date

from src.clinical_records.domain.models.base import LocalRecordModel


class Patient(LocalRecordModel):
    id: str
    name: str
    birth_date: date
