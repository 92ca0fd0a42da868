from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class MedicalRecord(BaseModel):
    id: int
    patient_id: int
    doctor_id: int
    reason: Optional[str] = None
    history: Optional[str] = None
    physical_exam: Optional[str] = None
    diagnosis: Optional[str] = None
    analysis: Optional[str] = None
    management_plan: Optional[str] = None
    version: int = 1
    is_active: bool = True
    created_at: datetime
    updated_at: datetime


class MedicalRecordCreate(BaseModel):
    reason: Optional[str] = None
    history: Optional[str] = None
    physical_exam: Optional[str] = None
    diagnosis: str = Field(min_length=1)
    analysis: Optional[str] = None
    management_plan: Optional[str] = None
