from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from src.clinical_records.domain.models.clinical_record import ClinicalRecord
from src.clinical_records.domain.models.prescription import Prescription


class RecordItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["record"] = "record"
    record: ClinicalRecord

    @property
    def created_at(self) -> datetime:
        return self.record.created_at


class PrescriptionItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["prescription"] = "prescription"
    prescription: Prescription

    @property
    def created_at(self) -> datetime:
        return self.prescription.created_at


# Entries of a patient timeline, discriminated by ``kind``.
TimelineItem = Annotated[Union[RecordItem, PrescriptionItem], Field(discriminator="kind")]
