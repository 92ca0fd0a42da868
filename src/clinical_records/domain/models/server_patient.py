from __future__ import annotations

import re
from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

_UNSAFE_CHARS = re.compile(r"[<>'\"]")


class Gender(str, Enum):
    MALE = "M"
    FEMALE = "F"
    OTHER = "O"


class PatientStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    FORGOTTEN = "forgotten"


class ServerPatient(BaseModel):
    """Patient registered through the REST API.

    Unrelated to the local store's ``Patient``: identifiers are integers
    assigned by the repository and contact details are tracked.
    """

    id: int
    name: str
    phone: str
    email: Optional[str] = None
    birth_date: Optional[date] = None
    gender: Optional[Gender] = None
    address: Optional[str] = None
    emergency_contact: Optional[str] = None
    emergency_phone: Optional[str] = None
    is_active: bool = True
    status: PatientStatus = PatientStatus.ACTIVE
    created_by: Optional[int] = None
    created_at: datetime
    updated_at: datetime


class PatientCreate(BaseModel):
    """Validated input for registering a patient through the API."""

    name: str = Field(min_length=2, max_length=100)
    phone: str = Field(min_length=10, max_length=15)
    email: Optional[EmailStr] = None
    birth_date: Optional[date] = None
    gender: Optional[Gender] = None
    address: Optional[str] = None
    emergency_contact: Optional[str] = None
    emergency_phone: Optional[str] = None

    @field_validator("name", "phone", mode="before")
    @classmethod
    def strip_markup(cls, value: object) -> object:
        # Angle brackets and quotes are dropped before length validation.
        if isinstance(value, str):
            return _UNSAFE_CHARS.sub("", value).strip()
        return value

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: Optional[str]) -> Optional[str]:
        return value.lower() if value else value
