from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class UserRole(str, Enum):
    ADMIN = "admin"
    PHYSICIAN = "physician"
    NURSE = "nurse"
    PATIENT = "patient"


class User(BaseModel):
    id: int
    username: str
    email: str
    password_hash: str
    role: UserRole = UserRole.PATIENT
    name: str
    speciality: Optional[str] = None
    is_active: bool = True
    last_login: Optional[datetime] = None
    # Lockout bookkeeping, see AuthService.login.
    failed_login_attempts: int = 0
    locked_until: Optional[datetime] = None


class UserPublic(BaseModel):
    """User fields that are safe to return to API callers."""

    id: int
    username: str
    name: str
    role: UserRole
    email: str
    speciality: Optional[str] = None

    @classmethod
    def from_user(cls, user: User) -> "UserPublic":
        return cls(
            id=user.id,
            username=user.username,
            name=user.name,
            role=user.role,
            email=user.email,
            speciality=user.speciality,
        )
