from __future__ import annotations

import logging
from typing import Optional

import bcrypt

from src.clinical_records.config import settings
from src.clinical_records.domain.models.user import User, UserRole
from src.clinical_records.infra.db.registry import repositories

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes of a password.
_BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(_password_bytes(password), salt).decode("ascii")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("ascii"))
    except ValueError:
        # Malformed stored hash.
        logger.warning("Stored password hash could not be parsed")
        return False


class UserService:
    """Account management on top of the active user repository."""

    def create_user(
        self,
        *,
        username: str,
        email: str,
        password: str,
        name: str,
        role: UserRole = UserRole.PATIENT,
        speciality: Optional[str] = None,
    ) -> User:
        return repositories.users.create(
            username=username,
            email=email,
            password_hash=hash_password(password),
            role=role,
            name=name,
            speciality=speciality,
        )

    def ensure_default_admin(self) -> User:
        """Create the configured administrator account when it is missing."""

        existing = repositories.users.get_by_username(settings.admin_username)
        if existing is not None:
            return existing

        user = self.create_user(
            username=settings.admin_username,
            email=settings.admin_email,
            password=settings.admin_password,
            name="System Administrator",
            role=UserRole.ADMIN,
        )
        logger.info("Created default admin user %r", user.username)
        return user


user_service = UserService()
