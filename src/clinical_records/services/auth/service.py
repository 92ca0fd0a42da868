from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

import jwt
from fastapi import Request
from pydantic import BaseModel

from src.clinical_records.config import settings
from src.clinical_records.domain.models.audit_log import AuditAction
from src.clinical_records.domain.models.timestamps import utc_now
from src.clinical_records.domain.models.user import User, UserPublic
from src.clinical_records.errors import AccountLockedError, AuthenticationError
from src.clinical_records.infra.db.registry import repositories
from src.clinical_records.services.audit.service import audit_service
from src.clinical_records.services.users.service import verify_password

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"
ACCOUNT_LOCKED = "Account temporarily locked"


class LoginResult(BaseModel):
    token: str
    user: UserPublic


class AuthService:
    """Password login with account lockout, and bearer token handling."""

    def __init__(self, *, clock: Callable[[], datetime] = utc_now) -> None:
        self._clock = clock

    def login(self, username: str, password: str, *, request: Optional[Request] = None) -> LoginResult:
        user = repositories.users.get_by_username(username)
        if user is None or not user.is_active:
            audit_service.log_event(
                action=AuditAction.LOGIN_FAILED,
                details="Unknown or inactive username",
                request=request,
            )
            raise AuthenticationError(INVALID_CREDENTIALS)

        now = self._clock()
        if user.locked_until is not None and now < user.locked_until:
            audit_service.log_event(
                action=AuditAction.LOGIN_BLOCKED,
                user_id=user.id,
                details="Account temporarily locked",
                request=request,
            )
            raise AccountLockedError(ACCOUNT_LOCKED)

        if not verify_password(password, user.password_hash):
            self._register_failure(user, now)
            audit_service.log_event(
                action=AuditAction.LOGIN_FAILED,
                user_id=user.id,
                details="Invalid password",
                request=request,
            )
            raise AuthenticationError(INVALID_CREDENTIALS)

        user.failed_login_attempts = 0
        user.locked_until = None
        user.last_login = now
        repositories.users.save(user)

        token = self.issue_token(user)
        audit_service.log_event(
            action=AuditAction.LOGIN_SUCCESS,
            user_id=user.id,
            details="Successful authentication",
            request=request,
        )
        return LoginResult(token=token, user=UserPublic.from_user(user))

    def _register_failure(self, user: User, now: datetime) -> None:
        user.failed_login_attempts += 1
        if user.failed_login_attempts >= settings.max_failed_logins:
            user.locked_until = now + timedelta(minutes=settings.lockout_minutes)
            user.failed_login_attempts = 0
            logger.warning("Locked user %s until %s", user.id, user.locked_until.isoformat())
        repositories.users.save(user)

    def issue_token(self, user: User) -> str:
        now = self._clock()
        claims = {
            "sub": str(user.id),
            "role": user.role.value,
            "iat": now,
            "exp": now + timedelta(hours=settings.jwt_expires_hours),
        }
        return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)

    def decode_token(self, token: str) -> Dict[str, Any]:
        """Verify a bearer token and return its claims.

        Any problem (bad signature, expiry, malformed payload) raises
        ``AuthenticationError`` without saying which one.
        """

        try:
            claims = jwt.decode(
                token,
                settings.jwt_secret,
                algorithms=[settings.jwt_algorithm],
                options={"require": ["sub", "exp"]},
            )
            int(claims["sub"])
        except (jwt.InvalidTokenError, ValueError) as exc:
            raise AuthenticationError("Invalid token") from exc
        return claims


auth_service = AuthService()
