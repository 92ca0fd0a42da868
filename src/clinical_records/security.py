from __future__ import annotations

from contextvars import ContextVar
from typing import Callable, Optional

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.clinical_records.domain.models.audit_log import AuditAction
from src.clinical_records.domain.models.user import User, UserRole
from src.clinical_records.errors import AuthenticationError
from src.clinical_records.infra.db.registry import repositories
from src.clinical_records.services.audit.service import audit_service
from src.clinical_records.services.auth.service import auth_service

# Bearer token is expected in the Authorization header.
_bearer = HTTPBearer(auto_error=False)

# Id of the user authenticated for the in-flight request. Lets the audit
# service attribute events without every caller passing the user around.
_current_user_id: ContextVar[Optional[int]] = ContextVar("current_user_id", default=None)


def get_current_user_id() -> Optional[int]:
    return _current_user_id.get()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Security(_bearer),
) -> User:
    """FastAPI dependency resolving the caller from a bearer token.

    Every rejection is audited as ``AUTH_FAILED`` and answered with a
    generic 401 that does not reveal which check failed.
    """

    _current_user_id.set(None)

    if credentials is None:
        audit_service.log_event(action=AuditAction.AUTH_FAILED, details="No token provided", request=request)
        raise _unauthorized("Access token required")

    try:
        claims = auth_service.decode_token(credentials.credentials)
    except AuthenticationError:
        audit_service.log_event(action=AuditAction.AUTH_FAILED, details="Invalid token", request=request)
        raise _unauthorized("Invalid token")

    user_id = int(claims["sub"])
    user = repositories.users.get(user_id)
    if user is None or not user.is_active:
        audit_service.log_event(
            action=AuditAction.AUTH_FAILED,
            user_id=user_id,
            details="User not found or inactive",
            request=request,
        )
        raise _unauthorized("Invalid user")

    _current_user_id.set(user.id)
    return user


def require_roles(*roles: UserRole) -> Callable[..., User]:
    """Build a dependency that admits only users holding one of ``roles``.

    A rejected caller produces exactly one ``AUTHORIZATION_FAILED`` audit
    entry and a 403.
    """

    allowed = frozenset(roles)

    async def _dependency(request: Request, user: User = Depends(get_current_user)) -> User:
        if user.role in allowed:
            return user

        audit_service.log_event(
            action=AuditAction.AUTHORIZATION_FAILED,
            user_id=user.id,
            details={
                "required_roles": sorted(role.value for role in allowed),
                "user_role": user.role.value,
                "path": request.url.path,
            },
            request=request,
        )
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")

    return _dependency


# Role sets shared by the routers.
CLINICAL_STAFF = (UserRole.ADMIN, UserRole.PHYSICIAN, UserRole.NURSE)
PRESCRIBERS = (UserRole.ADMIN, UserRole.PHYSICIAN)
