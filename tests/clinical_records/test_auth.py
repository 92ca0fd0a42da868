from datetime import datetime, timedelta, timezone

import jwt
import pytest

from src.clinical_records.config import settings
from src.clinical_records.domain.models.audit_log import AuditAction
from src.clinical_records.domain.models.timestamps import utc_now
from src.clinical_records.domain.models.user import UserRole
from src.clinical_records.errors import AccountLockedError, AuthenticationError
from src.clinical_records.infra.db.registry import repositories
from src.clinical_records.ratelimit import auth_rate_limiter
from src.clinical_records.services.auth.service import AuthService
from src.clinical_records.services.users.service import hash_password, verify_password


class MovableClock:
    def __init__(self) -> None:
        self.now = utc_now().replace(microsecond=0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


def _audit_actions(action: str):
    logs, _ = repositories.audit_logs.list_page(offset=0, limit=100, action=action, user_id=None)
    return logs


def test_password_hashing(password):
    hashed = hash_password(password)

    assert hashed != password
    assert verify_password(password, hashed)
    assert not verify_password("wrong-horse", hashed)
    assert not verify_password(password, "not-a-bcrypt-hash")


def test_token_round_trip(make_user):
    user = make_user(UserRole.NURSE)
    service = AuthService()

    claims = service.decode_token(service.issue_token(user))

    assert claims["sub"] == str(user.id)
    assert claims["role"] == "nurse"


def test_expired_or_foreign_tokens_are_rejected(make_user):
    user = make_user()
    clock = MovableClock()
    service = AuthService(clock=clock)
    clock.advance(hours=-(settings.jwt_expires_hours + 1))
    expired = service.issue_token(user)
    forged = jwt.encode({"sub": str(user.id), "exp": datetime.now(timezone.utc) + timedelta(hours=1)}, "a-completely-different-signing-secret")

    for token in (expired, forged, "garbage"):
        with pytest.raises(AuthenticationError):
            service.decode_token(token)


def test_login_success_resets_counters(make_user, password):
    user = make_user()
    clock = MovableClock()
    service = AuthService(clock=clock)

    with pytest.raises(AuthenticationError):
        service.login(user.username, "wrong-password")
    result = service.login(user.username, password)

    assert result.user.id == user.id
    assert service.decode_token(result.token)["sub"] == str(user.id)
    stored = repositories.users.get(user.id)
    assert stored.failed_login_attempts == 0
    assert stored.last_login == clock.now
    assert len(_audit_actions(AuditAction.LOGIN_SUCCESS)) == 1


def test_lockout_after_repeated_failures(make_user, password):
    user = make_user()
    clock = MovableClock()
    service = AuthService(clock=clock)

    for _ in range(settings.max_failed_logins):
        with pytest.raises(AuthenticationError) as excinfo:
            service.login(user.username, "wrong-password")
        assert not isinstance(excinfo.value, AccountLockedError)

    stored = repositories.users.get(user.id)
    assert stored.locked_until == clock.now + timedelta(minutes=settings.lockout_minutes)
    assert stored.failed_login_attempts == 0

    # Correct password is refused while the lock holds.
    with pytest.raises(AccountLockedError):
        service.login(user.username, password)
    assert len(_audit_actions(AuditAction.LOGIN_BLOCKED)) == 1

    clock.advance(minutes=settings.lockout_minutes, seconds=1)
    assert service.login(user.username, password).user.username == user.username


def test_unknown_and_inactive_users_get_generic_error(make_user, password):
    user = make_user()
    user.is_active = False
    repositories.users.save(user)
    service = AuthService()

    for username in ("nobody", user.username):
        with pytest.raises(AuthenticationError, match="Invalid credentials"):
            service.login(username, password)
    assert len(_audit_actions(AuditAction.LOGIN_FAILED)) == 2


async def test_login_endpoint(client, make_user, password):
    user = make_user(UserRole.PHYSICIAN, username="drhouse")

    response = await client.post("/api/auth/login", json={"username": "drhouse", "password": password})

    assert response.status_code == 200
    body = response.json()
    assert body["user"] == {
        "id": user.id,
        "username": "drhouse",
        "name": "Drhouse",
        "role": "physician",
        "email": "drhouse@clinic.test",
        "speciality": None,
    }
    assert "password_hash" not in body["user"]
    assert body["token"]


async def test_login_endpoint_wrong_password(client, make_user):
    make_user(username="drhouse")

    response = await client.post("/api/auth/login", json={"username": "drhouse", "password": "not-it-at-all"})

    assert response.status_code == 401
    assert response.json() == {"detail": "Invalid credentials"}


async def test_login_endpoint_unknown_user(client, password):
    response = await client.post("/api/auth/login", json={"username": "ghost", "password": password})

    assert response.status_code == 401


async def test_login_endpoint_locks_account(client, make_user, monkeypatch, password):
    monkeypatch.setattr(auth_rate_limiter, "max_requests", 100)
    make_user(username="drhouse")

    for _ in range(settings.max_failed_logins):
        response = await client.post("/api/auth/login", json={"username": "drhouse", "password": "not-it-at-all"})
        assert response.status_code == 401

    response = await client.post("/api/auth/login", json={"username": "drhouse", "password": password})

    assert response.status_code == 423
    assert response.json() == {"detail": "Account temporarily locked"}


async def test_login_endpoint_validation(client):
    response = await client.post("/api/auth/login", json={"username": "drhouse", "password": "123"})

    assert response.status_code == 400
    body = response.json()
    assert body["detail"] == "Validation failed"
    assert [error["field"] for error in body["errors"]] == ["password"]


async def test_login_endpoint_rate_limited(client, make_user, password):
    make_user(username="drhouse")
    payload = {"username": "drhouse", "password": password}

    for _ in range(settings.auth_rate_limit_max_requests):
        response = await client.post("/api/auth/login", json=payload)
        assert response.status_code == 200

    response = await client.post("/api/auth/login", json=payload)

    assert response.status_code == 429
    assert int(response.headers["Retry-After"]) > 0
