from typing import Callable, Dict

import pytest
from httpx import ASGITransport, AsyncClient

from src.clinical_records.config import settings
from src.clinical_records.domain.models.user import User, UserRole
from src.clinical_records.infra.db.registry import repositories
from src.clinical_records.main import app
from src.clinical_records.ratelimit import api_rate_limiter, auth_rate_limiter
from src.clinical_records.services.auth.service import auth_service
from src.clinical_records.services.users.service import user_service

PASSWORD = "correct-horse"


@pytest.fixture(autouse=True)
def isolated_backend(monkeypatch):
    """Fresh in-memory repositories and rate limit counters for every test."""

    # Cheap hashes keep the auth tests fast.
    monkeypatch.setattr(settings, "bcrypt_rounds", 4)
    repositories.use_inmemory()
    api_rate_limiter.reset()
    auth_rate_limiter.reset()
    yield
    repositories.use_inmemory()


@pytest.fixture
def make_user() -> Callable[..., User]:
    def _make(role: UserRole = UserRole.PHYSICIAN, username: str = "") -> User:
        name = username or f"{role.value}1"
        return user_service.create_user(
            username=name,
            email=f"{name}@clinic.test",
            password=PASSWORD,
            name=name.title(),
            role=role,
        )

    return _make


@pytest.fixture
def auth_headers() -> Callable[[User], Dict[str, str]]:
    def _headers(user: User) -> Dict[str, str]:
        return {"Authorization": f"Bearer {auth_service.issue_token(user)}"}

    return _headers


@pytest.fixture
async def client():
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def password() -> str:
    return PASSWORD
