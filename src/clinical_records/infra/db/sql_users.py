from __future__ import annotations

from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from src.clinical_records.domain.models.user import User, UserRole
from src.clinical_records.errors import PersistenceError
from src.clinical_records.infra.db.models import UserORM
from src.clinical_records.infra.db.repositories import UserRepository
from src.clinical_records.infra.db.session import SessionFactory


class SqlUserRepository(UserRepository):
    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    def get(self, user_id: int) -> Optional[User]:
        try:
            with self._session_factory() as session:
                orm = session.get(UserORM, user_id)
                return orm.to_domain() if orm is not None else None
        except SQLAlchemyError as exc:
            raise PersistenceError("failed to load user") from exc

    def get_by_username(self, username: str) -> Optional[User]:
        try:
            with self._session_factory() as session:
                orm = session.scalars(select(UserORM).where(UserORM.username == username.lower())).first()
                return orm.to_domain() if orm is not None else None
        except SQLAlchemyError as exc:
            raise PersistenceError("failed to load user") from exc

    def create(
        self,
        *,
        username: str,
        email: str,
        password_hash: str,
        role: UserRole,
        name: str,
        speciality: Optional[str] = None,
    ) -> User:
        try:
            with self._session_factory() as session:
                orm = UserORM(
                    username=username.lower(),
                    email=email,
                    password_hash=password_hash,
                    role=role.value,
                    name=name,
                    speciality=speciality,
                    is_active=True,
                    failed_login_attempts=0,
                )
                session.add(orm)
                session.commit()
                return orm.to_domain()
        except SQLAlchemyError as exc:
            raise PersistenceError("failed to create user") from exc

    def save(self, user: User) -> None:
        try:
            with self._session_factory() as session:
                orm = session.get(UserORM, user.id)
                if orm is None:
                    raise KeyError(f"Unknown user id {user.id}")
                orm.apply(user)
                session.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError("failed to update user") from exc
