"""Persistence for users and revoked tokens."""

import uuid
from datetime import UTC, datetime

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from readinglist.database import RevokedTokenRow, UserRow
from readinglist.models import User
from readinglist.repositories.articles import PersistenceError, transaction, utc_aware
from readinglist.utils.logging import get_logger

logger = get_logger(__name__)


class UsernameTakenError(Exception):
    """Raised when registering a username that already exists."""

    def __init__(self, username: str) -> None:
        self.username = username
        super().__init__(f"username '{username}' already exists")


def _to_user(row: UserRow) -> User:
    return User(
        id=row.id,
        username=row.username,
        password_hash=row.password_hash,
        created_at=utc_aware(row.created_at),
    )


class UserStore:
    """Stores registered users."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def create(self, username: str, password_hash: str) -> User:
        """Insert a new user.

        Raises:
            UsernameTakenError: If the username is already registered.
            PersistenceError: On any other database failure.
        """
        user = User(
            id=str(uuid.uuid4()),
            username=username,
            password_hash=password_hash,
            created_at=datetime.now(UTC),
        )
        # IntegrityError must become UsernameTakenError, not PersistenceError
        with self._session_factory() as session:
            session.add(
                UserRow(
                    id=user.id,
                    username=user.username,
                    password_hash=user.password_hash,
                    created_at=user.created_at,
                )
            )
            try:
                session.commit()
            except IntegrityError as e:
                session.rollback()
                raise UsernameTakenError(username) from e
            except SQLAlchemyError as e:
                session.rollback()
                logger.error("Database operation failed", action="create user", error=str(e))
                raise PersistenceError(f"failed to create user: {e}") from e

        logger.info("User created", user_id=user.id)
        return user

    def get_by_username(self, username: str) -> User | None:
        """Find a user by username."""
        with transaction(self._session_factory, "get user") as session:
            row = session.scalars(
                select(UserRow).where(UserRow.username == username)
            ).one_or_none()
            return _to_user(row) if row is not None else None


class RevokedTokenStore:
    """Remembers tokens invalidated by logout until they expire."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def revoke(self, token: str, expires_at: datetime) -> None:
        """Record ``token`` as revoked. Revoking twice is a no-op."""
        with transaction(self._session_factory, "revoke token") as session:
            if session.get(RevokedTokenRow, token) is None:
                session.add(RevokedTokenRow(token=token, expires_at=expires_at))

    def is_revoked(self, token: str) -> bool:
        with transaction(self._session_factory, "check revoked token") as session:
            return session.get(RevokedTokenRow, token) is not None

    def purge_expired(self, now: datetime | None = None) -> int:
        """Delete revocations whose token has expired anyway.

        Returns:
            Number of rows removed.
        """
        now = now or datetime.now(UTC)
        with transaction(self._session_factory, "purge revoked tokens") as session:
            result = session.execute(
                delete(RevokedTokenRow).where(RevokedTokenRow.expires_at < now)
            )
            removed = result.rowcount or 0
        if removed:
            logger.info("Purged expired revoked tokens", count=removed)
        return removed
