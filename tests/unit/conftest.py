"""Shared fixtures for unit tests."""

from pathlib import Path

import pytest
from sqlalchemy.orm import Session, sessionmaker

from readinglist.database import create_session_factory
from readinglist.repositories.articles import ArticleStore
from readinglist.repositories.users import RevokedTokenStore, UserStore


@pytest.fixture
def session_factory(tmp_path: Path) -> sessionmaker[Session]:
    """Session factory for a fresh SQLite file per test."""
    return create_session_factory(f"sqlite:///{tmp_path / 'test.db'}")


@pytest.fixture
def article_store(session_factory: sessionmaker[Session]) -> ArticleStore:
    return ArticleStore(session_factory)


@pytest.fixture
def user_store(session_factory: sessionmaker[Session]) -> UserStore:
    return UserStore(session_factory)


@pytest.fixture
def revoked_tokens(session_factory: sessionmaker[Session]) -> RevokedTokenStore:
    return RevokedTokenStore(session_factory)
