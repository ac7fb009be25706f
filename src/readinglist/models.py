"""Shared data models for the reading list service."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum


class ArticleStatus(StrEnum):
    """Lifecycle status of a saved article."""

    PROCESSING = "processing"
    UNREAD = "unread"
    READ = "read"
    FAILED = "failed"


@dataclass
class Article:
    """A saved article, always scoped to its owner."""

    owner_id: str
    url: str
    status: ArticleStatus = ArticleStatus.PROCESSING
    title: str = ""
    summary: str | None = None
    tags: list[str] = field(default_factory=list)
    id: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class User:
    """A registered user."""

    id: str
    username: str
    password_hash: str = field(repr=False)
    created_at: datetime
