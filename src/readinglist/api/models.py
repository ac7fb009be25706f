"""Pydantic models for API requests and responses."""

import re
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from readinglist.models import Article, ArticleStatus, User

# Simple email regex - not exhaustive but catches obvious errors
EMAIL_REGEX = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

URL_REGEX = re.compile(r"^https?://[^\s/]+\S*$", re.IGNORECASE)


class CredentialsRequest(BaseModel):
    """Request body for registration and login."""

    username: str = Field(description="Email address used as the username")
    password: str = Field(min_length=1, description="Plain-text password")

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        """Validate the username is an email address."""
        v = v.strip()
        if not EMAIL_REGEX.match(v):
            raise ValueError("Username must be a valid email address")
        return v


class UserResponse(BaseModel):
    """A registered user, without the password hash."""

    id: str
    username: str
    created_at: datetime

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(id=user.id, username=user.username, created_at=user.created_at)


class TokenResponse(BaseModel):
    """Response model for a successful login."""

    token: str = Field(description="Bearer token for authenticated endpoints")


class MessageResponse(BaseModel):
    """Generic success message."""

    message: str


class ArticleSubmissionRequest(BaseModel):
    """Request body for submitting an article."""

    url: str = Field(description="Location of the article to save")

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Require an absolute http(s) URL, kept exactly as submitted."""
        v = v.strip()
        if not v:
            raise ValueError("URL is required")
        if not URL_REGEX.match(v):
            raise ValueError("URL must be an absolute http or https URL")
        return v


class UpdateStatusRequest(BaseModel):
    """Request body for changing an article's status."""

    status: ArticleStatus = Field(description="Either 'read' or 'unread'")

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: ArticleStatus) -> ArticleStatus:
        """Only read/unread can be set by users."""
        if v not in (ArticleStatus.READ, ArticleStatus.UNREAD):
            raise ValueError("Status must be 'read' or 'unread'")
        return v


class UpdateTagsRequest(BaseModel):
    """Request body for replacing an article's tags."""

    tags: list[str] = Field(min_length=1, description="New tags for the article")


class ArticleResponse(BaseModel):
    """An article as returned by the API."""

    id: str
    user_id: str
    url: str
    title: str
    summary: str | None = None
    tags: list[str]
    status: ArticleStatus
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_article(cls, article: Article) -> "ArticleResponse":
        return cls(
            id=article.id,
            user_id=article.owner_id,
            url=article.url,
            title=article.title,
            summary=article.summary,
            tags=article.tags,
            status=article.status,
            created_at=article.created_at,
            updated_at=article.updated_at,
        )


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str = Field(description="Health status")
    version: str = Field(description="Application version")
