"""Owner-scoped persistence for articles."""

import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from readinglist.database import ArticleRow
from readinglist.models import Article, ArticleStatus
from readinglist.utils.logging import get_logger

logger = get_logger(__name__)


class NotFoundError(Exception):
    """Raised when no row matches the given id for the given owner.

    The message is the same whether the id is unknown or belongs to another
    owner.
    """

    def __init__(self, entity: str, entity_id: str) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} '{entity_id}' not found")


class PersistenceError(Exception):
    """Raised when the underlying database operation fails."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


def utc_aware(dt: datetime) -> datetime:
    """Return ``dt`` as an aware UTC datetime (SQLite hands back naive values)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def serialize_tags(tags: list[str]) -> str:
    """Join tags for storage in a single text column."""
    return ",".join(tags)


def deserialize_tags(text: str | None) -> list[str]:
    """Split a stored tag column; an empty column means no tags."""
    if not text:
        return []
    return text.split(",")


def _to_article(row: ArticleRow) -> Article:
    return Article(
        id=row.id,
        owner_id=row.user_id,
        url=row.url,
        title=row.title,
        summary=row.summary,
        tags=deserialize_tags(row.tags),
        status=ArticleStatus(row.status),
        created_at=utc_aware(row.created_at),
        updated_at=utc_aware(row.updated_at),
    )


@contextmanager
def transaction(session_factory: sessionmaker[Session], action: str) -> Iterator[Session]:
    """Open a session, commit on success and wrap database errors.

    Args:
        session_factory: Factory producing SQLAlchemy sessions.
        action: Short description used in logs and error messages.

    Raises:
        PersistenceError: If SQLAlchemy raises while the block runs or on commit.
    """
    with session_factory() as session:
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error("Database operation failed", action=action, error=str(e))
            raise PersistenceError(f"failed to {action}: {e}") from e


class ArticleStore:
    """Reads and writes articles, every query filtered by owner."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def create(self, article: Article) -> Article:
        """Insert a new article.

        Assigns the id and both timestamps on ``article`` and returns it.
        """
        now = datetime.now(UTC)
        article.id = str(uuid.uuid4())
        article.created_at = now
        article.updated_at = now

        with transaction(self._session_factory, "insert article") as session:
            session.add(
                ArticleRow(
                    id=article.id,
                    user_id=article.owner_id,
                    url=article.url,
                    title=article.title,
                    summary=article.summary,
                    tags=serialize_tags(article.tags),
                    status=article.status.value,
                    created_at=article.created_at,
                    updated_at=article.updated_at,
                )
            )

        logger.info("Article created", article_id=article.id, owner_id=article.owner_id)
        return article

    def get(self, article_id: str, owner_id: str) -> Article:
        """Get one article.

        Raises:
            NotFoundError: If the owner has no article with this id.
        """
        with transaction(self._session_factory, "get article") as session:
            row = session.scalars(
                select(ArticleRow).where(
                    ArticleRow.id == article_id, ArticleRow.user_id == owner_id
                )
            ).one_or_none()
            if row is None:
                raise NotFoundError("article", article_id)
            return _to_article(row)

    def update(self, article: Article) -> None:
        """Rewrite every mutable field of ``article`` and refresh updated_at.

        Raises:
            NotFoundError: If the row no longer exists for the owner.
        """
        article.updated_at = datetime.now(UTC)
        self._update_one(
            article.id,
            article.owner_id,
            "update article",
            url=article.url,
            title=article.title,
            summary=article.summary,
            tags=serialize_tags(article.tags),
            status=article.status.value,
            updated_at=article.updated_at,
        )

    def set_status(self, article_id: str, owner_id: str, status: ArticleStatus) -> None:
        """Change only the status of an article.

        Raises:
            ValueError: If ``status`` is processing, which is only set at creation.
            NotFoundError: If the owner has no article with this id.
        """
        if status is ArticleStatus.PROCESSING:
            raise ValueError("articles cannot be moved back to processing")
        self._update_one(
            article_id,
            owner_id,
            "update article status",
            status=status.value,
            updated_at=datetime.now(UTC),
        )

    def set_tags(self, article_id: str, owner_id: str, tags: list[str]) -> None:
        """Replace the tags of an article.

        Raises:
            NotFoundError: If the owner has no article with this id.
        """
        self._update_one(
            article_id,
            owner_id,
            "update article tags",
            tags=serialize_tags(tags),
            updated_at=datetime.now(UTC),
        )

    def delete(self, article_id: str, owner_id: str) -> None:
        """Delete an article.

        Raises:
            NotFoundError: If the owner has no article with this id.
        """
        with transaction(self._session_factory, "delete article") as session:
            result = session.execute(
                delete(ArticleRow).where(
                    ArticleRow.id == article_id, ArticleRow.user_id == owner_id
                )
            )
            if result.rowcount == 0:
                raise NotFoundError("article", article_id)
        logger.info("Article deleted", article_id=article_id, owner_id=owner_id)

    def list_by_owner(
        self,
        owner_id: str,
        status: ArticleStatus | None = None,
        tag: str | None = None,
    ) -> list[Article]:
        """List an owner's articles, newest first.

        Args:
            owner_id: The owner whose articles to return.
            status: Only return articles with exactly this status.
            tag: Only return articles whose stored tag text contains this
                substring. This also matches partial tags and text spanning
                two tags.
        """
        stmt = select(ArticleRow).where(ArticleRow.user_id == owner_id)
        if status is not None:
            stmt = stmt.where(ArticleRow.status == status.value)
        if tag:
            stmt = stmt.where(ArticleRow.tags.contains(tag))
        stmt = stmt.order_by(ArticleRow.created_at.desc())

        with transaction(self._session_factory, "list articles") as session:
            return [_to_article(row) for row in session.scalars(stmt)]

    def list_tags_by_owner(self, owner_id: str) -> set[str]:
        """Return the distinct tags used across an owner's articles."""
        stmt = select(ArticleRow.tags).where(ArticleRow.user_id == owner_id).distinct()
        with transaction(self._session_factory, "list tags") as session:
            tag_columns = list(session.scalars(stmt))

        tags: set[str] = set()
        for text in tag_columns:
            tags.update(deserialize_tags(text))
        return tags

    def _update_one(self, article_id: str, owner_id: str, action: str, **values: object) -> None:
        with transaction(self._session_factory, action) as session:
            result = session.execute(
                update(ArticleRow)
                .where(ArticleRow.id == article_id, ArticleRow.user_id == owner_id)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise NotFoundError("article", article_id)
