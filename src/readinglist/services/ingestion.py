"""Background ingestion of submitted articles: fetch, extract, enrich, persist."""

import asyncio
import dataclasses
from collections.abc import Callable
from enum import StrEnum
from typing import Any

from readinglist.clients.article import ArticleFetcher, FetchError, ParseError, extract_text
from readinglist.clients.gemini import EnrichmentError, GeminiClient
from readinglist.models import Article, ArticleStatus
from readinglist.repositories.articles import ArticleStore, NotFoundError, PersistenceError
from readinglist.utils.logging import get_logger

logger = get_logger(__name__)


class IngestionOutcome(StrEnum):
    """How a single ingestion run ended."""

    COMPLETED = "completed"
    # Fetch failed at the transport level; article marked failed.
    FAILED = "failed"
    # A later step failed; article left in processing unless configured otherwise.
    STALLED = "stalled"
    # The final write did not land (article deleted or database error).
    ABANDONED = "abandoned"


class IngestionPipeline:
    """Runs one best-effort ingestion per submitted article.

    Each run makes at most one fetch and two Gemini calls and is never retried.
    Only a transport-level fetch failure marks the article ``failed``; any
    later failure leaves it in ``processing`` unless ``mark_stalled_failed``
    is set.
    """

    def __init__(
        self,
        store: ArticleStore,
        fetcher: ArticleFetcher,
        gemini_client: GeminiClient,
        *,
        mark_stalled_failed: bool = False,
    ) -> None:
        self._store = store
        self._fetcher = fetcher
        self._gemini = gemini_client
        self._mark_stalled_failed = mark_stalled_failed
        self._tasks: set[asyncio.Task[IngestionOutcome]] = set()

    @property
    def in_flight(self) -> int:
        """Number of runs that have not finished yet."""
        return len(self._tasks)

    async def submit(self, owner_id: str, url: str) -> Article:
        """Create an article in ``processing`` and schedule its ingestion.

        Returns as soon as the article row exists; the ingestion outcome is
        not awaited.

        Raises:
            PersistenceError: If the article cannot be created.
        """
        article = Article(owner_id=owner_id, url=url, status=ArticleStatus.PROCESSING)
        await asyncio.to_thread(self._store.create, article)
        logger.info("Article submitted", article_id=article.id, owner_id=owner_id, url=url)

        self.schedule(dataclasses.replace(article))
        return article

    def schedule(self, article: Article) -> asyncio.Task[IngestionOutcome]:
        """Start processing ``article`` in the background.

        The pipeline holds a reference to the task until it finishes, so
        callers are free to drop the returned task.
        """
        task = asyncio.create_task(self.process(article), name=f"ingest-{article.id}")
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    async def drain(self) -> None:
        """Wait for every in-flight run to finish. Nothing is cancelled."""
        if self._tasks:
            logger.info("Waiting for in-flight ingestions", count=len(self._tasks))
            await asyncio.gather(*self._tasks, return_exceptions=True)

    def _on_task_done(self, task: asyncio.Task[IngestionOutcome]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning("Ingestion task cancelled", task=task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Ingestion task crashed",
                task=task.get_name(),
                error=str(exc),
                exc_info=exc,
            )

    async def process(self, article: Article) -> IngestionOutcome:
        """Fetch, extract and enrich ``article``, then persist the result.

        Errors are logged and end the run; none are raised.
        """
        log = logger.bind(article_id=article.id, owner_id=article.owner_id)
        log.info("Starting ingestion", url=article.url)

        try:
            page = await self._fetcher.fetch(article.url)
        except FetchError as e:
            if not e.is_transport_error:
                log.warning("Article fetch returned an error status", status=e.status_code)
                return await self._stall(article, log, e.reason)
            log.warning("Article fetch failed, marking failed", reason=e.reason)
            article.status = ArticleStatus.FAILED
            if not await self._persist(
                log, self._store.set_status, article.id, article.owner_id, article.status
            ):
                return IngestionOutcome.ABANDONED
            return IngestionOutcome.FAILED

        try:
            extracted = extract_text(page.content)
        except ParseError as e:
            log.warning("Failed to parse article content", reason=e.reason)
            return await self._stall(article, log, e.reason)

        title = extracted.title
        if not title.strip():
            log.info("No title found, using URL as title")
            title = article.url
        article.title = title
        article.url = page.url

        try:
            summary = await self._gemini.summarize_article(extracted.body)
            tags = await self._gemini.generate_tags(extracted.body)
        except EnrichmentError as e:
            log.warning("Failed to enrich article", step=e.step, reason=e.reason)
            return await self._stall(article, log, str(e))

        article.summary = summary
        article.tags = tags
        article.status = ArticleStatus.UNREAD

        if not await self._persist(log, self._store.update, article):
            return IngestionOutcome.ABANDONED

        log.info("Article processed", title=article.title, tag_count=len(tags))
        return IngestionOutcome.COMPLETED

    async def _stall(self, article: Article, log: Any, reason: str) -> IngestionOutcome:
        """End a run that failed after the fetch stage."""
        if self._mark_stalled_failed:
            log.info("Marking stalled article failed", reason=reason)
            await self._persist(
                log, self._store.set_status, article.id, article.owner_id, ArticleStatus.FAILED
            )
        else:
            log.warning("Ingestion stopped, article stays in processing", reason=reason)
        return IngestionOutcome.STALLED

    async def _persist(self, log: Any, operation: Callable[..., None], *args: object) -> bool:
        """Run a store write in a worker thread. Returns False if it did not land."""
        try:
            await asyncio.to_thread(operation, *args)
        except NotFoundError:
            log.info("Article no longer exists, discarding ingestion result")
            return False
        except PersistenceError as e:
            log.error("Failed to save ingestion result", reason=e.reason)
            return False
        return True
