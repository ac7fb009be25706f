"""FastAPI application entry point for the reading list service."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from readinglist import __version__
from readinglist.api.routes import router
from readinglist.clients.article import ArticleFetcher
from readinglist.clients.gemini import GeminiClient
from readinglist.config import get_secrets, get_settings
from readinglist.database import create_session_factory
from readinglist.repositories.articles import ArticleStore, PersistenceError
from readinglist.repositories.users import RevokedTokenStore, UserStore
from readinglist.services.auth import AuthService, TokenService
from readinglist.services.ingestion import IngestionPipeline
from readinglist.utils.logging import get_logger, setup_logging


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build every service once and drain background ingestions on shutdown.

    Missing credentials raise ConfigurationError here and abort startup.
    """
    settings = get_settings()
    setup_logging(settings.log_level)
    logger = get_logger(__name__)
    logger.info("Reading list starting", version=__version__)

    secrets = get_secrets(settings)
    session_factory = create_session_factory(settings.database_url)

    revoked_tokens = RevokedTokenStore(session_factory)
    revoked_tokens.purge_expired()

    app.state.article_store = ArticleStore(session_factory)
    app.state.auth_service = AuthService(
        user_store=UserStore(session_factory),
        revoked_tokens=revoked_tokens,
        tokens=TokenService(
            secrets.jwt_secret, ttl=timedelta(hours=settings.token_ttl_hours)
        ),
    )

    gemini = GeminiClient(api_key=secrets.gemini_api_key, model_name=settings.gemini_model)
    async with ArticleFetcher(timeout=settings.fetch_timeout) as fetcher:
        pipeline = IngestionPipeline(
            store=app.state.article_store,
            fetcher=fetcher,
            gemini_client=gemini,
            mark_stalled_failed=settings.mark_stalled_failed,
        )
        app.state.pipeline = pipeline
        yield
        await pipeline.drain()

    logger.info("Reading list shutting down")


async def persistence_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Turn database failures into a generic 500."""
    get_logger(__name__).error(
        "Request failed on database error", path=request.url.path, error=str(exc)
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


def create_app() -> FastAPI:
    """Create the FastAPI application."""
    app = FastAPI(
        title="Reading List",
        description="Personal reading list with article summaries and tags from Gemini",
        version=__version__,
        lifespan=lifespan,
    )
    app.include_router(router)
    app.add_exception_handler(PersistenceError, persistence_error_handler)

    @app.get("/")
    async def root() -> dict[str, str]:
        """Root endpoint with basic info."""
        return {
            "name": "Reading List",
            "version": __version__,
            "docs": "/docs",
        }

    return app


app = create_app()
