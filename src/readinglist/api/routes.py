"""API routes for the reading list."""

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from readinglist import __version__
from readinglist.api.auth import bearer_token, current_user_id
from readinglist.api.dependencies import get_article_store, get_auth_service, get_pipeline
from readinglist.api.models import (
    ArticleResponse,
    ArticleSubmissionRequest,
    CredentialsRequest,
    HealthResponse,
    MessageResponse,
    TokenResponse,
    UpdateStatusRequest,
    UpdateTagsRequest,
    UserResponse,
)
from readinglist.models import ArticleStatus
from readinglist.repositories.articles import ArticleStore, NotFoundError
from readinglist.repositories.users import UsernameTakenError
from readinglist.services.auth import AuthService, InvalidCredentialsError, InvalidTokenError
from readinglist.services.ingestion import IngestionPipeline
from readinglist.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1", tags=["api"])

ARTICLE_NOT_FOUND = "Article not found or not owned by user"


def _not_found(e: NotFoundError, user_id: str) -> HTTPException:
    logger.info("Article not found for user", article_id=e.entity_id, user_id=user_id)
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=ARTICLE_NOT_FOUND)


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(status="healthy", version=__version__)


@router.post(
    "/auth/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
)
def register(
    body: CredentialsRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> UserResponse:
    """Create a user account."""
    try:
        user = auth_service.register(body.username, body.password)
    except UsernameTakenError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Username '{body.username}' already exists",
        ) from e
    return UserResponse.from_user(user)


@router.post("/auth/login", response_model=TokenResponse)
def login(
    body: CredentialsRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> TokenResponse:
    """Exchange credentials for a bearer token."""
    try:
        token = auth_service.login(body.username, body.password)
    except InvalidCredentialsError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password",
        ) from e
    return TokenResponse(token=token)


@router.post("/auth/logout", response_model=MessageResponse)
def logout(
    token: str = Depends(bearer_token),
    auth_service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    """Revoke the presented bearer token."""
    try:
        auth_service.logout(token)
    except InvalidTokenError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        ) from e
    return MessageResponse(message="Logged out successfully")


@router.post(
    "/articles",
    response_model=ArticleResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
async def submit_article(
    body: ArticleSubmissionRequest,
    user_id: str = Depends(current_user_id),
    pipeline: IngestionPipeline = Depends(get_pipeline),
) -> ArticleResponse:
    """Save an article and start summarizing it in the background.

    The article is returned immediately with status ``processing``; poll it
    to see when ingestion has finished.
    """
    logger.info("Submit article endpoint called", user_id=user_id, url=body.url)
    article = await pipeline.submit(user_id, body.url)
    return ArticleResponse.from_article(article)


@router.get(
    "/articles",
    response_model=list[ArticleResponse],
    response_model_exclude_none=True,
)
def list_articles(
    status_filter: ArticleStatus | None = Query(
        default=None, alias="status", description="Only articles with this status"
    ),
    tag: str | None = Query(default=None, description="Only articles whose tags contain this text"),
    user_id: str = Depends(current_user_id),
    store: ArticleStore = Depends(get_article_store),
) -> list[ArticleResponse]:
    """List the caller's articles, optionally filtered by status and tag."""
    articles = store.list_by_owner(user_id, status=status_filter, tag=tag)
    return [ArticleResponse.from_article(a) for a in articles]


@router.get(
    "/articles/{article_id}",
    response_model=ArticleResponse,
    response_model_exclude_none=True,
)
def get_article(
    article_id: str,
    user_id: str = Depends(current_user_id),
    store: ArticleStore = Depends(get_article_store),
) -> ArticleResponse:
    """Get one of the caller's articles."""
    try:
        article = store.get(article_id, user_id)
    except NotFoundError as e:
        raise _not_found(e, user_id) from e
    return ArticleResponse.from_article(article)


@router.delete("/articles/{article_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_article(
    article_id: str,
    user_id: str = Depends(current_user_id),
    store: ArticleStore = Depends(get_article_store),
) -> Response:
    """Delete one of the caller's articles."""
    try:
        store.delete(article_id, user_id)
    except NotFoundError as e:
        raise _not_found(e, user_id) from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/articles/{article_id}/status", response_model=MessageResponse)
def update_article_status(
    article_id: str,
    body: UpdateStatusRequest,
    user_id: str = Depends(current_user_id),
    store: ArticleStore = Depends(get_article_store),
) -> MessageResponse:
    """Mark an article read or unread."""
    try:
        store.set_status(article_id, user_id, body.status)
    except NotFoundError as e:
        raise _not_found(e, user_id) from e
    return MessageResponse(message="Status updated successfully")


@router.put("/articles/{article_id}/tags", response_model=MessageResponse)
def update_article_tags(
    article_id: str,
    body: UpdateTagsRequest,
    user_id: str = Depends(current_user_id),
    store: ArticleStore = Depends(get_article_store),
) -> MessageResponse:
    """Replace an article's tags."""
    try:
        store.set_tags(article_id, user_id, body.tags)
    except NotFoundError as e:
        raise _not_found(e, user_id) from e
    return MessageResponse(message="Tags updated successfully")


@router.get("/tags", response_model=list[str])
def list_tags(
    user_id: str = Depends(current_user_id),
    store: ArticleStore = Depends(get_article_store),
) -> list[str]:
    """List the distinct tags across the caller's articles."""
    return sorted(store.list_tags_by_owner(user_id))
