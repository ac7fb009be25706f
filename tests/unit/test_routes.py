"""Unit tests for the HTTP API."""

from collections.abc import AsyncIterator
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from fastapi import FastAPI

from readinglist import __version__
from readinglist.main import create_app
from readinglist.models import Article, ArticleStatus
from readinglist.repositories.articles import ArticleStore, PersistenceError
from readinglist.repositories.users import RevokedTokenStore, UserStore
from readinglist.services.auth import AuthService, TokenService
from readinglist.services.ingestion import IngestionPipeline

SECRET = "test-secret-with-enough-length-for-hs256"


@pytest.fixture
def pipeline() -> MagicMock:
    return MagicMock(spec=IngestionPipeline)


@pytest.fixture
def app(
    article_store: ArticleStore,
    user_store: UserStore,
    revoked_tokens: RevokedTokenStore,
    pipeline: MagicMock,
) -> FastAPI:
    """App with its state wired by hand; the lifespan is not run."""
    application = create_app()
    application.state.article_store = article_store
    application.state.auth_service = AuthService(
        user_store, revoked_tokens, TokenService(SECRET)
    )
    application.state.pipeline = pipeline
    return application


@pytest.fixture
async def client(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
        yield http


async def _auth_headers(
    client: httpx.AsyncClient, username: str = "reader@example.com"
) -> dict[str, str]:
    credentials = {"username": username, "password": "pw"}
    await client.post("/api/v1/auth/register", json=credentials)
    response = await client.post("/api/v1/auth/login", json=credentials)
    return {"Authorization": f"Bearer {response.json()['token']}"}


def _user_id(app: FastAPI, headers: dict[str, str]) -> str:
    token = headers["Authorization"].removeprefix("Bearer ")
    return app.state.auth_service.authenticate(token)


class TestPublicEndpoints:
    """Tests for endpoints that need no token."""

    async def test_root(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/")

        assert response.status_code == 200
        assert response.json()["version"] == __version__

    async def test_health(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/api/v1/health")

        assert response.json() == {"status": "healthy", "version": __version__}


class TestAuthEndpoints:
    """Tests for register, login and logout."""

    async def test_register(self, client: httpx.AsyncClient) -> None:
        """Should create the user and never return the password hash."""
        response = await client.post(
            "/api/v1/auth/register", json={"username": "reader@example.com", "password": "pw"}
        )

        assert response.status_code == 201
        body = response.json()
        assert body["username"] == "reader@example.com"
        assert "password_hash" not in body

    async def test_register_duplicate(self, client: httpx.AsyncClient) -> None:
        credentials = {"username": "reader@example.com", "password": "pw"}
        await client.post("/api/v1/auth/register", json=credentials)

        response = await client.post("/api/v1/auth/register", json=credentials)

        assert response.status_code == 409

    async def test_register_requires_email(self, client: httpx.AsyncClient) -> None:
        response = await client.post(
            "/api/v1/auth/register", json={"username": "not-an-email", "password": "pw"}
        )

        assert response.status_code == 422

    async def test_login_bad_password(self, client: httpx.AsyncClient) -> None:
        await client.post(
            "/api/v1/auth/register", json={"username": "reader@example.com", "password": "pw"}
        )

        response = await client.post(
            "/api/v1/auth/login", json={"username": "reader@example.com", "password": "nope"}
        )

        assert response.status_code == 401

    async def test_missing_token(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/api/v1/articles")

        assert response.status_code == 401

    async def test_malformed_header(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/api/v1/articles", headers={"Authorization": "Token abc"})

        assert response.status_code == 401

    async def test_logout_revokes_token(self, client: httpx.AsyncClient) -> None:
        """A logged-out token should be rejected afterwards."""
        headers = await _auth_headers(client)

        logout = await client.post("/api/v1/auth/logout", headers=headers)
        after = await client.get("/api/v1/articles", headers=headers)

        assert logout.status_code == 200
        assert after.status_code == 401


class TestArticleEndpoints:
    """Tests for the article endpoints."""

    async def test_submit_returns_processing_article(
        self, client: httpx.AsyncClient, pipeline: MagicMock, app: FastAPI
    ) -> None:
        """Should return 201 with the processing article from the pipeline."""
        headers = await _auth_headers(client)
        user_id = _user_id(app, headers)
        now = datetime.now(UTC)
        pipeline.submit = AsyncMock(
            return_value=Article(
                id="article-1",
                owner_id=user_id,
                url="http://x.test/a",
                status=ArticleStatus.PROCESSING,
                created_at=now,
                updated_at=now,
            )
        )

        response = await client.post(
            "/api/v1/articles", json={"url": "http://x.test/a"}, headers=headers
        )

        assert response.status_code == 201
        body = response.json()
        assert body["id"] == "article-1"
        assert body["status"] == "processing"
        assert body["tags"] == []
        assert "summary" not in body
        pipeline.submit.assert_awaited_once_with(user_id, "http://x.test/a")

    async def test_submit_rejects_non_http_url(
        self, client: httpx.AsyncClient, pipeline: MagicMock
    ) -> None:
        headers = await _auth_headers(client)

        response = await client.post(
            "/api/v1/articles", json={"url": "ftp://x.test/a"}, headers=headers
        )

        assert response.status_code == 422
        pipeline.submit.assert_not_called()

    async def test_submit_database_error_is_500(
        self, client: httpx.AsyncClient, pipeline: MagicMock
    ) -> None:
        headers = await _auth_headers(client)
        pipeline.submit = AsyncMock(side_effect=PersistenceError("failed to insert article"))

        response = await client.post(
            "/api/v1/articles", json={"url": "http://x.test/a"}, headers=headers
        )

        assert response.status_code == 500

    async def test_list_get_and_filter(
        self, client: httpx.AsyncClient, article_store: ArticleStore, app: FastAPI
    ) -> None:
        """Should list only the caller's articles and apply filters."""
        headers = await _auth_headers(client)
        user_id = _user_id(app, headers)
        read = article_store.create(
            Article(owner_id=user_id, url="http://x.test/1", status=ArticleStatus.READ, tags=["python"])
        )
        article_store.create(
            Article(owner_id=user_id, url="http://x.test/2", status=ArticleStatus.UNREAD, tags=["go"])
        )
        article_store.create(Article(owner_id="someone-else", url="http://x.test/3"))

        everything = await client.get("/api/v1/articles", headers=headers)
        by_status = await client.get("/api/v1/articles", params={"status": "read"}, headers=headers)
        by_tag = await client.get("/api/v1/articles", params={"tag": "pyth"}, headers=headers)
        single = await client.get(f"/api/v1/articles/{read.id}", headers=headers)

        assert len(everything.json()) == 2
        assert [a["id"] for a in by_status.json()] == [read.id]
        assert [a["id"] for a in by_tag.json()] == [read.id]
        assert single.json()["user_id"] == user_id

    async def test_other_users_article_is_404(
        self, client: httpx.AsyncClient, article_store: ArticleStore
    ) -> None:
        """Another user's article should look exactly like a missing one."""
        headers = await _auth_headers(client)
        foreign = article_store.create(Article(owner_id="someone-else", url="http://x.test/3"))

        responses = [
            await client.get(f"/api/v1/articles/{foreign.id}", headers=headers),
            await client.delete(f"/api/v1/articles/{foreign.id}", headers=headers),
            await client.put(
                f"/api/v1/articles/{foreign.id}/status", json={"status": "read"}, headers=headers
            ),
            await client.put(
                f"/api/v1/articles/{foreign.id}/tags", json={"tags": ["x"]}, headers=headers
            ),
        ]
        missing = await client.get("/api/v1/articles/does-not-exist", headers=headers)

        assert [r.status_code for r in responses] == [404, 404, 404, 404]
        assert all(r.json() == missing.json() for r in responses)

    async def test_update_status_and_tags(
        self, client: httpx.AsyncClient, article_store: ArticleStore, app: FastAPI
    ) -> None:
        headers = await _auth_headers(client)
        user_id = _user_id(app, headers)
        article = article_store.create(
            Article(owner_id=user_id, url="http://x.test/1", status=ArticleStatus.UNREAD)
        )

        status_response = await client.put(
            f"/api/v1/articles/{article.id}/status", json={"status": "read"}, headers=headers
        )
        tags_response = await client.put(
            f"/api/v1/articles/{article.id}/tags", json={"tags": ["a", "b"]}, headers=headers
        )

        assert status_response.status_code == 200
        assert tags_response.status_code == 200
        stored = article_store.get(article.id, user_id)
        assert stored.status is ArticleStatus.READ
        assert stored.tags == ["a", "b"]

    @pytest.mark.parametrize("status_value", ["processing", "failed", "archived"])
    async def test_update_status_rejects_other_values(
        self, client: httpx.AsyncClient, status_value: str
    ) -> None:
        headers = await _auth_headers(client)

        response = await client.put(
            "/api/v1/articles/any/status", json={"status": status_value}, headers=headers
        )

        assert response.status_code == 422

    async def test_update_tags_rejects_empty_list(self, client: httpx.AsyncClient) -> None:
        headers = await _auth_headers(client)

        response = await client.put("/api/v1/articles/any/tags", json={"tags": []}, headers=headers)

        assert response.status_code == 422

    async def test_delete(
        self, client: httpx.AsyncClient, article_store: ArticleStore, app: FastAPI
    ) -> None:
        headers = await _auth_headers(client)
        user_id = _user_id(app, headers)
        article = article_store.create(Article(owner_id=user_id, url="http://x.test/1"))

        response = await client.delete(f"/api/v1/articles/{article.id}", headers=headers)

        assert response.status_code == 204
        assert article_store.list_by_owner(user_id) == []

    async def test_list_tags(
        self, client: httpx.AsyncClient, article_store: ArticleStore, app: FastAPI
    ) -> None:
        headers = await _auth_headers(client)
        user_id = _user_id(app, headers)
        article_store.create(Article(owner_id=user_id, url="http://x.test/1", tags=["b", "a"]))
        article_store.create(Article(owner_id=user_id, url="http://x.test/2", tags=["a", "c"]))

        response = await client.get("/api/v1/tags", headers=headers)

        assert response.json() == ["a", "b", "c"]
