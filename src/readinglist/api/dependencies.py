"""Accessors for the services wired onto the application state."""

from fastapi import Request

from readinglist.repositories.articles import ArticleStore
from readinglist.services.auth import AuthService
from readinglist.services.ingestion import IngestionPipeline


def get_article_store(request: Request) -> ArticleStore:
    return request.app.state.article_store


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_pipeline(request: Request) -> IngestionPipeline:
    return request.app.state.pipeline
