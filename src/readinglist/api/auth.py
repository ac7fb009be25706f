"""Authentication dependencies for API endpoints."""

from fastapi import Depends, Header, HTTPException, status

from readinglist.api.dependencies import get_auth_service
from readinglist.services.auth import AuthService, InvalidTokenError
from readinglist.utils.logging import get_logger

logger = get_logger(__name__)


def bearer_token(authorization: str | None = Header(default=None)) -> str:
    """Extract the token from an ``Authorization: Bearer <token>`` header.

    Raises:
        HTTPException: 401 if the header is missing or malformed.
    """
    if not authorization:
        logger.warning("Missing authorization header")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header is required",
        )

    scheme, _, token = authorization.partition(" ")
    if scheme != "Bearer" or not token or " " in token:
        logger.warning("Invalid authorization header format")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid Authorization header format",
        )
    return token


def current_user_id(
    token: str = Depends(bearer_token),
    auth_service: AuthService = Depends(get_auth_service),
) -> str:
    """Resolve the request's bearer token to a user id.

    Raises:
        HTTPException: 401 if the token is invalid, expired or revoked.
    """
    try:
        return auth_service.authenticate(token)
    except InvalidTokenError as e:
        logger.warning("Rejected bearer token", reason=e.reason)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        ) from e
