"""User registration, login and token handling."""

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import bcrypt
import jwt

from readinglist.models import User
from readinglist.repositories.users import RevokedTokenStore, UserStore
from readinglist.utils.logging import get_logger

logger = get_logger(__name__)

TOKEN_ALGORITHM = "HS256"


class InvalidCredentialsError(Exception):
    """Raised when a username/password pair does not match."""


class InvalidTokenError(Exception):
    """Raised when a bearer token is malformed, expired, forged or revoked."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


def hash_password(password: str) -> str:
    """Hash a plain-text password with bcrypt."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a plain-text password against a bcrypt hash."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


@dataclass
class TokenClaims:
    """Decoded claims of a valid token."""

    user_id: str
    issued_at: datetime
    expires_at: datetime


class TokenService:
    """Issues and validates HS256-signed tokens."""

    def __init__(self, secret: str, ttl: timedelta = timedelta(hours=24)) -> None:
        self._secret = secret
        self._ttl = ttl

    def issue(self, user_id: str) -> str:
        """Create a signed token for ``user_id``."""
        now = datetime.now(UTC)
        payload = {
            "user_id": user_id,
            "jti": uuid.uuid4().hex,
            "iat": now,
            "exp": now + self._ttl,
        }
        return jwt.encode(payload, self._secret, algorithm=TOKEN_ALGORITHM)

    def decode(self, token: str) -> TokenClaims:
        """Validate a token's signature and expiry.

        Raises:
            InvalidTokenError: If validation fails.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[TOKEN_ALGORITHM],
                options={"require": ["exp", "iat", "user_id"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise InvalidTokenError("token expired") from e
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError(f"invalid token: {e}") from e

        return TokenClaims(
            user_id=str(payload["user_id"]),
            issued_at=datetime.fromtimestamp(payload["iat"], UTC),
            expires_at=datetime.fromtimestamp(payload["exp"], UTC),
        )


class AuthService:
    """Registers users and manages their sessions."""

    def __init__(
        self,
        user_store: UserStore,
        revoked_tokens: RevokedTokenStore,
        tokens: TokenService,
    ) -> None:
        self._users = user_store
        self._revoked = revoked_tokens
        self._tokens = tokens

    def register(self, username: str, password: str) -> User:
        """Create a user with a hashed password.

        Raises:
            UsernameTakenError: If the username is already registered.
        """
        user = self._users.create(username, hash_password(password))
        logger.info("User registered", user_id=user.id)
        return user

    def login(self, username: str, password: str) -> str:
        """Check credentials and return a new token.

        Raises:
            InvalidCredentialsError: If the user is unknown or the password is wrong.
        """
        user = self._users.get_by_username(username)
        if user is None or not verify_password(password, user.password_hash):
            logger.warning("Login failed", username=username)
            raise InvalidCredentialsError("invalid username or password")

        logger.info("User logged in", user_id=user.id)
        return self._tokens.issue(user.id)

    def logout(self, token: str) -> None:
        """Revoke a valid token until it expires.

        Raises:
            InvalidTokenError: If the token is not valid.
        """
        claims = self._tokens.decode(token)
        self._revoked.revoke(token, claims.expires_at)
        logger.info("User logged out", user_id=claims.user_id)

    def authenticate(self, token: str) -> str:
        """Resolve a bearer token to its user id.

        Raises:
            InvalidTokenError: If the token is invalid or was revoked.
        """
        claims = self._tokens.decode(token)
        if self._revoked.is_revoked(token):
            raise InvalidTokenError("token revoked")
        return claims.user_id
