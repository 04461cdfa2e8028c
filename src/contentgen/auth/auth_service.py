"""Caller identity extraction from bearer JWTs."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
import structlog
from jwt import ExpiredSignatureError
from jwt import InvalidTokenError as PyJWTInvalidTokenError

logger = structlog.get_logger(__name__)


def _utcnow() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(tz=timezone.utc)


@dataclass(slots=True)
class UserIdentity:
    """Authenticated caller, scoped to an optional organization and project."""

    user_id: str
    organization_id: str | None = None
    project_id: str | None = None


class AuthError(Exception):
    """Base class for auth failures."""


class InvalidTokenError(AuthError):
    """Raised when token cannot be decoded."""


class TokenExpiredError(AuthError):
    """Raised when token is expired."""


@dataclass(slots=True)
class AuthService:
    """Issue and validate user tokens signed with a shared HS256 key."""

    signing_key: str
    token_ttl: timedelta = timedelta(hours=24)

    def __post_init__(self) -> None:
        if not self.signing_key:
            raise RuntimeError("JWT_SIGNING_KEY is not configured")

    def issue_token(
        self,
        user_id: str,
        *,
        organization_id: str | None = None,
        project_id: str | None = None,
    ) -> str:
        issued_at = _utcnow()
        payload: dict[str, Any] = {
            "sub": user_id,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + self.token_ttl).timestamp()),
        }
        if organization_id:
            payload["org_id"] = organization_id
        if project_id:
            payload["project_id"] = project_id
        return jwt.encode(payload, self.signing_key, algorithm="HS256")

    def validate_token(self, token: str) -> UserIdentity:
        try:
            payload: dict[str, Any] = jwt.decode(
                token,
                self.signing_key,
                algorithms=["HS256"],
                options={"require": ["exp", "iat", "sub"]},
            )
        except ExpiredSignatureError as exc:
            logger.info("auth.token.expired")
            raise TokenExpiredError("Token expired") from exc
        except PyJWTInvalidTokenError as exc:
            logger.warning("auth.token.invalid", error=str(exc))
            raise InvalidTokenError("Invalid token") from exc

        user_id = str(payload.get("sub") or "").strip()
        if not user_id:
            raise InvalidTokenError("Token subject is empty")
        return UserIdentity(
            user_id=user_id,
            organization_id=payload.get("org_id"),
            project_id=payload.get("project_id"),
        )


__all__ = [
    "AuthError",
    "AuthService",
    "InvalidTokenError",
    "TokenExpiredError",
    "UserIdentity",
]
