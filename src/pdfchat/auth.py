"""
Authenticated identity.

Identity and session management live outside this service: callers present
a bearer JWT issued by the identity provider, signed with the shared
``jwt_secret``.  This module only verifies the token and turns it into an
:class:`Identity`.  The FastAPI dependencies that read the header live in
:mod:`pdfchat.serving.dependencies`.
"""

from __future__ import annotations

import logging

import jwt
from pydantic import BaseModel, ConfigDict, Field

from pdfchat.errors import AuthError

logger = logging.getLogger(__name__)


class Identity(BaseModel):
    """Authenticated caller derived from a verified token."""

    user_id: str = Field(..., min_length=1)
    email: str | None = None

    model_config = ConfigDict(frozen=True)


def decode_token(token: str, *, secret: str, algorithm: str = "HS256", audience: str | None = None) -> Identity:
    """Verify *token* and return the identity it asserts.

    Raises
    ------
    AuthError
        If verification is not configured, or the token is expired,
        malformed, signed with another key, or lacks a subject.
    """
    if not secret:
        logger.error("Token verification requested but jwt_secret is not configured")
        raise AuthError()

    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[algorithm],
            audience=audience,
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError as exc:
        raise AuthError("Session has expired") from exc
    except jwt.InvalidTokenError as exc:
        logger.info("Rejected token: %s", exc)
        raise AuthError() from exc

    return Identity(user_id=str(payload["sub"]), email=payload.get("email"))
