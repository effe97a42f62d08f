"""FastAPI dependencies: the service container and the caller's identity."""

from __future__ import annotations

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from pdfchat.auth import Identity, decode_token
from pdfchat.errors import AuthError
from pdfchat.serving.container import Services

_bearer = HTTPBearer(auto_error=False)


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_optional_identity(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    services: Services = Depends(get_services),
) -> Identity | None:
    """Identity from the bearer token, or ``None`` when no token was sent.

    A token that is present but invalid is always rejected.
    """
    if credentials is None:
        return None
    cfg = services.config
    return decode_token(
        credentials.credentials,
        secret=cfg.jwt_secret,
        algorithm=cfg.jwt_algorithm,
        audience=cfg.jwt_audience or None,
    )


def require_identity(identity: Identity | None = Depends(get_optional_identity)) -> Identity:
    if identity is None:
        raise AuthError()
    return identity
