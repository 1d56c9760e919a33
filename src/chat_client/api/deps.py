"""FastAPI dependency injection helpers."""
from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from chat_client.application.dto.session import CurrentUser
from chat_client.application.ports.auth import TokenVerifier
from chat_client.application.ports.notifier import NotificationSurface
from chat_client.config import settings
from chat_client.infrastructure.auth.hs256_verifier import HS256Verifier
from chat_client.infrastructure.auth.jwks_verifier import JWKSVerifier

_bearer_scheme = HTTPBearer()


def _get_verifier() -> TokenVerifier:
    if settings.ID_TOKEN_VERIFY_MODE == "jwks":
        assert settings.JWKS_URL, "JWKS_URL must be set when ID_TOKEN_VERIFY_MODE=jwks"
        return JWKSVerifier(settings.JWKS_URL, settings.ID_TOKEN_AUDIENCE)
    return HS256Verifier(settings.ID_TOKEN_SECRET, settings.ID_TOKEN_ALGORITHM, settings.ID_TOKEN_AUDIENCE)


_verifier: TokenVerifier | None = None


def get_verifier() -> TokenVerifier:
    global _verifier  # noqa: PLW0603
    if _verifier is None:
        _verifier = _get_verifier()
    return _verifier


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(_bearer_scheme)],
    verifier: Annotated[TokenVerifier, Depends(get_verifier)],
) -> CurrentUser:
    try:
        return await verifier.verify(credentials.credentials)
    except Exception as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc


CurrentUserDep = Annotated[CurrentUser, Depends(get_current_user)]


def get_surface(request: Request) -> NotificationSurface:
    return request.app.state.surface


SurfaceDep = Annotated[NotificationSurface, Depends(get_surface)]
