from __future__ import annotations

import asyncio
import logging

import jwt
from jwt import PyJWKClient

from chat_client.application.dto.session import CurrentUser
from chat_client.infrastructure.auth.hs256_verifier import claims_to_user

logger = logging.getLogger(__name__)


class JWKSVerifier:
    """Verify provider-issued ID tokens against the provider's JWKS endpoint."""

    def __init__(self, jwks_url: str, audience: str | None = None) -> None:
        self._jwks_url = jwks_url
        self._audience = audience
        self._jwk_client = PyJWKClient(jwks_url)

    async def verify(self, token: str) -> CurrentUser:
        # Key fetch is blocking HTTP; keep it off the event loop.
        signing_key = await asyncio.to_thread(self._jwk_client.get_signing_key_from_jwt, token)
        payload = jwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256", "ES256"],
            audience=self._audience,
            options={"verify_aud": self._audience is not None},
        )
        return claims_to_user(payload)
