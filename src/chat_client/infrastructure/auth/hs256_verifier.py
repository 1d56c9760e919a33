from __future__ import annotations

from typing import Any

import jwt

from chat_client.application.dto.session import CurrentUser


def claims_to_user(payload: dict[str, Any]) -> CurrentUser:
    """Map standard ID-token claims onto the session user."""
    firebase = payload.get("firebase") or {}
    return CurrentUser(
        uid=str(payload.get("user_id") or payload["sub"]),
        email=payload.get("email"),
        display_name=payload.get("name"),
        photo_url=payload.get("picture"),
        email_verified=bool(payload.get("email_verified", False)),
        provider=str(firebase.get("sign_in_provider") or payload.get("provider") or "password"),
    )


class HS256Verifier:
    """Verify ID tokens signed with a shared HS256 secret."""

    def __init__(self, secret: str, algorithm: str = "HS256", audience: str | None = None) -> None:
        self._secret = secret
        self._algorithm = algorithm
        self._audience = audience

    async def verify(self, token: str) -> CurrentUser:
        payload = jwt.decode(
            token,
            self._secret,
            algorithms=[self._algorithm],
            audience=self._audience,
            options={"verify_aud": self._audience is not None},
        )
        return claims_to_user(payload)
