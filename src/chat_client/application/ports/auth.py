from __future__ import annotations

from typing import Protocol

from chat_client.application.dto.session import CurrentUser


class TokenVerifier(Protocol):
    async def verify(self, token: str) -> CurrentUser: ...


class IdentityProviderError(Exception):
    """Raised by identity providers; `code` follows the provider's `auth/...` scheme."""

    def __init__(self, code: str, message: str = "") -> None:
        self.code = code
        self.message = message
        super().__init__(message or code)


class IdentityProvider(Protocol):
    """Credential provider. Every sign-in returns a signed ID token."""

    async def create_user(self, email: str, password: str) -> str: ...

    async def sign_in(self, email: str, password: str) -> str: ...

    async def sign_in_with_popup(self, provider: str) -> str: ...

    async def update_profile(self, id_token: str, *, display_name: str) -> str: ...

    async def send_email_verification(self, id_token: str) -> None: ...

    async def send_password_reset(self, email: str) -> None: ...

    async def sign_out(self) -> None: ...
