from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class CurrentUser:
    """Signed-in identity extracted from the provider's ID token."""

    uid: str
    email: str | None = None
    display_name: str | None = None
    photo_url: str | None = None
    email_verified: bool = False
    provider: str = "password"

    @property
    def name(self) -> str:
        """Name shown to peers; falls back to the email like the sign-up form does."""
        return self.display_name or self.email or "User"
