"""User-readable messages for identity provider error codes, per sign-in flow."""
from __future__ import annotations

from enum import StrEnum


class AuthFlow(StrEnum):
    CREDENTIALS = "credentials"
    POPUP = "popup"
    PASSWORD_RESET = "password_reset"


_NETWORK = "Network error. Please check your internet connection."

_MESSAGES: dict[AuthFlow, dict[str, str]] = {
    AuthFlow.CREDENTIALS: {
        "auth/email-already-in-use": "Email already in use. Please try logging in or use a different email.",
        "auth/invalid-email": "Invalid email address format.",
        "auth/weak-password": "Password is too weak. Use at least 6 characters with a mix of letters, numbers, and symbols.",
        "auth/user-not-found": "No account found with this email. Please sign up first.",
        "auth/wrong-password": "Incorrect password. Please try again.",
        "auth/too-many-requests": "Too many failed attempts. Please try again in a few minutes.",
        "auth/network-request-failed": _NETWORK,
    },
    AuthFlow.POPUP: {
        "auth/popup-blocked": "Popup blocked by browser. Please allow popups for this site.",
        "auth/unauthorized-domain": "This domain is not authorized. Please contact support.",
        "auth/network-request-failed": _NETWORK,
    },
    AuthFlow.PASSWORD_RESET: {
        "auth/user-not-found": "No account found with this email.",
        "auth/invalid-email": "Invalid email address.",
        "auth/too-many-requests": "Too many reset attempts. Please try again later.",
    },
}

_FALLBACKS: dict[AuthFlow, str] = {
    AuthFlow.CREDENTIALS: "An error occurred. Please try again.",
    AuthFlow.POPUP: "Failed to sign in with Google.",
    AuthFlow.PASSWORD_RESET: "Failed to send reset email.",
}

# The user dismissed the popup themselves; nothing to report.
SILENT_CODES = frozenset({"auth/popup-closed-by-user"})


def describe_auth_error(code: str, flow: AuthFlow, provider_message: str = "") -> str | None:
    """Return the message to show for `code`, or None when it should stay silent."""
    if code in SILENT_CODES:
        return None
    known = _MESSAGES[flow].get(code)
    if known is not None:
        return known
    return provider_message or _FALLBACKS[flow]
