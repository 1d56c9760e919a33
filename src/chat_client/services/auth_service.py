from __future__ import annotations

import logging

from chat_client.application import paths
from chat_client.application.dto.session import CurrentUser
from chat_client.application.exceptions import AuthenticationError, ValidationError
from chat_client.application.policies.auth_messages import AuthFlow, describe_auth_error
from chat_client.application.ports.auth import IdentityProvider, IdentityProviderError, TokenVerifier
from chat_client.application.ports.clock import Clock, SystemClock
from chat_client.application.ports.store import LiveStore

logger = logging.getLogger(__name__)


def _auth_error(exc: IdentityProviderError, flow: AuthFlow) -> AuthenticationError | None:
    detail = describe_auth_error(exc.code, flow, exc.message)
    if detail is None:
        return None
    return AuthenticationError(detail, code=exc.code)


async def _save_profile(store: LiveStore, user: CurrentUser, now: int, *, created: bool = False) -> None:
    values: dict[str, object] = {
        "uid": user.uid,
        "email": user.email,
        "displayName": user.display_name or (user.email or user.uid).split("@")[0],
        "photoURL": user.photo_url,
        "emailVerified": user.email_verified,
        "provider": user.provider,
        "online": True,
        "lastSeen": now,
        "lastLogin": now,
    }
    if created:
        values["createdAt"] = now
    await store.update(paths.user(user.uid), values)


async def sign_in(
    provider: IdentityProvider,
    verifier: TokenVerifier,
    store: LiveStore,
    email: str,
    password: str,
    *,
    clock: Clock | None = None,
) -> CurrentUser:
    try:
        token = await provider.sign_in(email, password)
    except IdentityProviderError as exc:
        error = _auth_error(exc, AuthFlow.CREDENTIALS)
        raise error or AuthenticationError(code=exc.code) from exc
    user = await verifier.verify(token)
    if not user.email_verified:
        logger.info("User %s signed in with an unverified email", user.uid)
    await _save_profile(store, user, (clock or SystemClock()).now_ms())
    return user


async def sign_up(
    provider: IdentityProvider,
    verifier: TokenVerifier,
    store: LiveStore,
    email: str,
    password: str,
    display_name: str,
    *,
    clock: Clock | None = None,
) -> CurrentUser:
    """Create the account, set its display name and send the verification email."""
    display_name = display_name.strip()
    if not display_name:
        raise ValidationError("Display name is required")
    try:
        token = await provider.create_user(email, password)
        token = await provider.update_profile(token, display_name=display_name)
        await provider.send_email_verification(token)
    except IdentityProviderError as exc:
        error = _auth_error(exc, AuthFlow.CREDENTIALS)
        raise error or AuthenticationError(code=exc.code) from exc
    user = await verifier.verify(token)
    await _save_profile(store, user, (clock or SystemClock()).now_ms(), created=True)
    logger.info("Account created for %s, verification sent", user.uid)
    return user


async def sign_in_with_popup(
    provider: IdentityProvider,
    verifier: TokenVerifier,
    store: LiveStore,
    provider_name: str = "google",
    *,
    clock: Clock | None = None,
) -> CurrentUser | None:
    """Returns None when the user closed the popup themselves."""
    try:
        token = await provider.sign_in_with_popup(provider_name)
    except IdentityProviderError as exc:
        error = _auth_error(exc, AuthFlow.POPUP)
        if error is None:
            logger.debug("Popup closed by user")
            return None
        raise error from exc
    user = await verifier.verify(token)
    await _save_profile(store, user, (clock or SystemClock()).now_ms())
    return user


async def reset_password(provider: IdentityProvider, email: str) -> None:
    try:
        await provider.send_password_reset(email)
    except IdentityProviderError as exc:
        error = _auth_error(exc, AuthFlow.PASSWORD_RESET)
        raise error or AuthenticationError(code=exc.code) from exc
