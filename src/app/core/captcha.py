"""
CAPTCHA Verification

Server-side check of Cloudflare Turnstile tokens. When no secret key is
configured the check is skipped entirely (local development).
"""

import logging

import httpx

from app.core.config import settings

logger = logging.getLogger(__name__)


def is_captcha_enabled() -> bool:
    return bool(settings.turnstile_secret_key)


async def verify_turnstile_token(token: str | None, client_ip: str) -> bool:
    """
    Verify a Turnstile token with the provider.

    Args:
        token: Token produced by the widget on the client
        client_ip: Submitting client's IP, forwarded to the provider

    Returns:
        True if the provider confirms the token (or CAPTCHA is disabled),
        False for a missing token, a rejected token or a failed call
    """
    if not is_captcha_enabled():
        logger.debug("Turnstile secret not configured, skipping CAPTCHA check")
        return True

    if not token:
        return False

    form = {
        "secret": settings.turnstile_secret_key,
        "response": token,
    }
    if client_ip and client_ip != "unknown":
        form["remoteip"] = client_ip

    try:
        async with httpx.AsyncClient(timeout=settings.captcha_timeout_seconds) as client:
            response = await client.post(settings.turnstile_verify_url, data=form)
            response.raise_for_status()
            outcome = response.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.error(f"Turnstile verification request failed: {e}")
        return False

    if outcome.get("success") is True:
        return True

    logger.warning(f"Turnstile rejected token from {client_ip}: {outcome.get('error-codes')}")
    return False
