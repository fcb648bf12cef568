"""
Form Timing Tokens

Signed tokens that record when the application form was loaded, so the
submission handler can reject bots that post faster than a human could fill
the form in (and replays of old tokens).

Token layout (before base64):
    <timestamp_ms>|<nonce>|<client_ip>|<hmac_sha256_hex>

The pipe delimiter never appears in IPv4/IPv6 addresses. The signature covers
the first three fields and is keyed with ``settings.effective_form_token_secret``.
"""

import base64
import binascii
import hashlib
import hmac
import logging
import secrets
import time
from dataclasses import dataclass

from app.core.config import settings

logger = logging.getLogger(__name__)

DELIMITER = "|"
NONCE_BYTES = 8


@dataclass(frozen=True)
class FormTokenResult:
    """Outcome of verifying a form token."""

    valid: bool
    elapsed_ms: int | None = None
    error: str | None = None


def _now_ms() -> int:
    return int(time.time() * 1000)


def _sign(payload: str, secret: str) -> str:
    return hmac.new(secret.encode(), payload.encode(), hashlib.sha256).hexdigest()


def issue_form_token(client_ip: str, now_ms: int | None = None) -> str:
    """
    Create a signed form token for ``client_ip``.

    Args:
        client_ip: IP address of the client loading the form
        now_ms: override for the issue time (epoch milliseconds)

    Returns:
        Base64-encoded token string
    """
    timestamp = _now_ms() if now_ms is None else now_ms
    nonce = secrets.token_hex(NONCE_BYTES)
    payload = DELIMITER.join([str(timestamp), nonce, client_ip])
    signature = _sign(payload, settings.effective_form_token_secret)
    return base64.b64encode(f"{payload}{DELIMITER}{signature}".encode()).decode()


def verify_form_token(
    token: str,
    client_ip: str,
    now_ms: int | None = None,
) -> FormTokenResult:
    """
    Verify a form token and the time the client spent on the form.

    Checks, in order: structure, signature (constant time), maximum age,
    minimum dwell time and, when ``form_token_enforce_ip`` is set, that the
    token was issued to the same IP.

    Args:
        token: Base64 token as returned by ``issue_form_token``
        client_ip: IP address of the submitting client
        now_ms: override for the current time (epoch milliseconds)

    Returns:
        FormTokenResult with ``elapsed_ms`` when the signature checked out
    """
    try:
        decoded = base64.b64decode(token.encode(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return FormTokenResult(valid=False, error="Invalid token format")

    parts = decoded.split(DELIMITER)
    if len(parts) != 4:
        return FormTokenResult(valid=False, error="Invalid token format")

    timestamp_str, nonce, token_ip, provided_signature = parts
    try:
        timestamp = int(timestamp_str)
    except ValueError:
        return FormTokenResult(valid=False, error="Invalid timestamp")

    payload = DELIMITER.join([str(timestamp), nonce, token_ip])
    expected_signature = _sign(payload, settings.effective_form_token_secret)
    if not hmac.compare_digest(provided_signature.encode(), expected_signature.encode()):
        return FormTokenResult(valid=False, error="Invalid signature")

    elapsed_ms = (_now_ms() if now_ms is None else now_ms) - timestamp

    if elapsed_ms > settings.form_token_max_age_seconds * 1000:
        return FormTokenResult(valid=False, elapsed_ms=elapsed_ms, error="Token expired")

    if elapsed_ms < settings.form_min_dwell_seconds * 1000:
        return FormTokenResult(
            valid=False, elapsed_ms=elapsed_ms, error="Form submitted too quickly"
        )

    if settings.form_token_enforce_ip and token_ip != client_ip:
        logger.info(f"Form token IP mismatch: issued to {token_ip}, used by {client_ip}")
        return FormTokenResult(valid=False, elapsed_ms=elapsed_ms, error="IP mismatch")

    return FormTokenResult(valid=True, elapsed_ms=elapsed_ms)
