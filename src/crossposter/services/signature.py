"""Notion webhook signature verification.

Notion signs each event body with HMAC-SHA256, keyed by the verification
token issued when the subscription was created, and sends the result in the
``X-Notion-Signature`` header as ``sha256=<hex digest>``.
"""

import hashlib
import hmac
import json

from crossposter.utils.logging import get_logger

logger = get_logger(__name__)

SIGNATURE_HEADER = "X-Notion-Signature"
SIGNATURE_PREFIX = "sha256="


def _to_bytes(value: str | bytes) -> bytes:
    return value if isinstance(value, bytes) else value.encode("utf-8")


def mask_signature(signature: str) -> str:
    """Shorten a signature so it can be logged."""
    if len(signature) <= 24:
        return signature
    return f"{signature[:12]}...{signature[-12:]}"


def compute_signature(secret: str, raw_body: str | bytes) -> str:
    """Compute the header value Notion would send for this body."""
    digest = hmac.new(_to_bytes(secret), _to_bytes(raw_body), hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def verify_signature(secret: str, signature_header: str | None, raw_body: str | bytes) -> bool:
    """Check a webhook signature against the raw request body.

    ``raw_body`` must be the payload exactly as received; a re-serialized
    JSON document will not match. This function never raises.

    Returns:
        True only if the header matches the expected signature.
    """
    if not signature_header:
        logger.warning("Webhook signature header missing")
        return False

    try:
        expected = compute_signature(secret, raw_body)
    except (TypeError, ValueError) as e:
        logger.error("Failed to compute webhook signature", error=str(e))
        return False

    if len(signature_header) != len(expected):
        logger.warning(
            "Webhook signature length mismatch",
            signature=mask_signature(signature_header),
        )
        return False

    # compare_digest runs over every byte regardless of where they differ.
    if not hmac.compare_digest(_to_bytes(signature_header), _to_bytes(expected)):
        logger.warning(
            "Webhook signature mismatch",
            signature=mask_signature(signature_header),
        )
        return False

    return True


def extract_verification_token(raw_body: str | bytes) -> str | None:
    """Return the one-time subscription verification token, if the body has one.

    Notion sends ``{"verification_token": "..."}`` unsigned while a webhook
    subscription is being set up. Any other body yields None.
    """
    try:
        payload = json.loads(raw_body)
    except (TypeError, ValueError):
        return None
    if not isinstance(payload, dict):
        return None
    token = payload.get("verification_token")
    return token if isinstance(token, str) and token else None
