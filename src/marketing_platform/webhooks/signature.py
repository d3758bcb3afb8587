"""
HMAC signature validation for provider callbacks.
"""

import base64
import hashlib
import hmac

from marketing_platform.shared.logging import get_logger

logger = get_logger(__name__)


def compute_webhook_signature(payload: str | bytes, secret: str) -> str:
    """Base64 HMAC-SHA256 of the payload keyed by the shared secret."""
    body = payload.encode("utf-8") if isinstance(payload, str) else payload
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def validate_webhook_signature(
    signature: str | None,
    payload: str | bytes,
    secret: str,
) -> bool:
    """Check a callback signature against the payload.

    The comparison ignores case. Any failure while computing the expected
    value counts as a mismatch.

    Args:
        signature: Signature sent by the provider.
        payload: Raw request body.
        secret: Shared secret.

    Returns:
        True if the signature is valid.
    """
    if not signature:
        return False

    try:
        expected = compute_webhook_signature(payload, secret)
        return hmac.compare_digest(expected.lower(), signature.strip().lower())
    except Exception as e:
        logger.error(
            "Signature validation error",
            extra={"error": str(e)},
        )
        return False
