"""Webhook signature verification (X-Hub-Signature-256).

The default policy is fail-open: when the signature cannot be checked
(no secret, no signature header, malformed digest) the delivery is allowed
through. Pass ``strict=True`` (``STRICT_WEBHOOK_AUTH``) to reject those
deliveries instead. A well-formed signature that does not match is always
reported as invalid.
"""

import hashlib
import hmac

import logfire

from src.constants import WEBHOOK_SIGNATURE_PREFIX


def compute_signature(raw_body: bytes | str, secret: str) -> str:
    """Hex HMAC-SHA256 of the body keyed with the secret."""
    if isinstance(raw_body, str):
        raw_body = raw_body.encode("utf-8")
    return hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()


def verify_signature(
    raw_body: bytes | str,
    signature_header: str | None,
    secret: str | None,
    *,
    strict: bool = False,
) -> bool:
    """Check a delivery's signature against the shared secret.

    Args:
        raw_body: Request body exactly as received
        signature_header: Header value, with or without the ``sha256=`` prefix
        secret: Shared secret the sender signs with
        strict: Reject instead of allowing when verification is impossible

    Returns:
        True if the delivery should be accepted
    """
    if not secret or not secret.strip():
        logfire.warn("Webhook secret not configured, skipping signature validation")
        return not strict

    if not signature_header:
        logfire.warn("Webhook signature not provided, skipping validation")
        return not strict

    signature = signature_header.strip()
    if signature.startswith(WEBHOOK_SIGNATURE_PREFIX):
        signature = signature[len(WEBHOOK_SIGNATURE_PREFIX):]

    expected = bytes.fromhex(compute_signature(raw_body, secret))
    try:
        provided = bytes.fromhex(signature)
        if len(provided) != len(expected):
            raise ValueError(
                f"digest length {len(provided)} does not match {len(expected)}"
            )
    except ValueError as e:
        logfire.warn(
            "Error validating webhook signature",
            error=str(e),
            strict=strict,
        )
        return not strict

    return hmac.compare_digest(provided, expected)
