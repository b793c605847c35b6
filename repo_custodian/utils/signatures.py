"""Verification of GitHub webhook signatures (``X-Hub-Signature-256``)."""

import hashlib
import hmac


def compute_signature(secret: str, body: bytes) -> str:
    """Return the ``sha256=<hex>`` signature GitHub sends for ``body``."""
    digest = hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    return f"sha256={digest}"


def verify_signature(secret: str, body: bytes, signature_header: str | None) -> bool:
    """Constant-time comparison of the received header against the expected signature."""
    if not signature_header or not signature_header.startswith("sha256="):
        return False
    return hmac.compare_digest(compute_signature(secret, body), signature_header)
