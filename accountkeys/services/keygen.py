# =============================================================================
# Key Generation & Hashing
# =============================================================================
#
# Pure functions, no FastAPI or database dependency.
#
# Keys are 32 random bytes (256 bits) from the OS CSPRNG rendered as
# "amk-" + 64 hex chars. Only the digest is ever stored.
#
# DESIGN DECISION: SHA-256, not bcrypt. The input is a high-entropy random
# token, and lookups need a deterministic digest to index on. When a
# server-side secret is configured the digest is HMAC-SHA256 instead, so a
# leaked table cannot be checked offline against candidate keys.
# =============================================================================

from __future__ import annotations

import hashlib
import hmac
import secrets

KEY_PREFIX = "amk-"
_KEY_BYTES = 32


def generate_api_key() -> str:
    """Generate a new plaintext account management API key."""
    return f"{KEY_PREFIX}{secrets.token_hex(_KEY_BYTES)}"


def hash_api_key(api_key: str, secret: str = "") -> str:
    """
    Hash an API key for storage and lookup.

    Returns a 64-char hex digest: HMAC-SHA256 keyed with `secret` when one
    is given, plain SHA-256 otherwise.
    """
    data = api_key.encode("utf-8")
    if secret:
        return hmac.new(secret.encode("utf-8"), data, hashlib.sha256).hexdigest()
    return hashlib.sha256(data).hexdigest()
