"""Opaque bearer tokens and their storage digests.

Only the digest produced by `hash_token` is ever persisted. The raw token
exists in the client's cookie (or magic link) and in memory while a request
is being handled.
"""

import hashlib
import hmac
import secrets

SESSION_TOKEN_BYTES = 18  # 144 bits, 24 url-safe characters
INVITATION_TOKEN_BYTES = 32


def generate_session_token() -> str:
    """Generate a random url-safe session token."""
    return secrets.token_urlsafe(SESSION_TOKEN_BYTES)


def generate_invitation_token() -> str:
    """Generate a random hex token for magic-link invitations."""
    return secrets.token_hex(INVITATION_TOKEN_BYTES)


def hash_token(token: str) -> str:
    """SHA-256 of the token's UTF-8 bytes as lowercase hex."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def tokens_match(token: str, token_hash: str) -> bool:
    """Constant-time check that `token` hashes to `token_hash`."""
    return hmac.compare_digest(hash_token(token), token_hash)
