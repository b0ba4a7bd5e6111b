"""
Signing component - short-lived upload credentials.

The remote store verifies uploads with:

    signature = HMAC-SHA1(key=private_key, message=token + str(expire))

where token is a random string and expire is a Unix timestamp in seconds.
The private key is only ever used as the HMAC key; it is never logged or
returned.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
from collections.abc import Callable

from src.core.entities import UploadCredential
from src.core.errors import AssetError, ErrorKind
from src.core.ports.clock import ClockPort

from .models import SigningOutput

DEFAULT_TTL_SECONDS = 3600
TOKEN_BYTES = 16  # 128 bits


def generate_token() -> str:
    return secrets.token_hex(TOKEN_BYTES)


def compute_signature(token: str, expires_at: int, secret_key: str) -> str:
    message = f"{token}{expires_at}".encode()
    return hmac.new(secret_key.encode(), message, hashlib.sha1).hexdigest()


def issue_credential(
    secret_key: str | None,
    *,
    clock: ClockPort,
    ttl_seconds: int = DEFAULT_TTL_SECONDS,
    token_factory: Callable[[], str] = generate_token,
) -> SigningOutput:
    """
    Issue a single-use upload credential.

    Fails with SIGNING_UNAVAILABLE when no secret key is configured; this
    is checked before any network call is attempted.
    """
    if not secret_key:
        return SigningOutput(
            errors=[
                AssetError(
                    kind=ErrorKind.SIGNING_UNAVAILABLE,
                    message="Upload signing is unavailable: the private key is not configured",
                    field="private_key",
                )
            ],
            success=False,
        )

    token = token_factory()
    expires_at = clock.epoch_seconds() + ttl_seconds
    credential = UploadCredential(
        signature=compute_signature(token, expires_at, secret_key),
        token=token,
        expires_at=expires_at,
    )
    return SigningOutput(credential=credential)


def verify_credential(credential: UploadCredential, secret_key: str, now_epoch: int) -> bool:
    """Check signature and expiry the way the remote store does."""
    if credential.expires_at <= now_epoch:
        return False
    expected = compute_signature(credential.token, credential.expires_at, secret_key)
    return hmac.compare_digest(expected, credential.signature)
