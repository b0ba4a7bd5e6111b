"""
Signing component - HMAC-signed, expiring upload credentials.
"""

from .component import (
    DEFAULT_TTL_SECONDS,
    compute_signature,
    generate_token,
    issue_credential,
    verify_credential,
)
from .models import SigningOutput

__all__ = [
    "DEFAULT_TTL_SECONDS",
    "compute_signature",
    "generate_token",
    "issue_credential",
    "verify_credential",
    "SigningOutput",
]
