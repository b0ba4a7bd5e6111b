"""
Explicit service configuration.

Built once by the app shell (rules file + environment) and handed to
constructors. Holds no process-wide state.
"""

from __future__ import annotations

from dataclasses import dataclass, field

DEFAULT_ALLOWED_TYPES: tuple[str, ...] = (
    "image/jpeg",
    "image/png",
    "image/jpg",
    "image/gif",
    "image/webp",
)

# Values shipped in the .env template; treated as "not configured".
PLACEHOLDER_PUBLIC_KEY = "your_imagekit_public_key_here"
PLACEHOLDER_URL_ENDPOINT = "https://ik.imagekit.io/your_imagekit_id"
PLACEHOLDER_PRIVATE_KEY = "your_imagekit_private_key_here"


@dataclass(frozen=True)
class ServiceConfig:
    """Configuration for the asset history service."""

    public_key: str | None = None
    private_key: str | None = field(default=None, repr=False)
    url_endpoint: str | None = None
    upload_url: str = "https://upload.imagekit.io/api/v1/files/upload"
    files_api_url: str = "https://api.imagekit.io/v1/files"
    max_file_size_bytes: int = 10_485_760  # 10MB
    allowed_content_types: tuple[str, ...] = DEFAULT_ALLOWED_TYPES
    max_retained: int = 3
    timeout_seconds: float = 120.0
    chunk_size_bytes: int = 64 * 1024
    credential_ttl_seconds: int = 3600
    quality: str = "80"
    output_format: str = "webp"
    system_tag: str = "profile_system"

    @property
    def has_public_key(self) -> bool:
        return bool(self.public_key) and self.public_key != PLACEHOLDER_PUBLIC_KEY

    @property
    def has_private_key(self) -> bool:
        return bool(self.private_key) and self.private_key != PLACEHOLDER_PRIVATE_KEY

    @property
    def has_url_endpoint(self) -> bool:
        return bool(self.url_endpoint) and self.url_endpoint != PLACEHOLDER_URL_ENDPOINT

    @property
    def is_configured(self) -> bool:
        return self.has_public_key and self.has_url_endpoint and self.has_private_key

    @property
    def signing_key(self) -> str | None:
        """Private key, or None while it is unset or still the placeholder."""
        return self.private_key if self.has_private_key else None
