"""
ImageKit Files API adapter.

Implements RemoteFileDeleterPort against the ImageKit management API.
Requests authenticate with HTTP basic auth (private key as username,
empty password).
"""

from __future__ import annotations

import logging

import httpx

from src.core.ports.remote import RemoteDeleteError

logger = logging.getLogger(__name__)


class ImageKitFileDeleter:
    """Deletes files by id via DELETE {files_api_url}/{file_id}."""

    def __init__(
        self,
        files_api_url: str,
        private_key: str,
        *,
        timeout_seconds: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.files_api_url = files_api_url.rstrip("/")
        self._auth = httpx.BasicAuth(private_key, "")
        self._timeout = timeout_seconds
        self._client = client

    async def delete(self, file_id: str) -> None:
        url = f"{self.files_api_url}/{file_id}"
        try:
            if self._client is not None:
                response = await self._client.delete(url, auth=self._auth, timeout=self._timeout)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.delete(url, auth=self._auth)
        except httpx.HTTPError as e:
            raise RemoteDeleteError(file_id, f"{type(e).__name__}: {e}") from e

        # Already gone counts as deleted.
        if response.status_code == 404:
            logger.debug("Remote file %s already absent", file_id)
            return
        if not response.is_success:
            raise RemoteDeleteError(
                file_id,
                _error_message(response),
                status_code=response.status_code,
            )


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    return f"HTTP {response.status_code}"
