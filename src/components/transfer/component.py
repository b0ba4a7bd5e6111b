"""
Transfer component - multipart upload to the remote object store.

Drives the byte transfer, reports progress, and produces exactly one
terminal TransferOutput per call.

Invariants:
- on_progress is only called before the terminal result is returned
- Cancellation resolves as CANCELLED and stops further progress reports
- Connections and buffers are released on every exit path
- A transfer still running after timeout_seconds resolves as TIMED_OUT
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import uuid4

import httpx
from pydantic import ValidationError

from src.core.entities import RemoteAssetInfo, UploadCredential
from src.core.errors import AssetError, ErrorKind

from .models import (
    CancelToken,
    ProgressCallback,
    TransferInput,
    TransferOutput,
    TransferSettings,
    UploadResponsePayload,
)

logger = logging.getLogger(__name__)

_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class TransferCancelled(Exception):
    """Raised inside the request body stream when cancellation is observed."""


# --- Request construction ---


def build_destination(slot: str, owner_id: str | None) -> str:
    """Remote folder for an upload: {slot}s/{owner or "anonymous"}."""
    return f"{slot}s/{owner_id or 'anonymous'}"


def safe_file_name(name: str) -> str:
    cleaned = _UNSAFE_NAME_CHARS.sub("_", name).strip("._")
    return cleaned[:100] or "upload"


def build_file_name(slot: str, original_name: str, now_ms: int) -> str:
    """Collision-resistant remote file name."""
    return f"{slot}_{now_ms}_{uuid4().hex[:12]}_{safe_file_name(original_name)}"


def build_tags(owner_id: str | None, slot: str, system_tag: str) -> str:
    return f"user_{owner_id or 'anonymous'},{slot},{system_tag}"


def build_form_fields(
    inp: TransferInput,
    credential: UploadCredential,
    settings: TransferSettings,
    *,
    now_ms: int,
) -> dict[str, str]:
    """Form fields sent alongside the file part."""
    return {
        "publicKey": settings.public_key,
        "signature": credential.signature,
        "expire": str(credential.expires_at),
        "token": credential.token,
        "folder": build_destination(inp.slot, inp.owner_id),
        "fileName": build_file_name(inp.slot, inp.filename, now_ms),
        "useUniqueFileName": "true",
        "tags": build_tags(inp.owner_id, inp.slot, settings.system_tag),
    }


# --- Response handling ---


def parse_upload_response(
    response: httpx.Response,
    inp: TransferInput,
) -> RemoteAssetInfo | None:
    """Map a 2xx response body to RemoteAssetInfo, or None if it has the wrong shape."""
    try:
        payload = UploadResponsePayload.model_validate(response.json())
    except (ValueError, ValidationError):
        return None

    return RemoteAssetInfo(
        remote_ref=payload.file_path,
        url=payload.url,
        preview_url=payload.thumbnail_url or payload.url,
        size_bytes=payload.size if payload.size is not None else len(inp.data),
        content_type=inp.content_type,
        file_id=payload.file_id,
        name=payload.name,
        metadata=payload.metadata or {},
    )


def remote_error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    return f"HTTP {response.status_code}"


def _failure(kind: ErrorKind, message: str, status_code: int | None = None) -> TransferOutput:
    return TransferOutput(
        errors=[AssetError(kind=kind, message=message, field="file", status_code=status_code)],
        success=False,
    )


# --- Progress gate ---


class _ProgressGate:
    """Forwards percent updates until closed; drops repeats."""

    def __init__(self, callback: ProgressCallback | None) -> None:
        self._callback = callback
        self._closed = False
        self._last: int | None = None

    def report(self, percent: int) -> None:
        if self._closed or self._callback is None or percent == self._last:
            return
        self._last = percent
        self._callback(percent)

    def close(self) -> None:
        self._closed = True


# --- Orchestrator ---


class TransferOrchestrator:
    """
    Uploads one file per call to the remote store.

    An injected httpx.AsyncClient is shared and left open; otherwise a
    client is created and closed for every upload.
    """

    def __init__(
        self,
        settings: TransferSettings,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings
        self._client = client

    @asynccontextmanager
    async def _client_scope(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(timeout=self.settings.timeout_seconds) as client:
            yield client

    async def _stream_body(
        self,
        body: bytes,
        gate: _ProgressGate,
        cancel: CancelToken,
    ) -> AsyncIterator[bytes]:
        total = len(body)
        chunk_size = max(1, self.settings.chunk_size_bytes)
        sent = 0
        while sent < total:
            # Checkpoint: give cancellers a chance to run before each chunk.
            await asyncio.sleep(0)
            if cancel.cancelled:
                raise TransferCancelled()
            chunk = body[sent : sent + chunk_size]
            sent += len(chunk)
            yield chunk
            gate.report(round(sent * 100 / total))

    def _build_request(
        self,
        client: httpx.AsyncClient,
        inp: TransferInput,
        credential: UploadCredential,
        gate: _ProgressGate,
        cancel: CancelToken,
    ) -> httpx.Request:
        fields = build_form_fields(
            inp, credential, self.settings, now_ms=int(time.time() * 1000)
        )
        encoded = client.build_request(
            "POST",
            self.settings.upload_url,
            data=fields,
            files={"file": (inp.filename, inp.data, inp.content_type)},
        )
        # Encode the multipart body once, then stream it back out so progress can be observed.
        body = encoded.read()
        return client.build_request(
            "POST",
            self.settings.upload_url,
            headers=encoded.headers,
            content=self._stream_body(body, gate, cancel),
        )

    async def upload(
        self,
        inp: TransferInput,
        credential: UploadCredential,
        on_progress: ProgressCallback | None = None,
        *,
        cancel_token: CancelToken | None = None,
    ) -> TransferOutput:
        """
        Transfer inp.data to the remote store.

        Returns:
            TransferOutput with the remote asset info, or one of
            CANCELLED, TIMED_OUT, TRANSFER_FAILED, BAD_RESPONSE.
        """
        cancel = cancel_token or CancelToken()
        gate = _ProgressGate(on_progress)
        try:
            if cancel.cancelled:
                return _failure(ErrorKind.CANCELLED, "Upload was cancelled")
            async with self._client_scope() as client:
                request = self._build_request(client, inp, credential, gate, cancel)
                return await self._send(client, request, inp, cancel)
        finally:
            gate.close()

    async def _send(
        self,
        client: httpx.AsyncClient,
        request: httpx.Request,
        inp: TransferInput,
        cancel: CancelToken,
    ) -> TransferOutput:
        send_task = asyncio.ensure_future(client.send(request))
        cancel_task = asyncio.ensure_future(cancel.wait())
        try:
            done, _ = await asyncio.wait(
                {send_task, cancel_task},
                timeout=self.settings.timeout_seconds,
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            cancel_task.cancel()
            if not send_task.done():
                send_task.cancel()
            await asyncio.gather(send_task, cancel_task, return_exceptions=True)

        if cancel.cancelled:
            if send_task in done and not send_task.cancelled() and send_task.exception() is None:
                if send_task.result().is_success:
                    logger.warning(
                        "Upload for %s/%s was cancelled after the remote write completed; "
                        "the remote file is orphaned",
                        inp.slot,
                        inp.owner_id or "anonymous",
                    )
            return _failure(ErrorKind.CANCELLED, "Upload was cancelled")

        if send_task not in done or send_task.cancelled():
            return _failure(
                ErrorKind.TIMED_OUT,
                f"Upload timed out after {self.settings.timeout_seconds:g} seconds",
            )

        exc = send_task.exception()
        if exc is not None:
            if isinstance(exc, TransferCancelled):
                return _failure(ErrorKind.CANCELLED, "Upload was cancelled")
            if isinstance(exc, httpx.TimeoutException):
                return _failure(ErrorKind.TIMED_OUT, f"Upload timed out: {exc}")
            if isinstance(exc, httpx.HTTPError):
                return _failure(ErrorKind.TRANSFER_FAILED, f"Upload failed: {exc}")
            logger.error("Upload of %s failed unexpectedly", inp.filename, exc_info=exc)
            return _failure(ErrorKind.TRANSFER_FAILED, f"Upload failed: {exc}")

        response = send_task.result()
        if not response.is_success:
            return _failure(
                ErrorKind.TRANSFER_FAILED,
                remote_error_message(response),
                status_code=response.status_code,
            )

        asset = parse_upload_response(response, inp)
        if asset is None:
            return _failure(
                ErrorKind.BAD_RESPONSE,
                "Could not process the upload response from the object store",
                status_code=response.status_code,
            )
        return TransferOutput(asset=asset)
