"""
Assets component - the public surface of the upload/history core.

Pipeline per upload (one UploadHandle each):

    Idle -> Validating -> CredentialIssued -> Transferring -> Succeeded
                 \\               \\                \\-> Failed | Cancelled
                  \\-> Failed      \\-> Failed

Only Succeeded appends to the history ledger. Every public method
returns an output object; none raise.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator

import httpx

from src.adapters.clock import SystemClock
from src.adapters.imagekit_files import ImageKitFileDeleter
from src.components.derived_urls import DerivedUrls, derive_urls
from src.components.history import (
    ActivateOutput,
    CurrentAssetOutput,
    HistoryCallback,
    HistoryListOutput,
    HistoryStore,
)
from src.components.signing import issue_credential
from src.components.transfer import (
    CancelToken,
    ProgressCallback,
    TransferInput,
    TransferOrchestrator,
    TransferSettings,
)
from src.components.validation import (
    UploadPolicy,
    validate_file,
    validate_owner,
    validate_slot,
)
from src.core.config import ServiceConfig
from src.core.entities import IncomingFile
from src.core.errors import AssetError, ErrorKind
from src.core.ports.clock import ClockPort
from src.core.ports.store import DocumentStorePort, Unsubscribe

from .models import (
    TERMINAL_STATES,
    ConfigStatus,
    UploadDone,
    UploadEvent,
    UploadFailed,
    UploadOutput,
    UploadProgress,
    UploadState,
    can_transition,
)

logger = logging.getLogger(__name__)


def mask_secret(value: str | None, visible: int = 10) -> str:
    if not value:
        return "Not configured"
    return f"{value[:visible]}..."


class UploadHandle:
    """
    One in-flight upload.

    cancel() is cooperative; await result() for the single terminal
    outcome, or iterate events() for progress followed by Done/Failed.
    """

    def __init__(self, owner_id: str, slot: str) -> None:
        self.owner_id = owner_id
        self.slot = slot
        self.state = UploadState.IDLE
        self.cancel_token = CancelToken()
        self._events: asyncio.Queue[UploadEvent] = asyncio.Queue()
        self._task: asyncio.Task[UploadOutput] | None = None

    def cancel(self) -> None:
        self.cancel_token.cancel()

    @property
    def cancelled(self) -> bool:
        return self.cancel_token.cancelled

    @property
    def done(self) -> bool:
        return self.state in TERMINAL_STATES

    def _advance(self, new: UploadState) -> None:
        if not can_transition(self.state, new):
            raise RuntimeError(f"Invalid upload transition from {self.state.value} to {new.value}")
        self.state = new

    def _progress(self, percent: int) -> None:
        if self.state is UploadState.TRANSFERRING:
            self._events.put_nowait(UploadProgress(percent))

    def _finish(self, output: UploadOutput) -> UploadOutput:
        self._advance(output.state)
        if output.record is not None:
            self._events.put_nowait(UploadDone(output.record))
        else:
            self._events.put_nowait(UploadFailed(output.errors[0]))
        return output

    async def result(self) -> UploadOutput:
        assert self._task is not None, "upload was not started"
        try:
            return await asyncio.shield(self._task)
        except asyncio.CancelledError:
            self.cancel()
            raise

    async def events(self) -> AsyncIterator[UploadEvent]:
        while True:
            event = await self._events.get()
            yield event
            if not isinstance(event, UploadProgress):
                return


# --- Service ---


class AssetHistoryService:
    """Upload, list, activate and derive URLs for owner profile/banner images."""

    def __init__(
        self,
        config: ServiceConfig,
        *,
        history: HistoryStore,
        transfer: TransferOrchestrator,
        clock: ClockPort,
    ) -> None:
        self.config = config
        self.history = history
        self.transfer = transfer
        self._clock = clock
        self._policy = UploadPolicy.from_config(config)

    # --- Configuration ---

    def is_service_configured(self) -> bool:
        return self.config.is_configured

    def get_config_status(self) -> ConfigStatus:
        cfg = self.config
        return ConfigStatus(
            configured=cfg.is_configured,
            has_public_key=cfg.has_public_key,
            has_url_endpoint=cfg.has_url_endpoint,
            has_private_key=cfg.has_private_key,
            max_file_size_bytes=cfg.max_file_size_bytes,
            allowed_content_types=list(cfg.allowed_content_types),
            credentials={
                "public_key": mask_secret(cfg.public_key),
                "url_endpoint": cfg.url_endpoint or "Not configured",
                "private_key": mask_secret(cfg.private_key),
            },
        )

    # --- Upload ---

    def start_upload(
        self,
        owner_id: str,
        slot: str,
        file: IncomingFile | None,
        on_progress: ProgressCallback | None = None,
    ) -> UploadHandle:
        """Start an upload task and return its handle. Requires a running loop."""
        handle = UploadHandle(owner_id, slot)
        handle._task = asyncio.get_running_loop().create_task(
            self._run_upload(handle, file, on_progress)
        )
        return handle

    async def upload_asset(
        self,
        owner_id: str,
        slot: str,
        file: IncomingFile | None,
        on_progress: ProgressCallback | None = None,
    ) -> UploadOutput:
        return await self.start_upload(owner_id, slot, file, on_progress).result()

    async def _run_upload(
        self,
        handle: UploadHandle,
        file: IncomingFile | None,
        on_progress: ProgressCallback | None,
    ) -> UploadOutput:
        logger.info("Upload started for %s/%s", handle.owner_id, handle.slot)
        try:
            output = await self._upload_pipeline(handle, file, on_progress)
        except Exception:
            logger.exception("Upload for %s/%s failed unexpectedly", handle.owner_id, handle.slot)
            output = _failed(ErrorKind.TRANSFER_FAILED, "Unexpected error during upload")
        except asyncio.CancelledError:
            output = _cancelled()
            handle._finish(output)
            raise
        logger.info(
            "Upload for %s/%s finished: %s",
            handle.owner_id,
            handle.slot,
            output.state.value if output.success else output.errors[0].code,
        )
        return handle._finish(output)

    async def _upload_pipeline(
        self,
        handle: UploadHandle,
        file: IncomingFile | None,
        on_progress: ProgressCallback | None,
    ) -> UploadOutput:
        if handle.cancelled:
            return _cancelled()

        handle._advance(UploadState.VALIDATING)
        errors = validate_owner(handle.owner_id) or validate_file(file, handle.slot, self._policy)
        if errors:
            return UploadOutput(state=UploadState.FAILED, errors=errors, success=False)
        assert file is not None

        if not (self.config.has_public_key and self.config.has_url_endpoint):
            return _failed(
                ErrorKind.MISSING_CREDENTIALS,
                "The object store is not configured: set the public key and URL endpoint",
            )
        signing = issue_credential(
            self.config.signing_key,
            clock=self._clock,
            ttl_seconds=self.config.credential_ttl_seconds,
        )
        if not signing.success or signing.credential is None:
            return UploadOutput(state=UploadState.FAILED, errors=signing.errors, success=False)
        if handle.cancelled:
            return _cancelled()
        handle._advance(UploadState.CREDENTIAL_ISSUED)

        def report(percent: int) -> None:
            handle._progress(percent)
            if on_progress is not None:
                on_progress(percent)

        handle._advance(UploadState.TRANSFERRING)
        transferred = await self.transfer.upload(
            TransferInput(
                data=file.data,
                filename=file.name,
                content_type=file.content_type,
                slot=handle.slot,
                owner_id=handle.owner_id,
            ),
            signing.credential,
            report,
            cancel_token=handle.cancel_token,
        )
        if not transferred.success or transferred.asset is None:
            state = (
                UploadState.CANCELLED
                if transferred.errors and transferred.errors[0].kind is ErrorKind.CANCELLED
                else UploadState.FAILED
            )
            return UploadOutput(state=state, errors=transferred.errors, success=False)

        asset = transferred.asset
        if handle.cancelled:
            logger.warning(
                "Upload for %s/%s cancelled after transfer; remote file %s is orphaned",
                handle.owner_id,
                handle.slot,
                asset.remote_ref,
            )
            return _cancelled()

        appended = await self.history.append(handle.owner_id, handle.slot, asset)
        if not appended.success or appended.record is None:
            logger.warning(
                "Orphan risk: %s uploaded for %s/%s but the history write failed",
                asset.remote_ref,
                handle.owner_id,
                handle.slot,
            )
            return UploadOutput(state=UploadState.FAILED, errors=appended.errors, success=False)

        return UploadOutput(state=UploadState.SUCCEEDED, record=appended.record)

    # --- History ---

    async def list_history(self, owner_id: str, slot: str, limit: int = 3) -> HistoryListOutput:
        errors = validate_owner(owner_id) or validate_slot(slot)
        if errors:
            return HistoryListOutput(errors=errors, success=False)
        return await self.history.list(owner_id, slot, limit)

    async def activate_version(self, owner_id: str, slot: str, asset_id: str) -> ActivateOutput:
        errors = validate_owner(owner_id) or validate_slot(slot)
        if errors:
            return ActivateOutput(errors=errors, success=False)
        return await self.history.activate(owner_id, slot, asset_id)

    async def current_asset(self, owner_id: str, slot: str) -> CurrentAssetOutput:
        errors = validate_owner(owner_id) or validate_slot(slot)
        if errors:
            return CurrentAssetOutput(errors=errors, success=False)
        return await self.history.current_url(owner_id, slot)

    def watch_history(
        self,
        owner_id: str,
        slot: str,
        callback: HistoryCallback,
    ) -> Unsubscribe:
        return self.history.watch(owner_id, slot, callback)

    # --- Derived URLs ---

    def get_derived_urls(self, url: str, slot: str) -> DerivedUrls:
        return derive_urls(
            url,
            slot,
            url_endpoint=self.config.url_endpoint,
            quality=self.config.quality,
            output_format=self.config.output_format,
        )

    async def aclose(self) -> None:
        """Wait for background remote cleanup to finish."""
        await self.history.wait_for_cleanups()


def _failed(kind: ErrorKind, message: str) -> UploadOutput:
    return UploadOutput(
        state=UploadState.FAILED,
        errors=[AssetError(kind=kind, message=message)],
        success=False,
    )


def _cancelled() -> UploadOutput:
    return UploadOutput(
        state=UploadState.CANCELLED,
        errors=[AssetError(kind=ErrorKind.CANCELLED, message="Upload was cancelled")],
        success=False,
    )


def create_asset_history_service(
    config: ServiceConfig,
    store: DocumentStorePort,
    *,
    http_client: httpx.AsyncClient | None = None,
    clock: ClockPort | None = None,
    delete_pruned_files: bool = True,
) -> AssetHistoryService:
    """
    Factory function wiring the components from one config.

    Args:
        config: Service configuration.
        store: Document store holding the ledgers.
        http_client: Shared client for transfers and deletes (created per call if None).
        clock: Time source (system clock if None).
        delete_pruned_files: Whether pruned records are deleted remotely.
    """
    clock = clock or SystemClock()

    deleter: ImageKitFileDeleter | None = None
    if delete_pruned_files and config.signing_key:
        deleter = ImageKitFileDeleter(
            config.files_api_url,
            config.signing_key,
            client=http_client,
        )

    history = HistoryStore(
        store,
        clock=clock,
        max_retained=config.max_retained,
        remote_deleter=deleter,
    )
    transfer = TransferOrchestrator(TransferSettings.from_config(config), client=http_client)
    return AssetHistoryService(config, history=history, transfer=transfer, clock=clock)

