"""
Assets API routes.

Upload, history, activation, current asset and derived URLs for an
owner's profile/banner images.
"""

from typing import NoReturn

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile

from src.api.deps import get_service
from src.api.schemas import (
    ActivateRequest,
    ActivateResponse,
    AssetRecordResponse,
    ConfigStatusResponse,
    CurrentAssetResponse,
    DerivedUrlsResponse,
    ErrorDetail,
    HistoryResponse,
)
from src.components.assets import AssetHistoryService
from src.core.entities import IncomingFile, Slot
from src.core.errors import AssetError, ErrorKind

router = APIRouter()

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.NO_FILE: 400,
    ErrorKind.UNSUPPORTED_SLOT: 400,
    ErrorKind.INVALID_OWNER: 400,
    ErrorKind.TOO_LARGE: 413,
    ErrorKind.UNSUPPORTED_TYPE: 415,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.TRANSFER_FAILED: 502,
    ErrorKind.BAD_RESPONSE: 502,
    ErrorKind.SIGNING_UNAVAILABLE: 503,
    ErrorKind.MISSING_CREDENTIALS: 503,
    ErrorKind.STORE_UNAVAILABLE: 503,
    ErrorKind.TIMED_OUT: 504,
    ErrorKind.CANCELLED: 499,
}


def raise_for_errors(errors: list[AssetError]) -> NoReturn:
    """Raise an HTTPException for the first error."""
    err = errors[0]
    raise HTTPException(
        status_code=STATUS_BY_KIND.get(err.kind, 500),
        detail=ErrorDetail(code=err.code, message=err.message, field=err.field).model_dump(),
    )


@router.get("/status", response_model=ConfigStatusResponse)
def config_status(
    service: AssetHistoryService = Depends(get_service),
) -> ConfigStatusResponse:
    """Which object-store credentials are configured (masked)."""
    return ConfigStatusResponse.model_validate(service.get_config_status())


@router.get("/derived", response_model=DerivedUrlsResponse)
def derived_urls(
    url: str = Query(..., min_length=1),
    slot: Slot = Query("profile"),
    service: AssetHistoryService = Depends(get_service),
) -> DerivedUrlsResponse:
    urls = service.get_derived_urls(url, slot)
    return DerivedUrlsResponse(**urls.model_dump())


@router.post("/{owner_id}/{slot}", response_model=AssetRecordResponse, status_code=201)
async def upload_asset(
    owner_id: str,
    slot: str,
    file: UploadFile | None = File(None),
    service: AssetHistoryService = Depends(get_service),
) -> AssetRecordResponse:
    """Upload a new version and make it the active one."""
    incoming = None
    if file is not None:
        incoming = IncomingFile(
            name=file.filename or "upload",
            content_type=file.content_type or "application/octet-stream",
            data=await file.read(),
        )

    result = await service.upload_asset(owner_id, slot, incoming)
    if not result.success or result.record is None:
        raise_for_errors(result.errors)
    return AssetRecordResponse.model_validate(result.record)


@router.get("/{owner_id}/{slot}/history", response_model=HistoryResponse)
async def list_history(
    owner_id: str,
    slot: str,
    limit: int = Query(3, ge=1),
    service: AssetHistoryService = Depends(get_service),
) -> HistoryResponse:
    """Most recent versions first."""
    result = await service.list_history(owner_id, slot, limit)
    if not result.success:
        raise_for_errors(result.errors)
    return HistoryResponse(
        owner_id=owner_id,
        slot=slot,  # type: ignore[arg-type]
        items=[AssetRecordResponse.model_validate(r) for r in result.items],
    )


@router.post("/{owner_id}/{slot}/activate", response_model=ActivateResponse)
async def activate_version(
    owner_id: str,
    slot: str,
    body: ActivateRequest,
    service: AssetHistoryService = Depends(get_service),
) -> ActivateResponse:
    """Make an earlier version the active one."""
    result = await service.activate_version(owner_id, slot, body.asset_id)
    if not result.success or result.url is None or result.record is None:
        raise_for_errors(result.errors)
    return ActivateResponse(
        url=result.url,
        record=AssetRecordResponse.model_validate(result.record),
    )


@router.get("/{owner_id}/{slot}/current", response_model=CurrentAssetResponse)
async def current_asset(
    owner_id: str,
    slot: str,
    service: AssetHistoryService = Depends(get_service),
) -> CurrentAssetResponse:
    result = await service.current_asset(owner_id, slot)
    if not result.success:
        raise_for_errors(result.errors)
    return CurrentAssetResponse(owner_id=owner_id, slot=slot, url=result.url)  # type: ignore[arg-type]
