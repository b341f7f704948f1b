"""
HTTP routes for the rewards backend API.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile
from starlette.concurrency import run_in_threadpool

from rewards_backend.dependencies import (
    get_image_storage,
    get_sync_service,
    get_upload_limit,
)
from rewards_backend.schemas import (
    AdminAuthRequest,
    ConfigWriteRequest,
    FullConfigResponse,
    GoodsListResponse,
    MessageResponse,
    PublicConfigResponse,
    ResetRequest,
    SaveGoodsRequest,
    UploadResponse,
)
from rewards_backend.service import SyncService
from rewards_backend.storage import (
    ImageStorage,
    check_upload_size,
    resolve_image_type,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/goods", response_model=GoodsListResponse, response_model_exclude_none=True
)
def list_goods(
    openid: Optional[str] = Query(None),
    service: SyncService = Depends(get_sync_service),
):
    return GoodsListResponse(data=service.list_goods(openid))


@router.post("/goods", response_model=MessageResponse)
def save_goods(
    payload: SaveGoodsRequest,
    service: SyncService = Depends(get_sync_service),
):
    """
    Replace the whole catalog with ``goodsList``. Items missing from the
    list are gone afterwards.
    """
    service.replace_goods(payload.goodsList, payload.openid)
    return MessageResponse(message="Goods saved successfully")


@router.get("/config", response_model=PublicConfigResponse)
def get_config(
    openid: Optional[str] = Query(None),
    service: SyncService = Depends(get_sync_service),
):
    return PublicConfigResponse(data=service.read_config(openid))


@router.post("/admin/config", response_model=FullConfigResponse)
def get_full_config(
    payload: AdminAuthRequest,
    service: SyncService = Depends(get_sync_service),
):
    return FullConfigResponse(
        data=service.read_full_config(payload.secret, payload.openid)
    )


@router.post("/config", response_model=MessageResponse)
def save_config(
    payload: ConfigWriteRequest,
    service: SyncService = Depends(get_sync_service),
):
    service.write_config(payload.secret, payload.to_patch(), payload.openid)
    return MessageResponse(message="Config saved successfully")


@router.post("/admin/reset", response_model=MessageResponse)
def reset_admin_secret(
    payload: ResetRequest,
    service: SyncService = Depends(get_sync_service),
):
    service.reset_credential(payload.resetSecret, payload.openid)
    return MessageResponse(message="Admin secret reset successfully")


@router.post("/upload", response_model=UploadResponse)
async def upload_image(
    image: UploadFile = File(...),
    storage: ImageStorage = Depends(get_image_storage),
    max_bytes: int = Depends(get_upload_limit),
):
    content_type = resolve_image_type(image.content_type, image.filename)
    # Read one byte past the limit so oversized bodies are detected without buffering them whole.
    data = await image.read(max_bytes + 1)
    check_upload_size(data, max_bytes)
    url = await run_in_threadpool(storage.store_image, data, content_type)
    logger.info("Stored %s upload (%d bytes)", content_type, len(data))
    return UploadResponse(url=url)
