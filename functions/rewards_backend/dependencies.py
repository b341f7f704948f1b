"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

from fastapi import Depends, Request

from rewards_backend.config import Settings, get_settings
from rewards_backend.db import DbClient, InMemoryDbClient, SqlDbClient
from rewards_backend.service import SyncService
from rewards_backend.storage import (
    CosImageStorage,
    ImageStorage,
    InlineImageStorage,
    LocalDiskImageStorage,
)

_db_client: DbClient | None = None
_image_storage: ImageStorage | None = None


def get_db_client() -> DbClient:
    """
    Return a singleton DB client so catalog/config state persists across requests.
    """
    global _db_client
    if _db_client:
        return _db_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.database_url:
        _db_client = InMemoryDbClient()
    else:
        _db_client = SqlDbClient(settings.database_url)
    return _db_client


def get_image_storage() -> ImageStorage:
    global _image_storage
    if _image_storage:
        return _image_storage

    settings = get_settings()
    if settings.upload_mode == "disk":
        _image_storage = LocalDiskImageStorage(
            directory=settings.upload_dir,
            url_prefix=settings.upload_url_prefix,
        )
    elif settings.upload_mode == "cos":
        if not settings.cos_bucket or not settings.cos_public_base_url:
            raise RuntimeError(
                "UPLOAD_MODE=cos requires COS_BUCKET and COS_PUBLIC_BASE_URL"
            )
        _image_storage = CosImageStorage(
            bucket=settings.cos_bucket,
            region=settings.cos_region or "",
            endpoint=settings.cos_endpoint or "",
            access_key_id=settings.aws_access_key_id or "",
            secret_access_key=settings.aws_secret_access_key or "",
            public_base_url=settings.cos_public_base_url,
        )
    else:
        _image_storage = InlineImageStorage()
    return _image_storage


def get_sync_service(
    db: DbClient = Depends(get_db_client),
    storage: ImageStorage = Depends(get_image_storage),
) -> SyncService:
    settings = get_settings()
    return SyncService(
        db,
        scope_mode=settings.scope_mode,
        goods_order=settings.goods_order,
        reference_prefixes=storage.reference_prefixes(),
        reset_secret=settings.admin_reset_secret,
    )


def get_app_settings(request: Request) -> Settings:
    """Settings the running app was built with (``create_app(settings)``)."""
    return getattr(request.app.state, "settings", None) or get_settings()


def get_upload_limit(settings: Settings = Depends(get_app_settings)) -> int:
    return settings.max_upload_bytes
