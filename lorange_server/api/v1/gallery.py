"""
相册路由模块
"""

from typing import List
from fastapi import APIRouter, Depends, Response

from ...core.database import DatabaseManager, get_db
from ...core.security import require_admin
from ...models.media import GalleryItem
from ...models.user import User
from ...schemas.media import GalleryLinkResponse, GalleryUpdateRequest, GalleryUpsertRequest
from ...services.gallery_service import GalleryService

router = APIRouter()
admin_router = APIRouter()

PUBLIC_CACHE_CONTROL = "public, max-age=60, stale-while-revalidate=300"


@router.get("", response_model=List[GalleryItem])
def public_gallery(response: Response, db: DatabaseManager = Depends(get_db)):
    """前台相册，允许 CDN 短时间缓存"""
    response.headers["Cache-Control"] = PUBLIC_CACHE_CONTROL
    return GalleryService(db).list_public()


@admin_router.get("", response_model=List[GalleryItem])
def admin_gallery(
    admin: User = Depends(require_admin),
    db: DatabaseManager = Depends(get_db)
):
    return GalleryService(db).list_items()


@admin_router.post("", response_model=GalleryLinkResponse, status_code=201)
def upsert_gallery_item(
    req: GalleryUpsertRequest,
    admin: User = Depends(require_admin),
    db: DatabaseManager = Depends(get_db)
):
    """加入相册；资源已在相册中时更新排序和发布状态"""
    return GalleryService(db).upsert(req, admin.id)


@admin_router.patch("/{media_asset_id}", response_model=GalleryLinkResponse)
def update_gallery_item(
    media_asset_id: str,
    req: GalleryUpdateRequest,
    admin: User = Depends(require_admin),
    db: DatabaseManager = Depends(get_db)
):
    return GalleryService(db).update(media_asset_id, req, admin.id)


@admin_router.delete("/{media_asset_id}", status_code=204)
def remove_gallery_item(
    media_asset_id: str,
    admin: User = Depends(require_admin),
    db: DatabaseManager = Depends(get_db)
):
    GalleryService(db).remove(media_asset_id, admin.id)
    return Response(status_code=204)
