"""
媒体资源路由模块

公开接口：
- GET /media?type=HERO|MENU|ANNOUNCEMENT&take=N  已发布资源；MENU 默认取前 3 张

后台接口（/admin/media）：上传（multipart）、列表、更新元数据、删除
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile

from ...core.database import DatabaseManager, get_db
from ...core.exceptions import ValidationError
from ...core.security import require_admin
from ...models.media import MediaAsset, MediaType
from ...models.user import User
from ...schemas.media import MediaUpdateRequest
from ...services.media_service import MediaService

router = APIRouter()
admin_router = APIRouter()


def parse_media_type(value: Optional[str], required: bool = False) -> Optional[MediaType]:
    """查询参数和表单里的 type 大小写均可"""
    if value is None or value == "":
        if required:
            raise ValidationError("type 不能为空", details={"allowed": [t.value for t in MediaType]})
        return None
    try:
        return MediaType(value.strip().upper())
    except ValueError:
        raise ValidationError(
            f"不支持的资源类型: {value}",
            details={"allowed": [t.value for t in MediaType]}
        )


@router.get("", response_model=List[MediaAsset])
def list_public_media(
    type: Optional[str] = None,
    take: Optional[int] = Query(None, ge=1, le=100),
    db: DatabaseManager = Depends(get_db)
):
    """前台资源列表，只包含已发布的资源"""
    return MediaService(db).list_published(parse_media_type(type), take)


@admin_router.get("", response_model=List[MediaAsset])
def admin_list_media(
    type: Optional[str] = None,
    admin: User = Depends(require_admin),
    db: DatabaseManager = Depends(get_db)
):
    return MediaService(db).list_assets(parse_media_type(type))


@admin_router.post("", response_model=MediaAsset, status_code=201)
def upload_media(
    file: Optional[UploadFile] = File(None),
    type: Optional[str] = Form(None),
    alt: Optional[str] = Form(None, max_length=200),
    sort_order: int = Form(0, ge=0),
    published: bool = Form(True),
    width: Optional[int] = Form(None, gt=0),
    height: Optional[int] = Form(None, gt=0),
    admin: User = Depends(require_admin),
    db: DatabaseManager = Depends(get_db)
):
    """
    上传图片

    文件保存到 uploads 目录，超过大小上限返回 413。
    """
    if file is None or not file.filename:
        raise ValidationError("缺少上传文件", error_code="FILE_REQUIRED")
    media_type = parse_media_type(type, required=True)
    return MediaService(db).create_asset(
        file.file, file.filename, media_type, admin.id,
        alt=alt, sort_order=sort_order, published=published, width=width, height=height
    )


@admin_router.patch("/{asset_id}", response_model=MediaAsset)
def update_media(
    asset_id: str,
    req: MediaUpdateRequest,
    admin: User = Depends(require_admin),
    db: DatabaseManager = Depends(get_db)
):
    return MediaService(db).update_asset(asset_id, req, admin.id)


@admin_router.delete("/{asset_id}", status_code=204)
def delete_media(
    asset_id: str,
    admin: User = Depends(require_admin),
    db: DatabaseManager = Depends(get_db)
):
    """删除资源，同时移除相册和公告中的引用"""
    MediaService(db).delete_asset(asset_id, admin.id)
    return Response(status_code=204)
