"""
媒体资源、相册和公告的请求模式
"""

from pydantic import BaseModel, BeforeValidator, Field
from typing import Annotated, List, Optional
from ..models.media import MediaType
from .closure import DateInput


def _coerce_media_type(value):
    if isinstance(value, str):
        return value.strip().upper()
    return value


MediaTypeInput = Annotated[MediaType, BeforeValidator(_coerce_media_type)]


class MediaUpdateRequest(BaseModel):
    """媒体资源更新请求"""
    type: Optional[MediaTypeInput] = None
    alt: Optional[str] = Field(None, max_length=200)
    sort_order: Optional[int] = Field(None, ge=0)
    published: Optional[bool] = None
    width: Optional[int] = Field(None, gt=0)
    height: Optional[int] = Field(None, gt=0)


class GalleryUpsertRequest(BaseModel):
    """把资源加入相册（已存在则更新）"""
    media_asset_id: str = Field(..., min_length=1)
    sort_order: int = Field(0, ge=0)
    published: bool = True


class GalleryUpdateRequest(BaseModel):
    sort_order: Optional[int] = Field(None, ge=0)
    published: Optional[bool] = None


class GalleryLinkResponse(BaseModel):
    media_asset_id: str
    sort_order: int
    published: bool


class MediaLink(BaseModel):
    """公告关联的资源"""
    id: str = Field(..., min_length=1, description="资源ID")
    sort_order: int = Field(0, ge=0)


class AnnouncementCreateRequest(BaseModel):
    """公告创建请求"""
    date: DateInput
    title: str = Field(..., min_length=1, max_length=160)
    description: Optional[str] = Field(None, max_length=1000)
    published: bool = True
    media: List[MediaLink] = Field(default_factory=list)


class AnnouncementUpdateRequest(BaseModel):
    """公告更新请求；提供 media 时整体替换关联资源"""
    date: Optional[DateInput] = None
    title: Optional[str] = Field(None, min_length=1, max_length=160)
    description: Optional[str] = Field(None, max_length=1000)
    published: Optional[bool] = None
    media: Optional[List[MediaLink]] = None
