"""
媒体资源、相册与公告数据模型
"""

from pydantic import Field
from datetime import date, datetime
from typing import List, Optional
from enum import Enum
from .base import BaseEntity, TimestampMixin


class MediaType(str, Enum):
    """媒体用途"""
    HERO = "HERO"                  # 首页大图
    MENU = "MENU"                  # 菜单图片
    ANNOUNCEMENT = "ANNOUNCEMENT"  # 公告配图


class MediaAsset(BaseEntity):
    """上传的图片资源"""
    id: str
    type: MediaType
    url: str
    storage_key: Optional[str] = Field(None, description="uploads 目录下的文件名")
    alt: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    sort_order: int = 0
    published: bool = True
    created_at: Optional[datetime] = None
    created_by_id: Optional[str] = None


class LinkedMediaAsset(MediaAsset):
    """公告关联的资源，附带关联排序"""
    link_sort_order: int = 0


class GalleryItem(BaseEntity):
    """相册条目，展开了资源字段"""
    id: str = Field(..., description="资源ID")
    type: MediaType
    url: str
    alt: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    sort_order: int = Field(0, description="相册排序")
    published: bool = Field(True, description="相册内是否展示")


class Announcement(BaseEntity, TimestampMixin):
    """公告"""
    id: str
    date: date
    title: str
    description: Optional[str] = None
    published: bool = True
    media_assets: List[LinkedMediaAsset] = Field(default_factory=list)
