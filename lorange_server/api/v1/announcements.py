"""
公告路由模块
"""

from typing import List
from fastapi import APIRouter, Depends, Response

from ...core.database import DatabaseManager, get_db
from ...core.security import require_admin
from ...models.media import Announcement
from ...models.user import User
from ...schemas.media import AnnouncementCreateRequest, AnnouncementUpdateRequest
from ...services.announcement_service import AnnouncementService

router = APIRouter()
admin_router = APIRouter()


@router.get("", response_model=List[Announcement])
def public_announcements(db: DatabaseManager = Depends(get_db)):
    """已发布的公告，日期新的在前，附带按顺序排列的配图"""
    return AnnouncementService(db).list_announcements(published_only=True)


@admin_router.get("", response_model=List[Announcement])
def admin_announcements(
    admin: User = Depends(require_admin),
    db: DatabaseManager = Depends(get_db)
):
    return AnnouncementService(db).list_announcements()


@admin_router.post("", response_model=Announcement, status_code=201)
def create_announcement(
    req: AnnouncementCreateRequest,
    admin: User = Depends(require_admin),
    db: DatabaseManager = Depends(get_db)
):
    return AnnouncementService(db).create_announcement(req, admin.id)


@admin_router.patch("/{announcement_id}", response_model=Announcement)
def update_announcement(
    announcement_id: str,
    req: AnnouncementUpdateRequest,
    admin: User = Depends(require_admin),
    db: DatabaseManager = Depends(get_db)
):
    """更新公告；请求中带 media 时替换全部配图"""
    return AnnouncementService(db).update_announcement(announcement_id, req, admin.id)


@admin_router.delete("/{announcement_id}", status_code=204)
def delete_announcement(
    announcement_id: str,
    admin: User = Depends(require_admin),
    db: DatabaseManager = Depends(get_db)
):
    AnnouncementService(db).delete_announcement(announcement_id, admin.id)
    return Response(status_code=204)
