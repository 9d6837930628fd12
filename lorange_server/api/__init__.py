"""
API routes and endpoints.
"""

from fastapi import APIRouter
from .v1 import analytics, announcements, auth, closures, gallery, hours, media, recurring_closures

api_router = APIRouter()

# 公开接口
api_router.include_router(auth.router, prefix="/auth", tags=["认证"])
api_router.include_router(announcements.router, prefix="/announcements", tags=["公告"])
api_router.include_router(closures.router, prefix="/closures", tags=["休息日"])
api_router.include_router(media.router, prefix="/media", tags=["媒体"])
api_router.include_router(gallery.router, prefix="/gallery", tags=["相册"])
api_router.include_router(hours.router, prefix="/hours", tags=["营业时间"])
api_router.include_router(analytics.router, prefix="", tags=["访问统计"])  # POST /track

# 后台接口，全部需要管理员登录
api_router.include_router(announcements.admin_router, prefix="/admin/announcements", tags=["后台-公告"])
api_router.include_router(closures.admin_router, prefix="/admin/closures", tags=["后台-休息日"])
api_router.include_router(
    recurring_closures.admin_router, prefix="/admin/recurring-closures", tags=["后台-周期休息"]
)
api_router.include_router(media.admin_router, prefix="/admin/media", tags=["后台-媒体"])
api_router.include_router(gallery.admin_router, prefix="/admin/gallery", tags=["后台-相册"])
api_router.include_router(hours.admin_router, prefix="/admin/hours", tags=["后台-营业时间"])
api_router.include_router(analytics.admin_router, prefix="/admin/analytics", tags=["后台-访问统计"])
