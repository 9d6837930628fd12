"""
营业时间路由模块
weekday 约定：周一 = 0 … 周日 = 6
"""

from typing import List
from fastapi import APIRouter, Depends, Path

from ...core.database import DatabaseManager, get_db
from ...core.security import require_admin
from ...models.hours import BusinessHours
from ...models.user import User
from ...schemas.hours import HoursUpdateRequest, PublicHoursItem
from ...services.hours_service import HoursService

router = APIRouter()
admin_router = APIRouter()


@router.get("", response_model=List[PublicHoursItem])
def public_hours(db: DatabaseManager = Depends(get_db)):
    """前台营业时间，仅返回展示文本"""
    return [
        PublicHoursItem(weekday=h.weekday, text=h.display_text or "")
        for h in HoursService(db).list_hours()
    ]


@admin_router.get("", response_model=List[BusinessHours])
def admin_hours(
    admin: User = Depends(require_admin),
    db: DatabaseManager = Depends(get_db)
):
    return HoursService(db).list_hours()


@admin_router.put("/{weekday}", response_model=BusinessHours)
def set_hours(
    req: HoursUpdateRequest,
    weekday: int = Path(..., ge=0, le=6, description="星期几，周一 = 0"),
    admin: User = Depends(require_admin),
    db: DatabaseManager = Depends(get_db)
):
    """设置某天营业时间，text 为空时默认全天休息"""
    return HoursService(db).set_hours(weekday, req, admin.id)
