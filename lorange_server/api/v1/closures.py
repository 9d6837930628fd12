"""
休息日路由模块

公开接口：
- GET /closures           窗口内全部休息条目（单日 + 周期展开），按日期升序
- GET /closures/calendar  同时返回原始列表和每天一条的展示列表

后台接口（/admin/closures）：单日休息的增删改查
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Response

from ...config.settings import settings
from ...core.database import DatabaseManager, get_db
from ...core.security import require_admin
from ...models.user import User
from ...schemas.closure import (
    ClosureCalendarResponse,
    ClosureCreateRequest,
    ClosureInstanceResponse,
    ClosureResponse,
    ClosureUpdateRequest,
)
from ...services.closure_expander import resolve_window
from ...services.closure_service import ClosureService

router = APIRouter()
admin_router = APIRouter()


@router.get("", response_model=List[ClosureInstanceResponse])
def list_public_closures(
    start: Optional[str] = None,
    end: Optional[str] = None,
    db: DatabaseManager = Depends(get_db)
):
    """
    查询休息日

    Args:
        start: 窗口起始日 YYYY-MM-DD
        end: 窗口截止日 YYYY-MM-DD

    start / end 缺失或无法解析时使用默认窗口（今天起 5 年）。
    """
    window_start, window_end = resolve_window(start, end, years=settings.closure_window_years)
    instances = ClosureService(db).get_expanded_closures(window_start, window_end)
    return [ClosureInstanceResponse.from_instance(i) for i in instances]


@router.get("/calendar", response_model=ClosureCalendarResponse)
def closure_calendar(
    start: Optional[str] = None,
    end: Optional[str] = None,
    db: DatabaseManager = Depends(get_db)
):
    """日历视图：raw 为完整列表，display 为按优先级每天保留一条的列表"""
    window_start, window_end = resolve_window(start, end, years=settings.closure_window_years)
    raw, display = ClosureService(db).get_calendar(window_start, window_end)
    return ClosureCalendarResponse(
        raw=[ClosureInstanceResponse.from_instance(i) for i in raw],
        display=[ClosureInstanceResponse.from_instance(i) for i in display],
    )


@admin_router.get("", response_model=List[ClosureResponse])
def admin_list_closures(
    admin: User = Depends(require_admin),
    db: DatabaseManager = Depends(get_db)
):
    """全部单日休息，按日期升序"""
    return [ClosureResponse(**c.model_dump()) for c in ClosureService(db).list_closures()]


@admin_router.post("", response_model=ClosureResponse, status_code=201)
def admin_create_closure(
    req: ClosureCreateRequest,
    admin: User = Depends(require_admin),
    db: DatabaseManager = Depends(get_db)
):
    """创建单日休息，同一日期时段重复时返回 409"""
    closure = ClosureService(db).create_closure(req, admin.id)
    return ClosureResponse(**closure.model_dump())


@admin_router.patch("/{closure_id}", response_model=ClosureResponse)
def admin_update_closure(
    closure_id: str,
    req: ClosureUpdateRequest,
    admin: User = Depends(require_admin),
    db: DatabaseManager = Depends(get_db)
):
    closure = ClosureService(db).update_closure(closure_id, req, admin.id)
    return ClosureResponse(**closure.model_dump())


@admin_router.delete("/{closure_id}", status_code=204)
def admin_delete_closure(
    closure_id: str,
    admin: User = Depends(require_admin),
    db: DatabaseManager = Depends(get_db)
):
    ClosureService(db).delete_closure(closure_id, admin.id)
    return Response(status_code=204)
