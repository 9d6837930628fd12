"""
访问统计路由模块

- POST /track                       前台访问上报（按 IP 限流，其余情况总是 204）
- GET  /admin/analytics/summary     访问汇总
- GET  /admin/analytics/series      按小时/天的访问分布
"""

import json
import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError as PydanticValidationError

from ...core.database import DatabaseManager, get_db
from ...core.exceptions import DatabaseError
from ...core.security import require_admin
from ...models.user import User
from ...schemas.analytics import AnalyticsSummaryResponse, SeriesPoint, TrackRequest
from ...services.analytics_service import AnalyticsService, get_client_ip, parse_range

logger = logging.getLogger(__name__)

router = APIRouter()
admin_router = APIRouter()

SESSION_COOKIE = "sid"


async def _read_track_body(request: Request) -> TrackRequest:
    """请求体可以为空或不是 JSON，此时只用请求头里的信息"""
    raw = await request.body()
    if not raw:
        return TrackRequest()
    try:
        return TrackRequest.model_validate(json.loads(raw))
    except (ValueError, PydanticValidationError):
        logger.debug("Ignoring malformed track payload")
        return TrackRequest()


@router.post("/track", status_code=204)
async def track_hit(request: Request, db: DatabaseManager = Depends(get_db)):
    """记录一次页面访问"""
    client_host = request.client.host if request.client else None
    ip = get_client_ip(request.headers.get("x-forwarded-for"), client_host)

    limiter = getattr(request.app.state, "track_limiter", None)
    if limiter is not None:
        limiter.check(ip)

    body = await _read_track_body(request)
    headers = request.headers
    city, country = headers.get("cf-ipcity"), headers.get("cf-ipcountry")
    locator = getattr(request.app.state, "geo_locator", None)
    if locator is not None:
        city, country = locator.lookup(ip, city, country)

    try:
        await run_in_threadpool(
            AnalyticsService(db).record_hit,
            path=body.path or request.url.path,
            referrer=headers.get("referer") or body.referrer,
            user_agent=headers.get("user-agent"),
            ip=ip,
            city=city,
            country=country,
            session_id=request.cookies.get(SESSION_COOKIE) or body.session_id,
        )
    except DatabaseError as e:
        logger.warning("Failed to record hit: %s", e.message)
    return Response(status_code=204)


@admin_router.get("/summary", response_model=AnalyticsSummaryResponse)
def analytics_summary(
    from_: Optional[str] = Query(None, alias="from", description="起始日期 YYYY-MM-DD"),
    to: Optional[str] = Query(None, description="截止日期 YYYY-MM-DD，含当天"),
    admin: User = Depends(require_admin),
    db: DatabaseManager = Depends(get_db)
):
    """
    访问汇总

    默认统计最近 30 天；机器人流量不计入。
    """
    start, end = parse_range(from_, to)
    return AnalyticsService(db).summary(start, end)


@admin_router.get("/series", response_model=List[SeriesPoint])
def analytics_series(
    from_: Optional[str] = Query(None, alias="from"),
    to: Optional[str] = None,
    bucket: str = "day",
    admin: User = Depends(require_admin),
    db: DatabaseManager = Depends(get_db)
):
    """按桶统计访问量，bucket 为 day 或 hour，其他值按 day 处理"""
    start, end = parse_range(from_, to)
    return AnalyticsService(db).series(start, end, "hour" if bucket == "hour" else "day")
