"""
访问统计相关的请求/响应模式
"""

from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional


class TrackRequest(BaseModel):
    """前台上报的访问信息，字段都可省略"""
    path: Optional[str] = Field(None, max_length=2048, description="SPA 路由")
    referrer: Optional[str] = Field(None, max_length=2048)
    session_id: Optional[str] = Field(None, max_length=128)


class TopPage(BaseModel):
    path: str
    hits: int


class TopCity(BaseModel):
    city: str
    country: str
    hits: int


class AnalyticsRange(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_: datetime = Field(..., alias="from")
    to: datetime


class AnalyticsSummaryResponse(BaseModel):
    """访问汇总"""
    total: int = Field(..., description="非机器人访问总数")
    uniques: int = Field(..., description="独立会话数")
    top_pages: List[TopPage]
    top_cities: List[TopCity]
    range: AnalyticsRange


class SeriesPoint(BaseModel):
    bucket: datetime
    hits: int
