"""
营业时间相关的请求/响应模式
"""

from pydantic import BaseModel, Field
from typing import Optional


class HoursUpdateRequest(BaseModel):
    """更新某天营业时间"""
    text: Optional[str] = Field(None, description="如 12:00-14:30, 18:00-22:00，留空表示全天休息")
    closed_all_day: Optional[bool] = Field(None, description="是否全天休息，默认由 text 是否为空决定")


class PublicHoursItem(BaseModel):
    """前台展示的营业时间"""
    weekday: int = Field(..., description="星期几，周一 = 0")
    text: str = Field("", description="展示文本")
