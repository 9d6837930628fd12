"""
营业时间数据模型
"""

from pydantic import Field
from datetime import date
from typing import Optional
from .base import BaseEntity


class BusinessHours(BaseEntity):
    """某个星期几的营业时间，weekday 周一 = 0"""
    id: str
    weekday: int = Field(..., ge=0, le=6)
    lunch_start_min: Optional[int] = Field(None, description="午市开始（当天第几分钟）")
    lunch_end_min: Optional[int] = None
    dinner_start_min: Optional[int] = None
    dinner_end_min: Optional[int] = None
    closed_all_day: bool = False
    display_text: Optional[str] = Field(None, description="展示用文本，如 12:00-14:30, 18:00-22:00")
    effective_from: Optional[date] = None
    effective_to: Optional[date] = None
