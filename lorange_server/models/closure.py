"""
休息日相关数据模型

weekday 统一采用 周一 = 0 … 周日 = 6（与 date.weekday() 一致），
营业时间等其他带 weekday 的字段遵循同一约定。
"""

from pydantic import BaseModel, Field
import datetime
from datetime import date
from typing import Optional
from enum import Enum
from .base import BaseEntity


class ClosureSlot(str, Enum):
    """休息时段枚举"""
    ALL = "ALL"        # 全天
    LUNCH = "LUNCH"    # 午市
    DINNER = "DINNER"  # 晚市


class ClosureKind(str, Enum):
    """展开后休息条目的来源"""
    EXCEPTIONAL = "EXCEPTIONAL"  # 单日休息
    RECURRING = "RECURRING"      # 由每周规则展开


# 展开实例 id 前缀：rec_<ruleId>_<YYYY-MM-DD>
RECURRING_ID_PREFIX = "rec_"


class RecurringClosureRule(BaseEntity):
    """每周重复的休息规则"""
    id: str = Field(..., description="规则ID")
    weekday: int = Field(..., description="星期几，周一 = 0")
    slot: ClosureSlot = Field(..., description="休息时段")
    note: Optional[str] = Field(None, description="备注")
    starts_on: Optional[date] = Field(None, description="生效起始日，为空表示不限")
    ends_on: Optional[date] = Field(None, description="生效截止日，为空表示不限")
    interval: Optional[int] = Field(1, description="间隔周数")


class ExceptionalClosure(BaseEntity):
    """单日休息"""
    id: str = Field(..., description="休息记录ID")
    date: datetime.date = Field(..., description="日期")
    slot: ClosureSlot = Field(..., description="休息时段")
    note: Optional[str] = Field(None, description="备注")


class ClosureInstance(BaseModel):
    """展开后的休息条目，每次读取时临时生成，不落库"""
    id: str
    date: datetime.date
    slot: ClosureSlot
    note: Optional[str] = None
    kind: ClosureKind
