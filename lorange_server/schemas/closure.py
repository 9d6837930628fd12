"""
休息日相关的请求/响应模式
"""

import datetime
from pydantic import BaseModel, BeforeValidator, Field, model_validator
from typing import Annotated, List, Optional
from ..models.closure import ClosureInstance, ClosureKind, ClosureSlot


def _coerce_slot(value):
    """时段大小写均可"""
    if isinstance(value, str):
        return value.strip().upper()
    return value


def _coerce_date(value):
    """日期取前 10 位，兼容完整时间戳"""
    if value is None or isinstance(value, datetime.date):
        return value
    if isinstance(value, str):
        try:
            return datetime.date.fromisoformat(value.strip()[:10])
        except ValueError:
            return value
    return value


# 请求体中的时段和日期字段
SlotInput = Annotated[ClosureSlot, BeforeValidator(_coerce_slot)]
DateInput = Annotated[datetime.date, BeforeValidator(_coerce_date)]


class ClosureCreateRequest(BaseModel):
    """单日休息创建请求"""
    date: DateInput = Field(..., description="日期")
    slot: SlotInput = Field(..., description="时段 ALL / LUNCH / DINNER")
    note: Optional[str] = Field(None, max_length=500, description="备注")


class ClosureUpdateRequest(BaseModel):
    """单日休息更新请求"""
    date: Optional[DateInput] = Field(None, description="日期")
    slot: Optional[SlotInput] = Field(None, description="时段")
    note: Optional[str] = Field(None, max_length=500, description="备注")


class ClosureResponse(BaseModel):
    """单日休息"""
    id: str
    date: datetime.date
    slot: ClosureSlot
    note: Optional[str] = None


class RecurringClosureCreateRequest(BaseModel):
    """周期休息规则创建请求"""
    weekday: int = Field(..., ge=0, le=6, description="星期几，周一 = 0")
    slot: SlotInput = Field(..., description="时段")
    note: Optional[str] = Field(None, max_length=500, description="备注")
    starts_on: Optional[DateInput] = Field(None, description="生效起始日")
    ends_on: Optional[DateInput] = Field(None, description="生效截止日")
    interval: int = Field(1, ge=1, description="间隔周数")

    @model_validator(mode="after")
    def check_bounds(self):
        if self.starts_on and self.ends_on and self.starts_on > self.ends_on:
            raise ValueError("starts_on 不能晚于 ends_on")
        return self


class RecurringClosureUpdateRequest(BaseModel):
    """周期休息规则更新请求，未提供的字段保持不变"""
    weekday: Optional[int] = Field(None, ge=0, le=6, description="星期几，周一 = 0")
    slot: Optional[SlotInput] = Field(None, description="时段")
    note: Optional[str] = Field(None, max_length=500, description="备注")
    starts_on: Optional[DateInput] = Field(None, description="生效起始日")
    ends_on: Optional[DateInput] = Field(None, description="生效截止日")
    interval: Optional[int] = Field(None, ge=1, description="间隔周数")


class RecurringClosureResponse(BaseModel):
    """周期休息规则"""
    id: str
    weekday: int
    slot: ClosureSlot
    note: Optional[str] = None
    starts_on: Optional[datetime.date] = None
    ends_on: Optional[datetime.date] = None
    interval: int


class ClosureInstanceResponse(BaseModel):
    """展开后的休息条目，date 以 UTC 零点的 ISO 8601 时间戳输出"""
    id: str
    date: datetime.datetime
    slot: ClosureSlot
    note: Optional[str] = None
    kind: ClosureKind

    @classmethod
    def from_instance(cls, instance: ClosureInstance) -> "ClosureInstanceResponse":
        return cls(
            id=instance.id,
            date=datetime.datetime.combine(instance.date, datetime.time.min, tzinfo=datetime.timezone.utc),
            slot=instance.slot,
            note=instance.note,
            kind=instance.kind,
        )


class ClosureCalendarResponse(BaseModel):
    """日历视图：原始列表 + 每天一条的展示列表"""
    raw: List[ClosureInstanceResponse] = Field(..., description="全部休息条目，按日期升序")
    display: List[ClosureInstanceResponse] = Field(..., description="按优先级去重后的条目")
