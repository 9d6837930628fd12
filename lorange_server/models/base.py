"""
基础数据模型
定义通用的模型基类和常用字段
"""

from pydantic import BaseModel
from datetime import datetime
from typing import Optional


class TimestampMixin(BaseModel):
    """时间戳混入类"""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class BaseEntity(BaseModel):
    """基础实体模型"""

    model_config = {"from_attributes": True}
