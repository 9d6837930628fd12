"""
后台用户数据模型
"""

from pydantic import Field
from enum import Enum
from .base import BaseEntity, TimestampMixin


class UserRole(str, Enum):
    """用户角色"""
    ADMIN = "ADMIN"


class User(BaseEntity, TimestampMixin):
    """后台用户（不含密码哈希）"""
    id: str = Field(..., description="用户ID")
    email: str = Field(..., description="登录邮箱")
    role: UserRole = Field(UserRole.ADMIN, description="角色")
