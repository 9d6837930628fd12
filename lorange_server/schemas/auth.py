"""
认证相关的请求/响应模式
"""

from datetime import datetime
from pydantic import BaseModel, Field
from typing import Optional
from ..models.user import UserRole


class LoginRequest(BaseModel):
    """登录请求，缺少字段时由服务层返回 400"""
    email: Optional[str] = Field(None, description="登录邮箱")
    password: Optional[str] = Field(None, description="密码")

    model_config = {
        "json_schema_extra": {
            "example": {
                "email": "admin@lorange.local",
                "password": "changeme"
            }
        }
    }


class LoginResponse(BaseModel):
    """登录响应，令牌同时写入 httpOnly Cookie"""
    ok: bool = True
    token: str = Field(description="JWT访问令牌")


class UserInfo(BaseModel):
    """用户信息"""
    id: str
    email: str
    role: UserRole
    created_at: Optional[datetime] = None


class MeResponse(BaseModel):
    ok: bool = True
    user: UserInfo


class OkResponse(BaseModel):
    ok: bool = True
