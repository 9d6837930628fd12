"""
管理员认证路由模块
邮箱密码登录，JWT 写入 httpOnly Cookie
"""

from fastapi import APIRouter, Depends, Response

from ...config.settings import settings
from ...core.database import DatabaseManager, get_db
from ...core.security import get_current_user
from ...models.user import User
from ...schemas.auth import LoginRequest, LoginResponse, MeResponse, OkResponse, UserInfo
from ...services.auth_service import AuthService

router = APIRouter()


@router.post("/login", response_model=LoginResponse)
def login(req: LoginRequest, response: Response, db: DatabaseManager = Depends(get_db)):
    """
    管理员登录

    Returns:
        LoginResponse: 包含JWT的响应，同时设置 Cookie

    Raises:
        400 MISSING_CREDENTIALS: 缺少邮箱或密码
        401 INVALID_CREDENTIALS: 邮箱或密码错误
    """
    token = AuthService(db).login(req.email, req.password)
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        httponly=True,
        samesite="lax",
        max_age=settings.jwt_expire_hours * 3600,
    )
    return LoginResponse(token=token)


@router.post("/logout", response_model=OkResponse)
def logout(response: Response):
    """退出登录，清除 Cookie"""
    response.delete_cookie(settings.auth_cookie_name)
    return OkResponse()


@router.get("/me", response_model=MeResponse)
def me(user: User = Depends(get_current_user)):
    """当前登录的管理员，未登录返回 401"""
    return MeResponse(user=UserInfo(**user.model_dump()))
