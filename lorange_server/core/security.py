"""
安全相关功能
密码哈希、JWT 签发与校验，以及后台接口的管理员鉴权依赖

令牌优先从 httpOnly Cookie 读取，其次读取 Authorization: Bearer 头。
"""

import bcrypt
import jwt
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from .database import DatabaseManager, get_db
from .exceptions import AuthenticationError, AuthorizationError
from ..config.settings import settings
from ..models.user import User, UserRole


def hash_password(password: str) -> str:
    """使用 bcrypt 计算密码哈希"""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    """校验密码"""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


class SecurityManager:
    """安全管理器"""

    def create_jwt_token(self, user_id: str, additional_claims: Optional[Dict[str, Any]] = None) -> str:
        """创建JWT token"""
        now = datetime.now(timezone.utc)
        payload = {
            "uid": user_id,
            "exp": now + timedelta(hours=settings.jwt_expire_hours),
            "iat": now,
        }
        if additional_claims:
            payload.update(additional_claims)
        return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)

    def decode_jwt_token(self, token: str) -> Dict[str, Any]:
        """解码JWT token"""
        try:
            return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("登录已过期")
        except jwt.InvalidTokenError:
            raise AuthenticationError("无效的登录凭证")

    def get_user_id_from_token(self, token: str) -> str:
        """从token中提取用户ID"""
        payload = self.decode_jwt_token(token)
        uid = payload.get("uid")
        if not uid:
            raise AuthenticationError("无效的登录凭证")
        return str(uid)


# 全局安全管理器实例
security_manager = SecurityManager()

_bearer = HTTPBearer(auto_error=False)


def get_request_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer)
) -> Optional[str]:
    """读取请求携带的令牌（Cookie 优先）"""
    token = request.cookies.get(settings.auth_cookie_name)
    if token:
        return token
    if credentials is not None:
        return credentials.credentials
    return None


def load_user(db: DatabaseManager, user_id: str) -> Optional[User]:
    """按ID加载用户"""
    row = db.fetch_dict(
        "SELECT id, email, role, created_at, updated_at FROM users WHERE id = ?",
        [user_id]
    )
    return User(**row) if row else None


async def get_current_user(
    token: Optional[str] = Depends(get_request_token),
    db: DatabaseManager = Depends(get_db)
) -> User:
    """获取当前登录用户"""
    if not token:
        raise AuthenticationError("未登录")
    user = load_user(db, security_manager.get_user_id_from_token(token))
    if user is None:
        raise AuthenticationError("未登录")
    return user


async def require_admin(user: User = Depends(get_current_user)) -> User:
    """后台接口鉴权：要求管理员角色"""
    if user.role != UserRole.ADMIN:
        raise AuthorizationError("需要管理员权限")
    return user
