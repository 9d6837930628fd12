"""
认证服务
处理管理员登录和账号维护
"""

import logging
import uuid
from typing import Optional

from ..core.database import DatabaseManager
from ..core.exceptions import AuthenticationError, ValidationError
from ..core.security import hash_password, verify_password, load_user, security_manager
from ..models.user import User, UserRole

logger = logging.getLogger(__name__)

DEFAULT_ADMIN_EMAIL = "admin@lorange.local"
DEFAULT_ADMIN_PASSWORD = "changeme"


class AuthService:
    """认证服务"""

    def __init__(self, db: DatabaseManager):
        self.db = db

    def authenticate(self, email: Optional[str], password: Optional[str]) -> User:
        """校验邮箱密码，成功返回用户"""
        if not email or not password:
            raise ValidationError("缺少登录凭证", error_code="MISSING_CREDENTIALS")

        row = self.db.fetch_dict(
            "SELECT id, password_hash FROM users WHERE email = ?",
            [email.strip().lower()]
        )
        if not row or not verify_password(password, row["password_hash"]):
            logger.info("Failed login attempt for %s", email)
            raise AuthenticationError("邮箱或密码错误", error_code="INVALID_CREDENTIALS")

        return load_user(self.db, row["id"])

    def login(self, email: Optional[str], password: Optional[str]) -> str:
        """登录并签发令牌"""
        user = self.authenticate(email, password)
        return security_manager.create_jwt_token(user.id, {"role": user.role.value})

    def get_user(self, user_id: str) -> Optional[User]:
        return load_user(self.db, user_id)

    def upsert_admin(self, email: str, password: str) -> User:
        """创建管理员，已存在则重置密码"""
        email = email.strip().lower()
        if not email or not password:
            raise ValidationError("邮箱和密码不能为空")

        password_hash = hash_password(password)
        with self.db.transaction() as conn:
            existing = conn.execute("SELECT id FROM users WHERE email = ?", [email]).fetchone()
            if existing:
                user_id = existing[0]
                conn.execute(
                    "UPDATE users SET password_hash = ?, role = ?, updated_at = now() WHERE id = ?",
                    [password_hash, UserRole.ADMIN.value, user_id]
                )
            else:
                user_id = uuid.uuid4().hex
                conn.execute(
                    "INSERT INTO users (id, email, password_hash, role) VALUES (?, ?, ?, ?)",
                    [user_id, email, password_hash, UserRole.ADMIN.value]
                )
        return load_user(self.db, user_id)

    def seed_default_admin(self) -> Optional[User]:
        """默认管理员不存在时创建，已存在则不做任何修改"""
        row = self.db.execute_one("SELECT id FROM users WHERE email = ?", [DEFAULT_ADMIN_EMAIL])
        if row:
            return None
        return self.upsert_admin(DEFAULT_ADMIN_EMAIL, DEFAULT_ADMIN_PASSWORD)
