"""
自定义异常类
提供更精确的错误处理和异常信息
"""

from typing import Any, Dict, Optional


class BaseApplicationError(Exception):
    """应用基础异常类"""
    
    default_code = "BAD_REQUEST"
    
    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code or self.default_code
        self.details = details or {}
        super().__init__(self.message)


class DatabaseError(BaseApplicationError):
    """数据库相关异常"""
    default_code = "INTERNAL_ERROR"


class UpstreamError(BaseApplicationError):
    """上游依赖（存储）不可用，区别于“查询结果为空”"""
    default_code = "UPSTREAM_ERROR"


class AuthenticationError(BaseApplicationError):
    """认证相关异常"""
    default_code = "AUTHENTICATION_REQUIRED"


class AuthorizationError(BaseApplicationError):
    """授权相关异常"""
    default_code = "PERMISSION_DENIED"


class ValidationError(BaseApplicationError):
    """数据验证异常"""
    default_code = "VALIDATION_ERROR"


class NotFoundError(BaseApplicationError):
    """资源不存在"""
    default_code = "RESOURCE_NOT_FOUND"


class DuplicateResourceError(BaseApplicationError):
    """唯一约束冲突"""
    default_code = "DUPLICATE_RESOURCE"


class InvalidRuleError(ValidationError):
    """周期性休息规则字段非法（weekday 越界、interval < 1）"""
    default_code = "INVALID_RULE"


class RateLimitError(BaseApplicationError):
    """请求过于频繁"""
    default_code = "RATE_LIMITED"


class FileTooLargeError(ValidationError):
    """上传文件超过大小限制"""
    default_code = "FILE_TOO_LARGE"
