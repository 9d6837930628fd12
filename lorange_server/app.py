"""
L'Orange 餐厅网站后端服务 - 主应用入口
为餐厅官网和后台管理提供 API

主要功能模块：
- 管理员登录（JWT + httpOnly Cookie）
- 休息日管理：单日休息、每周重复的休息规则及其展开
- 营业时间
- 公告、图片资源和相册
- 访问统计

技术栈：FastAPI + DuckDB + JWT认证
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .api import api_router
from .config.settings import settings
from .core.database import DatabaseManager, db_manager
from .core.error_handler import (
    application_error_handler,
    general_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from .core.exceptions import BaseApplicationError
from .core.geo import open_geo_locator
from .core.log_config import setup_logging
from .core.rate_limit import RequestRateLimiter

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    db: DatabaseManager = app.state.db
    # 启动时初始化数据库，失败时不阻止启动，请求时会重试连接
    try:
        db.init_database()
        logger.info("Database initialized: %s", db.db_path)
    except Exception:
        logger.exception("Database initialization failed")

    yield

    app.state.geo_locator.close()
    db.close()


def create_app(db: Optional[DatabaseManager] = None) -> FastAPI:
    """
    创建FastAPI应用

    Args:
        db: 数据库管理器，默认使用全局实例；测试时传入内存数据库
    """
    setup_logging(settings.log_level)

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="L'Orange 餐厅网站API",
        debug=settings.debug,
        lifespan=lifespan
    )
    app.state.db = db or db_manager
    app.state.track_limiter = RequestRateLimiter(
        settings.track_rate_limit, settings.track_rate_window_seconds
    )
    app.state.geo_locator = open_geo_locator(settings.geoip_database_path)

    # 添加中间件
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 注册异常处理器
    app.add_exception_handler(BaseApplicationError, application_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    # 注册路由
    app.include_router(api_router, prefix=settings.api_prefix)

    # 上传的图片
    uploads_dir = Path(settings.uploads_dir)
    uploads_dir.mkdir(parents=True, exist_ok=True)
    app.mount("/uploads", StaticFiles(directory=str(uploads_dir)), name="uploads")

    # 健康检查
    @app.get("/health")
    async def health_check():
        try:
            app.state.db.execute_one("SELECT 1")
            return {
                "status": "healthy",
                "version": settings.api_version,
                "database": "connected"
            }
        except BaseApplicationError as e:
            return {
                "status": "unhealthy",
                "version": settings.api_version,
                "database": f"error: {e.message}"
            }

    @app.get("/")
    async def root():
        return {
            "name": settings.api_title,
            "version": __version__,
            "description": "L'Orange 餐厅网站API"
        }

    return app


# 应用实例
app = create_app()
