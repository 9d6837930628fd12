"""
数据库连接和管理模块
提供 DuckDB 单连接的初始化、表结构管理和事务封装

数据库表说明：
- users: 后台管理员账号
- media_assets: 上传的图片资源（首页大图、菜单、公告配图）
- announcements / announcement_media: 公告及其配图关联
- gallery_items: 相册展示条目
- closures: 单日（例外）休息
- recurring_closures: 每周重复的休息规则，具体日期在读取时展开，不落库
- business_hours: 每周营业时间（weekday 0 = 周一）
- hits: 前台页面访问记录
- logs: 后台操作审计日志
"""

import duckdb
import logging
from pathlib import Path
from typing import Any, Dict, Generator, List, Optional
from contextlib import contextmanager
import threading
from fastapi import Request

from .exceptions import BaseApplicationError, DatabaseError, DuplicateResourceError
from ..config.settings import settings

logger = logging.getLogger(__name__)

# 完整的表结构定义
# DuckDB 不支持级联删除，关联行由服务层显式清理
# 会被 UPDATE 的列不建二级索引（DuckDB 将索引列更新视为删除+插入）
SCHEMA_SQL = r"""
CREATE TABLE IF NOT EXISTS users (
  id TEXT PRIMARY KEY,
  email TEXT UNIQUE NOT NULL,
  password_hash TEXT NOT NULL,
  role TEXT CHECK(role IN ('ADMIN')) NOT NULL DEFAULT 'ADMIN',
  created_at TIMESTAMP DEFAULT now(),
  updated_at TIMESTAMP DEFAULT now()
);

CREATE TABLE IF NOT EXISTS media_assets (
  id TEXT PRIMARY KEY,
  type TEXT CHECK(type IN ('HERO','MENU','ANNOUNCEMENT')) NOT NULL,
  url TEXT NOT NULL,
  storage_key TEXT,  -- uploads 目录下的文件名
  alt TEXT,
  width INTEGER,
  height INTEGER,
  sort_order INTEGER NOT NULL DEFAULT 0,
  published BOOLEAN NOT NULL DEFAULT TRUE,
  created_at TIMESTAMP DEFAULT now(),
  created_by_id TEXT
);

CREATE TABLE IF NOT EXISTS announcements (
  id TEXT PRIMARY KEY,
  date DATE NOT NULL,
  title TEXT NOT NULL,
  description TEXT,
  published BOOLEAN NOT NULL DEFAULT TRUE,
  created_at TIMESTAMP DEFAULT now(),
  updated_at TIMESTAMP DEFAULT now()
);

CREATE TABLE IF NOT EXISTS announcement_media (
  announcement_id TEXT NOT NULL,
  media_asset_id TEXT NOT NULL,
  sort_order INTEGER NOT NULL DEFAULT 0
);

CREATE INDEX IF NOT EXISTS idx_announcement_media ON announcement_media(announcement_id, sort_order);

CREATE TABLE IF NOT EXISTS gallery_items (
  media_asset_id TEXT PRIMARY KEY,
  sort_order INTEGER NOT NULL DEFAULT 0,
  published BOOLEAN NOT NULL DEFAULT TRUE
);

-- (date, slot) 唯一性由 ClosureService 在事务内校验
CREATE TABLE IF NOT EXISTS closures (
  id TEXT PRIMARY KEY,
  date DATE NOT NULL,
  slot TEXT CHECK(slot IN ('ALL','LUNCH','DINNER')) NOT NULL,
  note TEXT
);

CREATE TABLE IF NOT EXISTS recurring_closures (
  id TEXT PRIMARY KEY,
  weekday INTEGER CHECK(weekday BETWEEN 0 AND 6) NOT NULL,  -- 0 = 周一
  slot TEXT CHECK(slot IN ('ALL','LUNCH','DINNER')) NOT NULL,
  note TEXT,
  starts_on DATE,
  ends_on DATE,
  interval_weeks INTEGER NOT NULL DEFAULT 1
);

CREATE TABLE IF NOT EXISTS business_hours (
  id TEXT PRIMARY KEY,
  weekday INTEGER CHECK(weekday BETWEEN 0 AND 6) NOT NULL,  -- 0 = 周一
  lunch_start_min INTEGER,
  lunch_end_min INTEGER,
  dinner_start_min INTEGER,
  dinner_end_min INTEGER,
  closed_all_day BOOLEAN NOT NULL DEFAULT FALSE,
  display_text TEXT,
  effective_from DATE,
  effective_to DATE
);

CREATE TABLE IF NOT EXISTS hits (
  id TEXT PRIMARY KEY,
  created_at TIMESTAMP NOT NULL,
  path TEXT NOT NULL,
  referrer TEXT,
  utm_source TEXT,
  utm_medium TEXT,
  utm_campaign TEXT,
  user_agent TEXT,
  browser TEXT,
  os TEXT,
  ip_hash TEXT,
  city TEXT,
  country TEXT,
  session_id TEXT,
  is_bot BOOLEAN NOT NULL DEFAULT FALSE
);

CREATE INDEX IF NOT EXISTS idx_hits_created ON hits(created_at);
CREATE INDEX IF NOT EXISTS idx_hits_path_created ON hits(path, created_at);

CREATE SEQUENCE IF NOT EXISTS logs_id_seq;
CREATE TABLE IF NOT EXISTS logs (
  log_id INTEGER DEFAULT nextval('logs_id_seq') PRIMARY KEY,
  actor_id TEXT,  -- 执行操作的管理员
  action TEXT,  -- 操作类型标识
  detail_json JSON,  -- 操作详情的结构化数据
  created_at TIMESTAMP DEFAULT now()
);

CREATE INDEX IF NOT EXISTS idx_logs_action ON logs(action);
"""


class DatabaseManager:
    """数据库管理器，封装所有数据库操作"""

    def __init__(self, db_path: Optional[str] = None):
        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        self._lock = threading.RLock()
        self.db_path = db_path or self._get_db_path_from_settings()

    def _get_db_path_from_settings(self) -> str:
        """从设置中获取数据库路径"""
        db_url = settings.database_url
        if db_url.startswith("duckdb://"):
            return db_url.replace("duckdb://", "", 1)
        return db_url

    @property
    def connection(self) -> duckdb.DuckDBPyConnection:
        """获取数据库连接"""
        with self._lock:
            if self._connection is None:
                if self.db_path != ":memory:":
                    Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
                self._connection = duckdb.connect(self.db_path)
                self._init_schema()
            return self._connection

    def get_connection(self) -> duckdb.DuckDBPyConnection:
        return self.connection

    def _init_schema(self):
        """初始化数据库表结构"""
        try:
            self._connection.execute(SCHEMA_SQL)
        except duckdb.Error as e:
            raise DatabaseError(f"Failed to initialize schema: {e}")

    def init_database(self):
        """初始化数据库（应用启动时调用）"""
        with self._lock:
            self.connection.execute(SCHEMA_SQL)

    def close(self):
        with self._lock:
            if self._connection is not None:
                self._connection.close()
                self._connection = None

    @contextmanager
    def transaction(self) -> Generator[duckdb.DuckDBPyConnection, None, None]:
        """
        数据库事务上下文管理器

        整个事务期间持有连接锁；业务异常原样抛出，唯一约束冲突转换为
        DuplicateResourceError，其余数据库异常转换为 DatabaseError。
        """
        with self._lock:
            conn = self.connection
            conn.execute("BEGIN TRANSACTION")
            try:
                yield conn
                conn.execute("COMMIT")
            except Exception as e:
                try:
                    conn.execute("ROLLBACK")
                except duckdb.Error:
                    logger.warning("Rollback failed", exc_info=True)

                if isinstance(e, BaseApplicationError):
                    raise
                if isinstance(e, duckdb.ConstraintException):
                    raise DuplicateResourceError("资源已存在", details={"reason": str(e)})
                raise DatabaseError(f"数据库操作失败: {str(e)}")

    def execute(self, query: str, params: Optional[list] = None) -> None:
        """执行写操作"""
        try:
            with self._lock:
                self.connection.execute(query, params or [])
        except duckdb.ConstraintException as e:
            raise DuplicateResourceError("资源已存在", details={"reason": str(e)})
        except duckdb.Error as e:
            raise DatabaseError(f"Query execution failed: {e}")

    def execute_query(self, query: str, params: Optional[list] = None) -> list:
        """执行查询并返回结果"""
        try:
            with self._lock:
                return self.connection.execute(query, params or []).fetchall()
        except duckdb.Error as e:
            raise DatabaseError(f"Query execution failed: {e}")

    def execute_one(self, query: str, params: Optional[list] = None) -> Optional[tuple]:
        """执行查询并返回单条结果"""
        try:
            with self._lock:
                return self.connection.execute(query, params or []).fetchone()
        except duckdb.Error as e:
            raise DatabaseError(f"Query execution failed: {e}")

    def fetch_dicts(self, query: str, params: Optional[list] = None) -> List[Dict[str, Any]]:
        """执行查询并按列名返回字典列表"""
        try:
            with self._lock:
                cur = self.connection.execute(query, params or [])
                columns = [d[0] for d in cur.description]
                return [dict(zip(columns, row)) for row in cur.fetchall()]
        except duckdb.Error as e:
            raise DatabaseError(f"Query execution failed: {e}")

    def fetch_dict(self, query: str, params: Optional[list] = None) -> Optional[Dict[str, Any]]:
        rows = self.fetch_dicts(query, params)
        return rows[0] if rows else None


# 全局数据库管理器实例
db_manager = DatabaseManager()


def get_db(request: Request) -> DatabaseManager:
    """FastAPI 依赖：返回应用绑定的数据库管理器"""
    return getattr(request.app.state, "db", db_manager)
