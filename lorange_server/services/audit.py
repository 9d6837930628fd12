"""
后台操作审计日志
"""

import json
import logging
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


def record_admin_action(conn, actor_id: Optional[str], action: str,
                        details: Optional[Dict[str, Any]] = None) -> None:
    """
    在当前事务内写入一条操作日志

    Args:
        conn: 事务连接（DatabaseManager.transaction() 的返回值）
        actor_id: 执行操作的管理员ID
        action: 操作类型标识，如 closure_create
        details: 操作详情
    """
    conn.execute(
        "INSERT INTO logs (actor_id, action, detail_json) VALUES (?, ?, ?)",
        [actor_id, action, json.dumps(details or {}, ensure_ascii=False, default=str)]
    )
    logger.info("admin action %s by %s: %s", action, actor_id, details)
