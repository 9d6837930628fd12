"""
访问统计服务

前台每次页面访问通过 /api/track 记录一条 hit，
后台按时间范围汇总（总量、独立会话、热门页面、热门城市）和按小时/天出分布。
机器人流量会被记录但不计入任何统计。
"""

import hashlib
import logging
import re
import uuid
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import parse_qs, urlsplit

from user_agents import parse as parse_ua

from ..config.settings import settings
from ..core.database import DatabaseManager

logger = logging.getLogger(__name__)

BOT_PATTERN = re.compile(
    r"bot|crawler|spider|bingpreview|semrush|ahrefs|facebookexternalhit|slurp",
    re.IGNORECASE
)

# ua-parser 识别不出时返回的名称
UNKNOWN_FAMILY = "Other"

VALID_BUCKETS = ("day", "hour")
TOP_LIMIT = 10


def get_client_ip(forwarded_for: Optional[str], remote_addr: Optional[str]) -> str:
    """客户端 IP：X-Forwarded-For 的第一个地址优先，IPv6 本地地址归一为 127.0.0.1"""
    ip = ""
    if forwarded_for:
        ip = forwarded_for.split(",")[0].strip()
    if not ip:
        ip = remote_addr or ""
    return "127.0.0.1" if ip == "::1" else ip


def hash_ip(ip: str, salt: Optional[str] = None) -> Optional[str]:
    """加盐 SHA-256，取前 16 位十六进制"""
    if not ip:
        return None
    salt = settings.ip_hash_salt if salt is None else salt
    return hashlib.sha256((salt + ip).encode("utf-8")).hexdigest()[:16]


def is_likely_bot(user_agent: Optional[str]) -> bool:
    if not user_agent:
        return False
    return BOT_PATTERN.search(user_agent) is not None


def parse_user_agent(user_agent: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    """浏览器和操作系统名称（user-agents / uap-core 规则），识别不出时为 None"""
    if not user_agent:
        return None, None
    parsed = parse_ua(user_agent)
    browser = parsed.browser.family
    os_name = parsed.os.family
    return (
        None if browser == UNKNOWN_FAMILY else browser,
        None if os_name == UNKNOWN_FAMILY else os_name,
    )


def extract_utm(referrer: Optional[str]) -> Dict[str, Optional[str]]:
    """从来源 URL 中取 utm_source / utm_medium / utm_campaign"""
    params: Dict[str, List[str]] = {}
    if referrer:
        try:
            params = parse_qs(urlsplit(referrer).query)
        except ValueError:
            params = {}
    return {
        key: (params.get(key) or [None])[0]
        for key in ("utm_source", "utm_medium", "utm_campaign")
    }


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.strip())
    except ValueError:
        return None


def parse_range(from_value: Optional[str], to_value: Optional[str],
                now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    """
    解析统计时间范围

    - to 缺省为当前时间；只给日期时包含当天全天
    - from 缺省为 to 往前 29 天的零点；只给日期时从当天零点开始
    - 无法解析的值按缺省处理
    """
    now = now or datetime.now()

    end = _parse_datetime(to_value)
    if end is None:
        end = now
    elif len(to_value.strip()) <= 10:
        end = datetime.combine(end.date(), time.max)

    start = _parse_datetime(from_value)
    if start is None:
        start = datetime.combine(end.date() - timedelta(days=29), time.min)
    elif len(from_value.strip()) <= 10:
        start = datetime.combine(start.date(), time.min)

    if start.tzinfo is not None:
        start = start.replace(tzinfo=None)
    if end.tzinfo is not None:
        end = end.replace(tzinfo=None)
    return start, end


def truncate(moment: datetime, bucket: str) -> datetime:
    if bucket == "hour":
        return moment.replace(minute=0, second=0, microsecond=0)
    return datetime.combine(moment.date(), time.min)


def bucket_range(start: datetime, end: datetime, bucket: str) -> List[datetime]:
    """start ~ end 之间全部桶的起点，升序"""
    step = timedelta(hours=1) if bucket == "hour" else timedelta(days=1)
    current = truncate(start, bucket)
    last = truncate(end, bucket)
    buckets = []
    while current <= last:
        buckets.append(current)
        current += step
    return buckets


class AnalyticsService:
    """访问统计服务"""

    def __init__(self, db: DatabaseManager):
        self.db = db

    def record_hit(self, path: str, referrer: Optional[str] = None,
                   user_agent: Optional[str] = None, ip: Optional[str] = None,
                   city: Optional[str] = None, country: Optional[str] = None,
                   session_id: Optional[str] = None,
                   created_at: Optional[datetime] = None) -> str:
        """记录一次访问，返回 hit id"""
        hit_id = uuid.uuid4().hex
        utm = extract_utm(referrer)
        browser, os_name = parse_user_agent(user_agent)
        self.db.execute(
            """
            INSERT INTO hits (
                id, created_at, path, referrer, utm_source, utm_medium, utm_campaign,
                user_agent, browser, os, ip_hash, city, country, session_id, is_bot
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [hit_id, created_at or datetime.now(), path, referrer,
             utm["utm_source"], utm["utm_medium"], utm["utm_campaign"],
             user_agent or None, browser, os_name, hash_ip(ip or ""),
             city, country, session_id, is_likely_bot(user_agent)]
        )
        return hit_id

    def summary(self, start: datetime, end: datetime) -> Dict[str, Any]:
        """时间范围内的非机器人访问汇总"""
        params = [start, end]
        total = self.db.execute_one(
            "SELECT COUNT(*) FROM hits WHERE NOT is_bot AND created_at BETWEEN ? AND ?", params
        )[0]
        uniques = self.db.execute_one(
            """
            SELECT COUNT(DISTINCT session_id) FROM hits
            WHERE NOT is_bot AND session_id IS NOT NULL AND created_at BETWEEN ? AND ?
            """,
            params
        )[0]
        top_pages = self.db.fetch_dicts(
            f"""
            SELECT path, COUNT(*) AS hits FROM hits
            WHERE NOT is_bot AND created_at BETWEEN ? AND ?
            GROUP BY path
            ORDER BY COUNT(*) DESC, path
            LIMIT {TOP_LIMIT}
            """,
            params
        )
        top_cities = self.db.fetch_dicts(
            f"""
            SELECT COALESCE(city, 'Unknown') AS city, COALESCE(country, '--') AS country,
                   COUNT(*) AS hits
            FROM hits
            WHERE NOT is_bot AND created_at BETWEEN ? AND ?
            GROUP BY 1, 2
            ORDER BY COUNT(*) DESC, 1
            LIMIT {TOP_LIMIT}
            """,
            params
        )
        return {
            "total": int(total),
            "uniques": int(uniques),
            "top_pages": top_pages,
            "top_cities": top_cities,
            "range": {"from": start, "to": end},
        }

    def series(self, start: datetime, end: datetime, bucket: str = "day") -> List[Dict[str, Any]]:
        """按小时或天分桶的非机器人访问量，空桶补 0"""
        if bucket not in VALID_BUCKETS:
            bucket = "day"
        rows = self.db.execute_query(
            f"""
            SELECT date_trunc('{bucket}', created_at) AS b, COUNT(*) AS hits
            FROM hits
            WHERE NOT is_bot AND created_at BETWEEN ? AND ?
            GROUP BY b
            """,
            [start, end]
        )
        counts: Dict[datetime, int] = {}
        for moment, hits in rows:
            # date_trunc('day', TIMESTAMP) 在 DuckDB 里返回 DATE
            if not isinstance(moment, datetime) and isinstance(moment, date):
                moment = datetime.combine(moment, time.min)
            counts[moment] = int(hits)
        return [
            {"bucket": b, "hits": counts.get(b, 0)}
            for b in bucket_range(start, end, bucket)
        ]
