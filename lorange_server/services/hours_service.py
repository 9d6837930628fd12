"""
营业时间服务
"""

import re
import uuid
from typing import List, Optional, Tuple

from ..core.database import DatabaseManager
from ..models.hours import BusinessHours
from ..schemas.hours import HoursUpdateRequest
from .audit import record_admin_action

_HHMM = re.compile(r"^\d{1,2}:\d{2}$")

TimeRange = Tuple[str, str]


def hhmm_to_minutes(value: Optional[str]) -> Optional[int]:
    """"12:30" -> 750，格式不对返回 None"""
    if not value or not _HHMM.match(value.strip()):
        return None
    hours, minutes = (int(part) for part in value.strip().split(":"))
    return hours * 60 + minutes


def parse_text_to_ranges(text: Optional[str]) -> Tuple[Optional[TimeRange], Optional[TimeRange]]:
    """
    解析营业时间文本

    "12:00-14:30, 18:00-22:00" -> (("12:00", "14:30"), ("18:00", "22:00"))
    只取前两段，第一段视为午市、第二段视为晚市；格式不对的段落直接跳过。
    """
    if not text:
        return None, None
    parts = [p.strip() for p in text.split(",") if p.strip()][:2]
    ranges: List[TimeRange] = []
    for part in parts:
        bounds = [b.strip() for b in part.split("-")]
        if len(bounds) != 2 or not all(_HHMM.match(b) for b in bounds):
            continue
        ranges.append((bounds[0], bounds[1]))
    lunch = ranges[0] if len(ranges) > 0 else None
    dinner = ranges[1] if len(ranges) > 1 else None
    return lunch, dinner


class HoursService:
    """营业时间服务"""

    def __init__(self, db: DatabaseManager):
        self.db = db

    def list_hours(self) -> List[BusinessHours]:
        rows = self.db.fetch_dicts("SELECT * FROM business_hours ORDER BY weekday")
        return [BusinessHours(**row) for row in rows]

    def set_hours(self, weekday: int, data: HoursUpdateRequest,
                  actor_id: Optional[str]) -> BusinessHours:
        """按星期几新增或覆盖营业时间"""
        text = (data.text or "").strip()
        lunch, dinner = parse_text_to_ranges(text)
        closed = data.closed_all_day if data.closed_all_day is not None else len(text) == 0
        values = [
            hhmm_to_minutes(lunch[0]) if lunch else None,
            hhmm_to_minutes(lunch[1]) if lunch else None,
            hhmm_to_minutes(dinner[0]) if dinner else None,
            hhmm_to_minutes(dinner[1]) if dinner else None,
            closed,
            text,
        ]

        with self.db.transaction() as conn:
            existing = conn.execute(
                "SELECT id FROM business_hours WHERE weekday = ? ORDER BY effective_from NULLS FIRST LIMIT 1",
                [weekday]
            ).fetchone()
            if existing:
                hours_id = existing[0]
                conn.execute(
                    """
                    UPDATE business_hours
                    SET lunch_start_min = ?, lunch_end_min = ?, dinner_start_min = ?,
                        dinner_end_min = ?, closed_all_day = ?, display_text = ?
                    WHERE id = ?
                    """,
                    values + [hours_id]
                )
            else:
                hours_id = uuid.uuid4().hex
                conn.execute(
                    """
                    INSERT INTO business_hours (
                        lunch_start_min, lunch_end_min, dinner_start_min,
                        dinner_end_min, closed_all_day, display_text, id, weekday
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    values + [hours_id, weekday]
                )
            record_admin_action(conn, actor_id, "hours_update",
                                {"weekday": weekday, "text": text, "closed_all_day": closed})

        row = self.db.fetch_dict("SELECT * FROM business_hours WHERE id = ?", [hours_id])
        return BusinessHours(**row)
