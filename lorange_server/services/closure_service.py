"""
休息日服务
单日休息和周期休息规则的增删改查，以及对外的休息日查询
"""

import logging
import uuid
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from ..core.database import DatabaseManager
from ..core.exceptions import (
    DatabaseError,
    DuplicateResourceError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)
from ..models.closure import ClosureInstance, ExceptionalClosure, RecurringClosureRule
from ..schemas.closure import (
    ClosureCreateRequest,
    ClosureUpdateRequest,
    RecurringClosureCreateRequest,
    RecurringClosureUpdateRequest,
)
from .audit import record_admin_action
from .closure_expander import expand_closures
from .closure_precedence import resolve_display_closures

logger = logging.getLogger(__name__)

_RULE_COLUMNS = "id, weekday, slot, note, starts_on, ends_on, interval_weeks AS interval"


class ClosureService:
    """休息日服务"""

    def __init__(self, db: DatabaseManager):
        self.db = db

    # ---- 单日休息 ----

    def list_closures(self) -> List[ExceptionalClosure]:
        """后台列表：全部单日休息，按日期升序"""
        rows = self.db.fetch_dicts("SELECT id, date, slot, note FROM closures ORDER BY date, slot")
        return [ExceptionalClosure(**row) for row in rows]

    def get_closure(self, closure_id: str) -> ExceptionalClosure:
        row = self.db.fetch_dict("SELECT id, date, slot, note FROM closures WHERE id = ?", [closure_id])
        if not row:
            raise NotFoundError("休息记录不存在", error_code="CLOSURE_NOT_FOUND",
                                details={"id": closure_id})
        return ExceptionalClosure(**row)

    def create_closure(self, data: ClosureCreateRequest, actor_id: Optional[str]) -> ExceptionalClosure:
        """创建单日休息，同一日期时段只能有一条"""
        closure_id = uuid.uuid4().hex
        with self.db.transaction() as conn:
            self._ensure_unique_slot(conn, data.date, data.slot.value)
            conn.execute(
                "INSERT INTO closures (id, date, slot, note) VALUES (?, ?, ?, ?)",
                [closure_id, data.date, data.slot.value, data.note]
            )
            record_admin_action(conn, actor_id, "closure_create",
                                {"id": closure_id, "date": data.date, "slot": data.slot.value})
        return self.get_closure(closure_id)

    def update_closure(self, closure_id: str, data: ClosureUpdateRequest,
                       actor_id: Optional[str]) -> ExceptionalClosure:
        """部分更新单日休息"""
        changes = data.model_dump(exclude_unset=True)
        current = self.get_closure(closure_id)
        if changes.get("date", current.date) is None or changes.get("slot", current.slot) is None:
            raise ValidationError("日期和时段不能为空")

        new_date = changes.get("date", current.date)
        new_slot = changes.get("slot", current.slot).value
        with self.db.transaction() as conn:
            if (new_date, new_slot) != (current.date, current.slot.value):
                self._ensure_unique_slot(conn, new_date, new_slot)
            conn.execute(
                "UPDATE closures SET date = ?, slot = ?, note = ? WHERE id = ?",
                [new_date, new_slot, changes.get("note", current.note), closure_id]
            )
            record_admin_action(conn, actor_id, "closure_update", {"id": closure_id, **changes})
        return self.get_closure(closure_id)

    def delete_closure(self, closure_id: str, actor_id: Optional[str]) -> None:
        self.get_closure(closure_id)
        with self.db.transaction() as conn:
            conn.execute("DELETE FROM closures WHERE id = ?", [closure_id])
            record_admin_action(conn, actor_id, "closure_delete", {"id": closure_id})

    def _ensure_unique_slot(self, conn, day: date, slot: str) -> None:
        row = conn.execute(
            "SELECT id FROM closures WHERE date = ? AND slot = ?", [day, slot]
        ).fetchone()
        if row:
            raise DuplicateResourceError(
                "该日期时段已存在休息记录",
                error_code="CLOSURE_DUPLICATE",
                details={"date": day.isoformat(), "slot": slot, "existing_id": row[0]}
            )

    # ---- 周期休息规则 ----

    def list_rules(self) -> List[RecurringClosureRule]:
        """全部规则，按星期几、时段排序"""
        rows = self.db.fetch_dicts(
            f"SELECT {_RULE_COLUMNS} FROM recurring_closures ORDER BY weekday, slot"
        )
        return [RecurringClosureRule(**row) for row in rows]

    def get_rule(self, rule_id: str) -> RecurringClosureRule:
        row = self.db.fetch_dict(
            f"SELECT {_RULE_COLUMNS} FROM recurring_closures WHERE id = ?", [rule_id]
        )
        if not row:
            raise NotFoundError("周期休息规则不存在", error_code="RECURRING_CLOSURE_NOT_FOUND",
                                details={"id": rule_id})
        return RecurringClosureRule(**row)

    def create_rule(self, data: RecurringClosureCreateRequest,
                    actor_id: Optional[str]) -> RecurringClosureRule:
        rule_id = uuid.uuid4().hex
        with self.db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO recurring_closures (id, weekday, slot, note, starts_on, ends_on, interval_weeks)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                [rule_id, data.weekday, data.slot.value, data.note,
                 data.starts_on, data.ends_on, data.interval]
            )
            record_admin_action(conn, actor_id, "recurring_closure_create",
                                {"id": rule_id, **data.model_dump(mode="json")})
        return self.get_rule(rule_id)

    def update_rule(self, rule_id: str, data: RecurringClosureUpdateRequest,
                    actor_id: Optional[str]) -> RecurringClosureRule:
        """部分更新规则；显式传 null 的 note / starts_on / ends_on 会被清空"""
        current = self.get_rule(rule_id)
        changes = data.model_dump(exclude_unset=True)
        for required in ("weekday", "slot", "interval"):
            if required in changes and changes[required] is None:
                raise ValidationError(f"{required} 不能为空")

        merged: Dict[str, Any] = {**current.model_dump(), **changes}
        if merged["starts_on"] and merged["ends_on"] and merged["starts_on"] > merged["ends_on"]:
            raise ValidationError("starts_on 不能晚于 ends_on")

        with self.db.transaction() as conn:
            conn.execute(
                """
                UPDATE recurring_closures
                SET weekday = ?, slot = ?, note = ?, starts_on = ?, ends_on = ?, interval_weeks = ?
                WHERE id = ?
                """,
                [merged["weekday"], merged["slot"].value, merged["note"],
                 merged["starts_on"], merged["ends_on"], merged["interval"], rule_id]
            )
            record_admin_action(conn, actor_id, "recurring_closure_update", {"id": rule_id, **changes})
        return self.get_rule(rule_id)

    def delete_rule(self, rule_id: str, actor_id: Optional[str]) -> None:
        self.get_rule(rule_id)
        with self.db.transaction() as conn:
            conn.execute("DELETE FROM recurring_closures WHERE id = ?", [rule_id])
            record_admin_action(conn, actor_id, "recurring_closure_delete", {"id": rule_id})

    # ---- 对外查询 ----

    def _load_sources(self, window_start: date,
                      window_end: date) -> Tuple[List[ExceptionalClosure], List[RecurringClosureRule]]:
        """读取窗口内的单日休息和全部规则；存储故障转为 UpstreamError"""
        try:
            rows = self.db.fetch_dicts(
                "SELECT id, date, slot, note FROM closures WHERE date BETWEEN ? AND ? ORDER BY date",
                [window_start, window_end]
            )
            rules = self.list_rules()
        except DatabaseError as e:
            logger.error("Failed to load closures: %s", e.message)
            raise UpstreamError("休息日数据暂时不可用")
        return [ExceptionalClosure(**row) for row in rows], rules

    def get_expanded_closures(self, window_start: date, window_end: date) -> List[ClosureInstance]:
        """窗口内全部休息条目（单日 + 规则展开），按日期升序，不去重"""
        if window_start > window_end:
            return []
        exceptions, rules = self._load_sources(window_start, window_end)
        return expand_closures(rules, exceptions, window_start, window_end)

    def get_calendar(self, window_start: date,
                     window_end: date) -> Tuple[List[ClosureInstance], List[ClosureInstance]]:
        """返回 (原始列表, 每天一条的展示列表)"""
        raw = self.get_expanded_closures(window_start, window_end)
        display = list(resolve_display_closures(raw).values())
        return raw, display
