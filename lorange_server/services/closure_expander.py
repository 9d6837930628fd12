"""
周期性休息规则展开

把每周重复的休息规则投影到给定日期窗口上，得到具体的休息日期，
再与窗口内的单日休息合并、按日期升序排列。

展开结果不落库：规则是唯一的数据来源，每次读取重新计算。
所有计算都以“天”为粒度（date 而非 datetime），不受时区和夏令时影响。
"""

import logging
from datetime import date, timedelta
from typing import Iterable, Iterator, List, Optional, Tuple

from ..core.exceptions import InvalidRuleError
from ..models.closure import (
    ClosureInstance,
    ClosureKind,
    ExceptionalClosure,
    RecurringClosureRule,
    RECURRING_ID_PREFIX,
)

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_YEARS = 5


def add_years(d: date, years: int) -> date:
    """日期加整年，2 月 29 日落到非闰年时取 2 月 28 日"""
    try:
        return d.replace(year=d.year + years)
    except ValueError:
        return d.replace(year=d.year + years, day=28)


def default_window(today: Optional[date] = None,
                   years: int = DEFAULT_WINDOW_YEARS) -> Tuple[date, date]:
    """默认展开窗口：今天 ~ 今天 + years 年"""
    start = today or date.today()
    return start, add_years(start, years)


def parse_api_date(value) -> Optional[date]:
    """
    解析接口传入的日期

    只取前 10 位 YYYY-MM-DD，兼容完整的 ISO 时间戳；无法解析时返回 None。
    """
    if isinstance(value, date):
        return value
    if not value or not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None


def resolve_window(start: Optional[str], end: Optional[str],
                   today: Optional[date] = None,
                   years: int = DEFAULT_WINDOW_YEARS) -> Tuple[date, date]:
    """
    根据查询参数确定展开窗口

    start / end 必须同时提供且都能解析，否则退回默认窗口（不报错）。
    """
    parsed_start = parse_api_date(start)
    parsed_end = parse_api_date(end)
    if parsed_start is not None and parsed_end is not None:
        return parsed_start, parsed_end
    if start or end:
        logger.info("Ignoring incomplete or malformed closure window: start=%r end=%r", start, end)
    return default_window(today, years)


def recurring_instance_id(rule_id: str, day: date) -> str:
    return f"{RECURRING_ID_PREFIX}{rule_id}_{day.isoformat()}"


def _rule_interval(rule: RecurringClosureRule) -> int:
    """校验规则字段并返回间隔周数（缺省为 1）"""
    if not isinstance(rule.weekday, int) or not 0 <= rule.weekday <= 6:
        raise InvalidRuleError(
            f"weekday 必须在 0-6 之间（周一 = 0）: {rule.weekday}",
            details={"rule_id": rule.id, "weekday": rule.weekday}
        )
    interval = 1 if rule.interval is None else rule.interval
    if interval < 1:
        raise InvalidRuleError(
            f"interval 必须 >= 1: {interval}",
            details={"rule_id": rule.id, "interval": interval}
        )
    return interval


def expand_rule(rule: RecurringClosureRule,
                window_start: date,
                window_end: date) -> Iterator[ClosureInstance]:
    """展开单条规则，按日期升序产出落在窗口内的休息条目"""
    interval = _rule_interval(rule)

    eff_start = max(window_start, rule.starts_on or window_start)
    eff_end = min(window_end, rule.ends_on or window_end)
    if eff_start > eff_end:
        return

    # 第一个落在目标星期几的日期，位于 [eff_start, eff_start + 6]
    delta = (rule.weekday - eff_start.weekday() + 7) % 7
    current = eff_start + timedelta(days=delta)
    step = timedelta(weeks=interval)

    while current <= eff_end:
        yield ClosureInstance(
            id=recurring_instance_id(rule.id, current),
            date=current,
            slot=rule.slot,
            note=rule.note,
            kind=ClosureKind.RECURRING,
        )
        current += step


def expand_closures(rules: Iterable[RecurringClosureRule],
                    exceptions: Iterable[ExceptionalClosure],
                    window_start: date,
                    window_end: date) -> List[ClosureInstance]:
    """
    展开周期性规则并与单日休息合并

    Args:
        rules: 全部周期性规则（无需预先过滤，窗口裁剪在这里完成）
        exceptions: 单日休息，窗口外的会被忽略
        window_start: 窗口起始日（含）
        window_end: 窗口截止日（含）

    Returns:
        按日期升序的休息条目列表。同一天的单日休息和规则展开结果都会保留，
        去重交给展示层（见 closure_precedence）。

    Raises:
        InvalidRuleError: 规则的 weekday 越界或 interval < 1
    """
    if window_start > window_end:
        return []

    merged: List[ClosureInstance] = [
        ClosureInstance(
            id=exc.id,
            date=exc.date,
            slot=exc.slot,
            note=exc.note,
            kind=ClosureKind.EXCEPTIONAL,
        )
        for exc in exceptions
        if window_start <= exc.date <= window_end
    ]
    for rule in rules:
        merged.extend(expand_rule(rule, window_start, window_end))

    # sorted 是稳定排序：同一天内单日休息在前，规则展开按规则顺序在后
    return sorted(merged, key=lambda instance: instance.date)
