"""
休息日展示优先级

同一天可能同时存在单日休息和规则展开的条目，日历上每天只展示一条：
1. 单日休息（EXCEPTIONAL）优先于周期休息（RECURRING）
2. 同类之间时段越宽越优先：ALL > DINNER > LUNCH
3. 完全相同时保留先出现的那条
"""

from typing import Any, Dict, Iterable, Mapping, Union

from ..models.closure import ClosureInstance, ClosureKind, ClosureSlot, RECURRING_ID_PREFIX
from .closure_expander import parse_api_date

SLOT_RANK = {
    ClosureSlot.ALL: 3,
    ClosureSlot.DINNER: 2,
    ClosureSlot.LUNCH: 1,
}

KIND_RANK = {
    ClosureKind.EXCEPTIONAL: 2,
    ClosureKind.RECURRING: 1,
}


def infer_kind(instance_id: str) -> ClosureKind:
    """
    根据 id 前缀推断来源

    仅用于兼容没有 kind 字段的旧数据，服务端返回的数据总是带 kind。
    """
    if instance_id.startswith(RECURRING_ID_PREFIX):
        return ClosureKind.RECURRING
    return ClosureKind.EXCEPTIONAL


def coerce_instance(item: Union[ClosureInstance, Mapping[str, Any]]) -> ClosureInstance:
    """把接口返回的 JSON 条目转换为 ClosureInstance"""
    if isinstance(item, ClosureInstance):
        return item
    day = parse_api_date(item.get("date"))
    if day is None:
        raise ValueError(f"无法解析日期: {item.get('date')!r}")
    kind = item.get("kind") or infer_kind(str(item["id"]))
    return ClosureInstance(
        id=str(item["id"]),
        date=day,
        slot=str(item["slot"]).upper(),
        note=item.get("note"),
        kind=kind,
    )


def outranks(incoming: ClosureInstance, current: ClosureInstance) -> bool:
    """incoming 是否应替换 current"""
    incoming_kind, current_kind = KIND_RANK[incoming.kind], KIND_RANK[current.kind]
    if incoming_kind != current_kind:
        return incoming_kind > current_kind
    return SLOT_RANK[incoming.slot] > SLOT_RANK[current.slot]


def resolve_display_closures(
    items: Iterable[Union[ClosureInstance, Mapping[str, Any]]]
) -> Dict[str, ClosureInstance]:
    """
    每天只保留优先级最高的一条

    Returns:
        ISO 日期 -> 休息条目，键按首次出现的顺序排列
    """
    by_day: Dict[str, ClosureInstance] = {}
    for item in items:
        instance = coerce_instance(item)
        key = instance.date.isoformat()
        current = by_day.get(key)
        if current is None or outranks(instance, current):
            by_day[key] = instance
    return by_day
