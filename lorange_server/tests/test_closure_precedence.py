"""
休息日展示优先级测试
"""

from datetime import date

import pytest

from lorange_server.models.closure import ClosureInstance, ClosureKind, ClosureSlot
from lorange_server.services.closure_precedence import (
    coerce_instance,
    infer_kind,
    resolve_display_closures,
)

DAY = date(2024, 3, 6)


def make_instance(id, slot, kind, day=DAY):
    return ClosureInstance(id=id, date=day, slot=slot, kind=kind)


class TestResolveDisplayClosures:
    """每天只保留一条"""

    def test_exceptional_beats_recurring_regardless_of_slot(self):
        items = [
            make_instance("rec_r1_2024-03-06", ClosureSlot.LUNCH, ClosureKind.RECURRING),
            make_instance("c1", ClosureSlot.DINNER, ClosureKind.EXCEPTIONAL),
        ]
        assert resolve_display_closures(items)["2024-03-06"].id == "c1"

    def test_exceptional_not_replaced_by_broader_recurring(self):
        items = [
            make_instance("c1", ClosureSlot.LUNCH, ClosureKind.EXCEPTIONAL),
            make_instance("rec_r1_2024-03-06", ClosureSlot.ALL, ClosureKind.RECURRING),
        ]
        assert resolve_display_closures(items)["2024-03-06"].id == "c1"

    def test_broader_slot_wins_within_same_kind(self):
        items = [
            make_instance("rec_a_2024-03-06", ClosureSlot.LUNCH, ClosureKind.RECURRING),
            make_instance("rec_b_2024-03-06", ClosureSlot.ALL, ClosureKind.RECURRING),
        ]
        assert resolve_display_closures(items)["2024-03-06"].slot == ClosureSlot.ALL

    def test_dinner_outranks_lunch(self):
        items = [
            make_instance("c1", ClosureSlot.LUNCH, ClosureKind.EXCEPTIONAL),
            make_instance("c2", ClosureSlot.DINNER, ClosureKind.EXCEPTIONAL),
        ]
        assert resolve_display_closures(items)["2024-03-06"].id == "c2"

    def test_first_seen_wins_on_tie(self):
        items = [
            make_instance("rec_a_2024-03-06", ClosureSlot.ALL, ClosureKind.RECURRING),
            make_instance("rec_b_2024-03-06", ClosureSlot.ALL, ClosureKind.RECURRING),
        ]
        assert resolve_display_closures(items)["2024-03-06"].id == "rec_a_2024-03-06"

    def test_one_entry_per_day(self):
        items = [
            make_instance("c1", ClosureSlot.ALL, ClosureKind.EXCEPTIONAL, day=date(2024, 3, 5)),
            make_instance("c2", ClosureSlot.LUNCH, ClosureKind.EXCEPTIONAL),
            make_instance("rec_a_2024-03-06", ClosureSlot.DINNER, ClosureKind.RECURRING),
        ]
        result = resolve_display_closures(items)
        assert list(result) == ["2024-03-05", "2024-03-06"]

    def test_accepts_api_json_items(self):
        """直接接受接口返回的 JSON 条目，缺少 kind 时按 id 前缀推断"""
        items = [
            {"id": "rec_r1_2024-03-06", "date": "2024-03-06T00:00:00.000Z", "slot": "all"},
            {"id": "c9", "date": "2024-03-06T00:00:00Z", "slot": "LUNCH", "note": "装修"},
        ]
        winner = resolve_display_closures(items)["2024-03-06"]
        assert winner.id == "c9"
        assert winner.kind == ClosureKind.EXCEPTIONAL

    def test_empty_input(self):
        assert resolve_display_closures([]) == {}


class TestHelpers:

    def test_infer_kind(self):
        assert infer_kind("rec_abc_2024-01-01") == ClosureKind.RECURRING
        assert infer_kind("abc") == ClosureKind.EXCEPTIONAL

    def test_coerce_instance_rejects_bad_date(self):
        with pytest.raises(ValueError):
            coerce_instance({"id": "x", "date": "yesterday", "slot": "ALL"})
