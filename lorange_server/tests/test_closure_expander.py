"""
周期休息规则展开测试
"""

import re
from datetime import date, timedelta

import pytest

from lorange_server.core.exceptions import InvalidRuleError
from lorange_server.models.closure import (
    ClosureKind,
    ClosureSlot,
    ExceptionalClosure,
    RecurringClosureRule,
)
from lorange_server.services.closure_expander import (
    add_years,
    default_window,
    expand_closures,
    expand_rule,
    parse_api_date,
    resolve_window,
)

# 2024-01-01 是周一
MONDAY = date(2024, 1, 1)


def make_rule(weekday=2, slot=ClosureSlot.LUNCH, **kwargs):
    return RecurringClosureRule(id=kwargs.pop("id", "r1"), weekday=weekday, slot=slot, **kwargs)


class TestExpandClosures:
    """规则展开"""

    def test_inverted_window_returns_empty(self):
        """窗口起点晚于终点时返回空列表"""
        rules = [make_rule()]
        exceptions = [ExceptionalClosure(id="c1", date=MONDAY, slot=ClosureSlot.ALL)]
        assert expand_closures(rules, exceptions, MONDAY + timedelta(days=5), MONDAY) == []

    def test_weekly_rule_over_two_weeks(self):
        """每周三的规则在两周窗口内出现两次，相隔 7 天"""
        result = expand_closures([make_rule(weekday=2)], [], MONDAY, MONDAY + timedelta(days=13))

        assert len(result) == 2
        assert all(i.date.weekday() == 2 for i in result)
        assert result[1].date - result[0].date == timedelta(days=7)
        assert all(i.kind == ClosureKind.RECURRING for i in result)

    def test_interval_is_honored(self):
        """间隔两周的规则在四周窗口内只出现两次"""
        result = expand_closures(
            [make_rule(weekday=2, interval=2)], [], MONDAY, MONDAY + timedelta(days=27)
        )

        assert len(result) == 2
        assert result[1].date - result[0].date == timedelta(days=14)

    def test_starts_on_bounds_first_instance(self):
        """规则起始日在窗口中间时，不会出现更早的条目"""
        starts_on = MONDAY + timedelta(days=9)
        result = expand_closures(
            [make_rule(weekday=2, starts_on=starts_on)], [], MONDAY, MONDAY + timedelta(days=29)
        )

        assert result
        assert all(i.date >= starts_on for i in result)
        assert result[0].date == date(2024, 1, 10)

    def test_ends_on_bounds_last_instance(self):
        ends_on = date(2024, 1, 16)
        result = expand_closures(
            [make_rule(weekday=2, ends_on=ends_on)], [], MONDAY, MONDAY + timedelta(days=29)
        )

        assert [i.date for i in result] == [date(2024, 1, 3), date(2024, 1, 10)]

    def test_rule_outside_window_yields_nothing(self):
        rule = make_rule(starts_on=date(2025, 1, 1))
        assert expand_closures([rule], [], MONDAY, MONDAY + timedelta(days=30)) == []

    def test_merge_keeps_duplicates_and_sorts(self):
        """同一天的单日休息和规则条目都会保留，整体按日期升序"""
        day5 = MONDAY + timedelta(days=4)  # 周五
        exceptions = [
            ExceptionalClosure(id="late", date=MONDAY + timedelta(days=12), slot=ClosureSlot.ALL),
            ExceptionalClosure(id="c5", date=day5, slot=ClosureSlot.DINNER, note="私人包场"),
        ]
        result = expand_closures(
            [make_rule(weekday=4, slot=ClosureSlot.LUNCH)], exceptions, MONDAY, MONDAY + timedelta(days=13)
        )

        dates = [i.date for i in result]
        assert dates == sorted(dates)
        same_day = [i for i in result if i.date == day5]
        assert {i.kind for i in same_day} == {ClosureKind.EXCEPTIONAL, ClosureKind.RECURRING}
        # 同一天内单日休息排在前面
        assert same_day[0].id == "c5"
        assert len(result) == 4

    def test_exceptions_outside_window_are_dropped(self):
        exceptions = [ExceptionalClosure(id="old", date=date(2023, 12, 31), slot=ClosureSlot.ALL)]
        assert expand_closures([], exceptions, MONDAY, MONDAY + timedelta(days=6)) == []

    def test_recurring_id_encodes_rule_and_date(self):
        """展开条目的 id 为 rec_<规则ID>_<YYYY-MM-DD>，其中日期与条目日期一致"""
        pattern = re.compile(r"^rec_(?P<rule>.+)_(?P<day>\d{4}-\d{2}-\d{2})$")
        rules = [make_rule(id="abc123", weekday=0), make_rule(id="with_underscore", weekday=6)]
        result = expand_closures(rules, [], MONDAY, MONDAY + timedelta(days=60))

        assert result
        for instance in result:
            match = pattern.match(instance.id)
            assert match is not None
            assert match.group("day") == instance.date.isoformat()
            assert match.group("rule") in {"abc123", "with_underscore"}

    def test_note_and_slot_are_copied(self):
        rule = make_rule(weekday=0, slot=ClosureSlot.DINNER, note="周一晚市休息")
        instance = next(expand_rule(rule, MONDAY, MONDAY))
        assert instance.slot == ClosureSlot.DINNER
        assert instance.note == "周一晚市休息"

    def test_missing_interval_defaults_to_weekly(self):
        result = expand_closures(
            [make_rule(weekday=2, interval=None)], [], MONDAY, MONDAY + timedelta(days=13)
        )
        assert len(result) == 2


class TestInvalidRules:
    """非法规则直接报错"""

    @pytest.mark.parametrize("weekday", [-1, 7])
    def test_weekday_out_of_range(self, weekday):
        with pytest.raises(InvalidRuleError) as exc_info:
            expand_closures([make_rule(weekday=weekday)], [], MONDAY, MONDAY + timedelta(days=6))
        assert exc_info.value.error_code == "INVALID_RULE"

    @pytest.mark.parametrize("interval", [0, -2])
    def test_interval_below_one(self, interval):
        with pytest.raises(InvalidRuleError):
            expand_closures([make_rule(interval=interval)], [], MONDAY, MONDAY + timedelta(days=6))


class TestWindowHelpers:
    """窗口参数解析"""

    def test_add_years_on_leap_day(self):
        assert add_years(date(2024, 2, 29), 1) == date(2025, 2, 28)
        assert add_years(date(2024, 2, 29), 4) == date(2028, 2, 29)

    def test_default_window_spans_five_years(self):
        assert default_window(date(2024, 3, 15)) == (date(2024, 3, 15), date(2029, 3, 15))

    def test_parse_api_date_accepts_timestamps(self):
        assert parse_api_date("2024-05-01T00:00:00.000Z") == date(2024, 5, 1)
        assert parse_api_date("2024-05-01") == date(2024, 5, 1)
        assert parse_api_date("not-a-date") is None
        assert parse_api_date(None) is None

    def test_resolve_window_uses_query_when_both_valid(self):
        assert resolve_window("2024-01-01", "2024-02-01") == (date(2024, 1, 1), date(2024, 2, 1))

    @pytest.mark.parametrize("start,end", [
        ("2024-01-01", None),
        (None, "2024-02-01"),
        ("garbage", "2024-02-01"),
        (None, None),
    ])
    def test_resolve_window_falls_back_to_default(self, start, end):
        today = date(2024, 6, 1)
        assert resolve_window(start, end, today=today) == (today, date(2029, 6, 1))
