"""
营业时间测试
"""

import pytest

from lorange_server.services.hours_service import hhmm_to_minutes, parse_text_to_ranges


class TestParseText:
    """营业时间文本解析"""

    def test_two_ranges(self):
        assert parse_text_to_ranges("12:00-14:30, 18:00-22:00") == (
            ("12:00", "14:30"), ("18:00", "22:00")
        )

    def test_single_range_is_lunch(self):
        assert parse_text_to_ranges("11:30 - 15:00") == (("11:30", "15:00"), None)

    def test_malformed_parts_are_skipped(self):
        assert parse_text_to_ranges("closed, 18:00-22:00") == (("18:00", "22:00"), None)

    @pytest.mark.parametrize("text", ["", None])
    def test_empty(self, text):
        assert parse_text_to_ranges(text) == (None, None)

    def test_hhmm_to_minutes(self):
        assert hhmm_to_minutes("12:30") == 750
        assert hhmm_to_minutes("9:05") == 545
        assert hhmm_to_minutes("noon") is None


class TestHoursAPI:
    """营业时间接口"""

    def test_set_and_read_hours(self, client, admin_client):
        response = admin_client.put("/api/admin/hours/1", json={"text": "12:00-14:30, 18:00-22:00"})

        assert response.status_code == 200
        data = response.json()
        assert data["weekday"] == 1
        assert data["lunch_start_min"] == 720
        assert data["dinner_end_min"] == 1320
        assert data["closed_all_day"] is False

        public = client.get("/api/hours").json()
        assert public == [{"weekday": 1, "text": "12:00-14:30, 18:00-22:00"}]

    def test_empty_text_means_closed(self, admin_client):
        data = admin_client.put("/api/admin/hours/0", json={"text": ""}).json()

        assert data["closed_all_day"] is True
        assert data["lunch_start_min"] is None

    def test_put_overwrites_existing_day(self, admin_client):
        admin_client.put("/api/admin/hours/4", json={"text": "12:00-14:00"})
        admin_client.put("/api/admin/hours/4", json={"text": "18:00-23:00", "closed_all_day": False})

        rows = admin_client.get("/api/admin/hours").json()
        assert len(rows) == 1
        assert rows[0]["display_text"] == "18:00-23:00"

    @pytest.mark.parametrize("weekday", [-1, 7])
    def test_weekday_out_of_range(self, admin_client, weekday):
        assert admin_client.put(f"/api/admin/hours/{weekday}", json={"text": ""}).status_code == 422

    def test_public_hours_sorted_by_weekday(self, client, admin_client):
        for weekday in (6, 0, 3):
            admin_client.put(f"/api/admin/hours/{weekday}", json={"text": "12:00-14:00"})

        assert [h["weekday"] for h in client.get("/api/hours").json()] == [0, 3, 6]
