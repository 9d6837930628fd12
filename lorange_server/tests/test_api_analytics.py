"""
访问统计测试
"""

import time as clock
from datetime import datetime, time
from types import SimpleNamespace

import geoip2.errors
import pytest

from lorange_server.core.exceptions import RateLimitError
from lorange_server.core.geo import GeoLocator, open_geo_locator
from lorange_server.core.rate_limit import RequestRateLimiter
from lorange_server.services.analytics_service import (
    AnalyticsService,
    bucket_range,
    extract_utm,
    get_client_ip,
    hash_ip,
    is_likely_bot,
    parse_range,
    parse_user_agent,
)

CHROME_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
IPHONE_UA = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)
VIVALDI_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36 Vivaldi/6.5.3206.48"
)
YANDEX_UA = (
    "Mozilla/5.0 (Linux; Android 13; SM-A536B) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 YaBrowser/24.1.1.940.00 SA/3 Mobile Safari/537.36"
)
BOT_UA = "Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)"


class TestHelpers:
    """统计辅助函数"""

    def test_client_ip_prefers_first_forwarded(self):
        assert get_client_ip("203.0.113.5, 10.0.0.1", "127.0.0.1") == "203.0.113.5"
        assert get_client_ip(None, "198.51.100.7") == "198.51.100.7"
        assert get_client_ip("", "::1") == "127.0.0.1"

    def test_hash_ip(self):
        hashed = hash_ip("203.0.113.5", salt="pepper")
        assert len(hashed) == 16
        assert hashed == hash_ip("203.0.113.5", salt="pepper")
        assert hashed != hash_ip("203.0.113.5", salt="other")
        assert hash_ip("", salt="pepper") is None

    @pytest.mark.parametrize("ua,expected", [
        (BOT_UA, True),
        ("AhrefsBot/7.0", True),
        ("facebookexternalhit/1.1", True),
        (CHROME_UA, False),
        (None, False),
    ])
    def test_is_likely_bot(self, ua, expected):
        assert is_likely_bot(ua) is expected

    def test_parse_user_agent(self):
        browser, os_name = parse_user_agent(CHROME_UA)
        assert browser == "Chrome"
        assert os_name.startswith("Windows")
        assert parse_user_agent(IPHONE_UA) == ("Mobile Safari", "iOS")
        assert parse_user_agent(None) == (None, None)

    def test_parse_user_agent_names_chromium_forks(self):
        assert parse_user_agent(VIVALDI_UA)[0] == "Vivaldi"
        assert parse_user_agent(YANDEX_UA) == ("Yandex Browser", "Android")

    def test_parse_user_agent_unknown(self):
        assert parse_user_agent("lorange healthcheck") == (None, None)

    def test_extract_utm(self):
        utm = extract_utm("https://example.com/?utm_source=instagram&utm_campaign=spring")
        assert utm == {"utm_source": "instagram", "utm_medium": None, "utm_campaign": "spring"}
        assert extract_utm(None)["utm_source"] is None

    def test_parse_range_defaults(self):
        now = datetime(2024, 5, 31, 15, 30)
        start, end = parse_range(None, None, now=now)

        assert end == now
        assert start == datetime(2024, 5, 2)

    def test_parse_range_date_to_is_inclusive(self):
        start, end = parse_range("2024-05-01", "2024-05-03")

        assert start == datetime(2024, 5, 1)
        assert end == datetime.combine(datetime(2024, 5, 3).date(), time.max)

    def test_parse_range_ignores_garbage(self):
        now = datetime(2024, 5, 31, 12, 0)
        assert parse_range("soon", "later", now=now) == (datetime(2024, 5, 2), now)

    def test_bucket_range_hours(self):
        buckets = bucket_range(datetime(2024, 5, 1, 22, 15), datetime(2024, 5, 2, 1, 5), "hour")
        assert [b.hour for b in buckets] == [22, 23, 0, 1]


class TestRateLimiter:

    def test_limit_per_key(self):
        limiter = RequestRateLimiter(2, 60)

        limiter.check("ip")
        limiter.check("ip")
        with pytest.raises(RateLimitError) as exc_info:
            limiter.check("ip")
        assert limiter.allow("other-ip")

        details = exc_info.value.details
        assert details["limit"] == 2
        assert 0 < details["retry_after"] <= 60

    def test_window_expires(self):
        limiter = RequestRateLimiter(1, 1)

        assert limiter.allow("ip")
        assert not limiter.allow("ip")
        clock.sleep(1.1)
        assert limiter.allow("ip")

    def test_expired_keys_are_released(self):
        limiter = RequestRateLimiter(5, 1)
        for i in range(500):
            limiter.allow(f"10.0.{i // 256}.{i % 256}")
        assert limiter.tracked_keys() == 500

        clock.sleep(1.1)
        limiter.allow("203.0.113.9")
        clock.sleep(0.2)

        assert limiter.tracked_keys() <= 1

    def test_reset(self):
        limiter = RequestRateLimiter(1, 60)
        limiter.allow("ip")
        limiter.reset()
        assert limiter.allow("ip")


class FakeCityReader:
    """按 IP 返回固定城市，其余地址视为库中不存在"""

    def __init__(self, cities):
        self.cities = cities
        self.closed = False

    def city(self, ip):
        if ip == "not-an-ip":
            raise ValueError(ip)
        if ip not in self.cities:
            raise geoip2.errors.AddressNotFoundError(f"{ip} not found")
        name, iso_code = self.cities[ip]
        return SimpleNamespace(city=SimpleNamespace(name=name),
                               country=SimpleNamespace(iso_code=iso_code))

    def close(self):
        self.closed = True


class TestGeoLocator:
    """IP 地理位置"""

    def test_database_lookup(self):
        locator = GeoLocator(FakeCityReader({"203.0.113.5": ("Lyon", "FR")}))
        assert locator.lookup("203.0.113.5") == ("Lyon", "FR")

    def test_database_wins_over_headers(self):
        locator = GeoLocator(FakeCityReader({"203.0.113.5": ("Lyon", "FR")}))
        assert locator.lookup("203.0.113.5", "Paris", "FR") == ("Lyon", "FR")

    def test_unknown_address_uses_headers(self):
        locator = GeoLocator(FakeCityReader({}))
        assert locator.lookup("10.0.0.1", "Paris", "FR") == ("Paris", "FR")
        assert locator.lookup("not-an-ip") == (None, None)

    def test_country_only_record_keeps_header_city(self):
        locator = GeoLocator(FakeCityReader({"203.0.113.7": (None, "FR")}))
        assert locator.lookup("203.0.113.7", "Nice", None) == ("Nice", "FR")

    def test_without_database_uses_headers(self):
        locator = open_geo_locator(None)
        assert not locator.enabled
        assert locator.lookup("203.0.113.5", "Lyon", "FR") == ("Lyon", "FR")
        assert locator.lookup("203.0.113.5") == (None, None)

    def test_missing_database_file_falls_back(self, tmp_path):
        locator = open_geo_locator(str(tmp_path / "missing.mmdb"))
        assert not locator.enabled

    def test_close(self):
        reader = FakeCityReader({})
        locator = GeoLocator(reader)
        locator.close()
        assert reader.closed
        assert not locator.enabled


class TestTrackAPI:
    """访问上报"""

    def test_track_records_hit(self, client, test_db):
        response = client.post(
            "/api/track",
            json={"path": "/menu", "session_id": "s-1"},
            headers={
                "User-Agent": CHROME_UA,
                "Referer": "https://www.google.com/?utm_source=google&utm_medium=cpc",
                "X-Forwarded-For": "203.0.113.5",
                "CF-IPCity": "Lyon",
                "CF-IPCountry": "FR",
            }
        )

        assert response.status_code == 204
        row = test_db.fetch_dict("SELECT * FROM hits")
        assert row["path"] == "/menu"
        assert row["utm_source"] == "google"
        assert row["utm_medium"] == "cpc"
        assert row["browser"] == "Chrome"
        assert row["os"].startswith("Windows")
        assert row["city"] == "Lyon"
        assert row["country"] == "FR"
        assert row["session_id"] == "s-1"
        assert row["ip_hash"] == hash_ip("203.0.113.5")
        assert row["is_bot"] is False

    def test_track_geolocates_client_ip(self, app_instance, client, test_db):
        app_instance.state.geo_locator = GeoLocator(
            FakeCityReader({"198.51.100.20": ("Grenoble", "FR")})
        )

        client.post("/api/track", json={"path": "/"}, headers={"X-Forwarded-For": "198.51.100.20"})
        client.post(
            "/api/track", json={"path": "/menu"},
            headers={"X-Forwarded-For": "10.0.0.8", "CF-IPCity": "Annecy", "CF-IPCountry": "FR"}
        )

        rows = test_db.fetch_dicts("SELECT path, city, country FROM hits ORDER BY path")
        assert rows == [
            {"path": "/", "city": "Grenoble", "country": "FR"},
            {"path": "/menu", "city": "Annecy", "country": "FR"},
        ]

    def test_track_without_body(self, client, test_db):
        response = client.post("/api/track", headers={"User-Agent": BOT_UA})

        assert response.status_code == 204
        row = test_db.fetch_dict("SELECT path, is_bot FROM hits")
        assert row == {"path": "/api/track", "is_bot": True}

    def test_track_session_cookie_wins(self, app_instance, test_db):
        from fastapi.testclient import TestClient

        client = TestClient(app_instance, cookies={"sid": "cookie-session"})
        client.post("/api/track", json={"path": "/", "session_id": "body-session"})

        assert test_db.fetch_dict("SELECT session_id FROM hits")["session_id"] == "cookie-session"

    def test_track_malformed_body_still_204(self, client, test_db):
        response = client.post(
            "/api/track", content=b"not json", headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 204
        assert test_db.execute_one("SELECT COUNT(*) FROM hits")[0] == 1

    def test_track_rate_limited(self, app_instance, client):
        app_instance.state.track_limiter = RequestRateLimiter(2, 60)

        responses = [client.post("/api/track", json={"path": "/"}) for _ in range(3)]

        assert [r.status_code for r in responses] == [204, 204, 429]
        assert responses[-1].json()["error_code"] == "RATE_LIMITED"
        assert responses[-1].headers["retry-after"] == "60"


class TestAnalyticsAdminAPI:
    """后台统计"""

    @pytest.fixture
    def hits(self, test_db):
        service = AnalyticsService(test_db)
        for hour, path, session, city in (
            (9, "/", "a", "Lyon"),
            (10, "/", "a", "Lyon"),
            (11, "/menu", "b", None),
        ):
            service.record_hit(path, session_id=session, city=city, country="FR" if city else None,
                               user_agent=CHROME_UA, created_at=datetime(2024, 5, 1, hour))
        service.record_hit("/", user_agent=BOT_UA, created_at=datetime(2024, 5, 1, 12))
        service.record_hit("/gallery", user_agent=CHROME_UA, created_at=datetime(2024, 5, 3, 8))

    def test_summary(self, admin_client, hits):
        response = admin_client.get(
            "/api/admin/analytics/summary", params={"from": "2024-05-01", "to": "2024-05-01"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 3
        assert data["uniques"] == 2
        assert data["top_pages"][0] == {"path": "/", "hits": 2}
        assert {"city": "Unknown", "country": "--", "hits": 1} in data["top_cities"]
        assert data["range"]["from"].startswith("2024-05-01T00:00:00")

    def test_series_by_day_zero_fills(self, admin_client, hits):
        response = admin_client.get(
            "/api/admin/analytics/series", params={"from": "2024-05-01", "to": "2024-05-03"}
        )

        assert response.status_code == 200
        assert [p["hits"] for p in response.json()] == [3, 0, 1]
        assert response.json()[1]["bucket"].startswith("2024-05-02T00:00:00")

    def test_series_by_hour(self, admin_client, hits):
        data = admin_client.get(
            "/api/admin/analytics/series",
            params={"from": "2024-05-01", "to": "2024-05-01", "bucket": "hour"}
        ).json()

        assert len(data) == 24
        assert [p["hits"] for p in data[9:13]] == [1, 1, 1, 0]

    def test_unknown_bucket_falls_back_to_day(self, admin_client, hits):
        data = admin_client.get(
            "/api/admin/analytics/series",
            params={"from": "2024-05-01", "to": "2024-05-03", "bucket": "week"}
        ).json()
        assert len(data) == 3
