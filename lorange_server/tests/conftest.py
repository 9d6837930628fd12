"""
测试配置文件
提供测试所需的fixtures和配置
"""

import pytest
from fastapi.testclient import TestClient

from lorange_server.app import create_app
from lorange_server.config.settings import settings
from lorange_server.core.database import DatabaseManager
from lorange_server.services.auth_service import AuthService

ADMIN_EMAIL = "admin@lorange.test"
ADMIN_PASSWORD = "s3cret-pass"


@pytest.fixture
def test_settings(monkeypatch, tmp_path):
    """测试环境配置：上传目录放到临时目录"""
    monkeypatch.setattr(settings, "uploads_dir", str(tmp_path / "uploads"))
    monkeypatch.setattr(settings, "jwt_secret_key", "test-secret-key-for-lorange-server-suite")
    monkeypatch.setattr(settings, "ip_hash_salt", "test-salt")
    monkeypatch.setattr(settings, "geoip_database_path", None)
    return settings


@pytest.fixture
def test_db():
    """测试数据库（内存）"""
    db_manager = DatabaseManager(":memory:")
    db_manager.init_database()

    yield db_manager

    db_manager.close()


@pytest.fixture
def app_instance(test_settings, test_db):
    """测试应用"""
    return create_app(test_db)


@pytest.fixture
def client(app_instance):
    """未登录的测试客户端"""
    return TestClient(app_instance)


@pytest.fixture
def admin_user(test_db):
    """管理员用户"""
    return AuthService(test_db).upsert_admin(ADMIN_EMAIL, ADMIN_PASSWORD)


@pytest.fixture
def admin_client(app_instance, admin_user):
    """已登录管理员的测试客户端，令牌保存在 Cookie 中"""
    admin = TestClient(app_instance)
    response = admin.post("/api/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert response.status_code == 200
    return admin
