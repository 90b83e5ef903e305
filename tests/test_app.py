"""
Tests for configuration and application startup.
"""

from fastapi.testclient import TestClient

from config import AppConfig, PluginsConfig
from routers import plugins as plugins_router

from conftest import make_source, write_plugin


class TestConfig:
    """Test environment-driven configuration."""

    def test_defaults(self, monkeypatch):
        for name in (
            "PLUGINS_MANAGED_DIR",
            "PLUGINS_BUNDLED_DIR",
            "PLUGINS_CHECK_VERSION",
            "PLUGINS_FETCH_TIMEOUT",
            "PLUGINS_UPDATE_CONCURRENCY",
            "APP_VERSION",
            "LOG_LEVEL",
        ):
            monkeypatch.delenv(name, raising=False)

        cfg = AppConfig.from_env()

        assert cfg.plugins == PluginsConfig()
        assert cfg.app_version == "0.1.0"
        assert cfg.log_level == "INFO"

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("PLUGINS_MANAGED_DIR", "/srv/plugins")
        monkeypatch.setenv("PLUGINS_CHECK_VERSION", "false")
        monkeypatch.setenv("PLUGINS_FETCH_TIMEOUT", "5")
        monkeypatch.setenv("PLUGINS_UPDATE_CONCURRENCY", "2")
        monkeypatch.setenv("LOG_LEVEL", "debug")

        cfg = AppConfig.from_env()

        assert cfg.plugins.managed_dir == "/srv/plugins"
        assert cfg.plugins.check_version is False
        assert cfg.plugins.fetch_timeout == 5.0
        assert cfg.plugins.update_concurrency == 2
        assert cfg.log_level == "DEBUG"


class TestLifespan:
    """Test the application startup and shutdown wiring."""

    def test_startup_loads_plugins(self, monkeypatch, managed_dir, bundled_dir):
        import main

        monkeypatch.setattr(main.config.plugins, "managed_dir", str(managed_dir))
        monkeypatch.setattr(main.config.plugins, "bundled_dir", str(bundled_dir))
        write_plugin(bundled_dir, "x.py", make_source("X"))

        with TestClient(main.app) as client:
            assert client.get("/health").json() == {"status": "healthy"}
            plugins = client.get("/api/plugins/").json()
            assert [p["platform"] for p in plugins] == ["X"]
            assert managed_dir.is_dir()

        response = TestClient(main.app).get("/api/plugins/")
        assert response.status_code == 503
        assert plugins_router.broadcaster.client_count == 0
