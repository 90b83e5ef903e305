"""
Configuration settings for the Plugin Host
"""

import os
from dataclasses import dataclass, field


@dataclass
class PluginsConfig:
    """Plugin directories and lifecycle behaviour"""
    managed_dir: str = "./data/plugins"
    bundled_dir: str = "./bundled_plugins"
    check_version: bool = True
    fetch_timeout: float = 30.0  # seconds, per fetch
    update_concurrency: int = 4

    @classmethod
    def from_env(cls) -> "PluginsConfig":
        return cls(
            managed_dir=os.getenv("PLUGINS_MANAGED_DIR", "./data/plugins"),
            bundled_dir=os.getenv("PLUGINS_BUNDLED_DIR", "./bundled_plugins"),
            check_version=os.getenv("PLUGINS_CHECK_VERSION", "true").lower() == "true",
            fetch_timeout=float(os.getenv("PLUGINS_FETCH_TIMEOUT", "30.0")),
            update_concurrency=int(os.getenv("PLUGINS_UPDATE_CONCURRENCY", "4")),
        )


@dataclass
class AppConfig:
    """Main application configuration"""
    plugins: PluginsConfig = field(default_factory=PluginsConfig)
    app_version: str = "0.1.0"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "AppConfig":
        return cls(
            plugins=PluginsConfig.from_env(),
            app_version=os.getenv("APP_VERSION", "0.1.0"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


# Global config instance
config = AppConfig.from_env()
