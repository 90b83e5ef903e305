"""
Plugin Host - Plugin Registry Service
Discovers, installs, updates and invokes user-extensible plugin scripts.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from config import config
from plugins import PluginFetcher, PluginManager, PluginRegistry
from routers import plugins as plugins_router

# Configure logging
logging.basicConfig(
    level=getattr(logging, config.log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: build the registry and load plugins
    registry = PluginRegistry()
    registry.subscribe(plugins_router.broadcaster)

    plugin_manager = PluginManager(
        managed_dir=config.plugins.managed_dir,
        bundled_dir=config.plugins.bundled_dir,
        registry=registry,
        fetcher=PluginFetcher(timeout=config.plugins.fetch_timeout),
        check_version=config.plugins.check_version,
        update_concurrency=config.plugins.update_concurrency,
        app_version=config.app_version,
    )
    plugins_router.set_plugin_manager(plugin_manager)

    snapshots = await plugin_manager.setup()
    logger.info(f"Plugin Host started: {len(snapshots)} plugins loaded")

    yield

    # Shutdown: release the fetcher and drop the registry
    plugins_router.set_plugin_manager(None)
    await plugin_manager.close()
    logger.info("Plugin Host stopped")

app = FastAPI(
    title="Plugin Host",
    description="Registry and lifecycle management for user-installed plugins",
    version=config.app_version,
    lifespan=lifespan
)

app.include_router(plugins_router.router, prefix="/api/plugins", tags=["plugins"])

@app.get("/")
async def root():
    return {
        "service": "Plugin Host",
        "version": config.app_version,
        "status": "operational"
    }

@app.get("/health")
async def health_check():
    return {"status": "healthy"}
