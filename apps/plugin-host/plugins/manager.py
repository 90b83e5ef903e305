"""
Plugin manager for lifecycle management
"""

import asyncio
import json
import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional, Sequence

from packaging.version import InvalidVersion, Version

from .base import Plugin, PluginSnapshot
from .discovery import PLUGIN_SUFFIX, discover_all_plugins, ensure_plugin_directory
from .errors import (
    FileIOError,
    OlderVersionRejected,
    PluginError,
    PluginUnparseable,
    UnsupportedSource,
)
from .fetch import PluginFetcher
from .loader import DEFAULT_APP_VERSION, load_plugin
from .registry import PluginRegistry

logger = logging.getLogger(__name__)

MANIFEST_SUFFIX = ".json"
DEFAULT_UPDATE_CONCURRENCY = 4


@dataclass
class InstallOutcome:
    """Settled result of one install attempt within a bulk operation"""
    target: str
    success: bool
    identity: Optional[str] = None
    error: Optional[str] = None


def parse_version(raw: str) -> Version:
    """Parse a plugin version; missing or malformed versions sort lowest"""
    try:
        return Version((raw or "").strip() or "0")
    except InvalidVersion:
        logger.debug(f"Unparseable plugin version '{raw}', treating as 0")
        return Version("0")


def is_newer(installed: str, incoming: str) -> bool:
    """True when installed is strictly newer than incoming"""
    return parse_version(installed) > parse_version(incoming)


def manifest_urls(manifest: Any) -> List[str]:
    """Extract plugin URLs from a manifest, skipping malformed entries"""
    if not isinstance(manifest, dict):
        raise PluginUnparseable("Plugin manifest must be a JSON object")

    entries = manifest.get("plugins") or []
    if not isinstance(entries, list):
        raise PluginUnparseable("Plugin manifest 'plugins' must be a list")

    urls = []
    for entry in entries:
        url = entry.get("url") if isinstance(entry, dict) else None
        if isinstance(url, str) and url.strip():
            urls.append(url.strip())
        else:
            logger.warning(f"Skipping malformed manifest entry: {entry!r}")
    return urls


class PluginManager:
    """
    Manages plugin discovery, installation and removal.

    Lifecycle:
    1. refresh() - Scan managed and bundled directories and publish
    2. install_remote() / install_local() - Add or upgrade plugins
    3. uninstall() / update_all() - Remove or refresh installed plugins
    4. close() - Release network resources and drop the registry

    Registry mutations are serialized; network fetches run outside the lock
    so bulk operations overlap their downloads.
    """

    def __init__(
        self,
        managed_dir: str,
        bundled_dir: Optional[str] = None,
        registry: Optional[PluginRegistry] = None,
        fetcher: Optional[PluginFetcher] = None,
        check_version: bool = True,
        update_concurrency: int = DEFAULT_UPDATE_CONCURRENCY,
        app_version: str = DEFAULT_APP_VERSION,
    ):
        self.managed_dir = Path(managed_dir)
        self.bundled_dir = Path(bundled_dir) if bundled_dir else None
        self.registry = registry or PluginRegistry()
        self.fetcher = fetcher or PluginFetcher()
        self.check_version = check_version
        self.update_concurrency = max(1, update_concurrency)
        self.app_version = app_version

        self._lock = asyncio.Lock()

    async def setup(self) -> List[PluginSnapshot]:
        """Prepare the managed directory and load all plugins"""
        ensure_plugin_directory(str(self.managed_dir), replace_non_directory=True)
        return await self.refresh()

    async def close(self) -> None:
        await self.fetcher.close()
        self.registry.clear()

    def get_all_plugins(self) -> List[PluginSnapshot]:
        return self.registry.snapshots()

    def is_managed(self, plugin: Plugin) -> bool:
        """True when the plugin file lives in the managed directory"""
        if not plugin.path:
            return False
        try:
            return Path(plugin.path).resolve().parent == self.managed_dir.resolve()
        except OSError:
            return False

    async def refresh(self) -> List[PluginSnapshot]:
        """Rescan plugin directories, managed first, and publish the result"""
        directories = [str(self.managed_dir)]
        if self.bundled_dir is not None:
            directories.append(str(self.bundled_dir))

        async with self._lock:
            plugins = discover_all_plugins(directories, self.app_version)
            snapshots = self.registry.publish(plugins)

        logger.info(f"Loaded {len(snapshots)} plugins")
        return snapshots

    async def call_plugin_method(
        self,
        identity: Optional[str],
        platform: Optional[str],
        method: str,
        args: Sequence[Any] = (),
    ) -> Any:
        """
        Invoke a capability on the resolved plugin.

        Returns None when no plugin resolves or it lacks the method.
        """
        plugin = self.registry.resolve_target(identity, platform)
        if plugin is None or not plugin.supports(method):
            logger.debug(f"No plugin handles {method} (hash={identity}, platform={platform})")
            return None

        result = plugin.invoke(method, *args)
        if asyncio.iscoroutine(result):
            result = await result
        return result

    async def install_from_source(self, source: str) -> Plugin:
        """
        Install a plugin from raw script text.

        Returns the registered plugin, which is the existing entry when the
        same source is already installed.

        Raises:
            PluginUnparseable: The source does not load
            OlderVersionRejected: A newer version is installed
            FileIOError: The script could not be written
        """
        plugin = load_plugin(source, "", self.app_version)

        async with self._lock:
            existing = self.registry.find_by_identity(plugin.identity)
            if existing is not None:
                logger.debug(f"Plugin already installed: {plugin.name} ({plugin.identity[:12]})")
                return existing

            old_version = self.registry.find_by_name(plugin.name)
            if (
                old_version is not None
                and self.check_version
                and is_newer(old_version.version, plugin.version)
            ):
                raise OlderVersionRejected(plugin.name, old_version.version, plugin.version)

            target = self.managed_dir / f"{uuid.uuid4().hex}{PLUGIN_SUFFIX}"
            try:
                ensure_plugin_directory(str(self.managed_dir), replace_non_directory=True)
                target.write_text(source, encoding="utf-8")
            except OSError as e:
                raise FileIOError(f"Failed to write plugin {plugin.name}: {e}") from e

            # The first same-name entry plus any managed copies of that name
            superseded = [
                p for p in self.registry.plugins
                if p.name == plugin.name and (p is old_version or self.is_managed(p))
            ]
            superseded_ids = {p.identity for p in superseded}

            installed = plugin.with_path(str(target.resolve()))
            new_plugins = [p for p in self.registry.plugins if p.identity not in superseded_ids]
            new_plugins.append(installed)
            self.registry.publish(new_plugins)

            if old_version is not None:
                logger.info(
                    f"Replaced plugin {plugin.name} v{old_version.version or '?'} "
                    f"with v{plugin.version or '?'}"
                )
            else:
                logger.info(f"Installed plugin {plugin.name} v{plugin.version or '?'}")

            for stale in superseded:
                self._discard_file(stale)

        return installed

    def _discard_file(self, plugin: Plugin) -> None:
        """Best-effort removal of a superseded plugin file"""
        if not self.is_managed(plugin):
            return
        try:
            Path(plugin.path).unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Could not remove superseded plugin file {plugin.path}: {e}")

    async def install_from_url(self, url: str) -> Plugin:
        source = await self.fetcher.fetch_text(url)
        return await self.install_from_source(source)

    async def install_remote(self, url_like: str) -> List[InstallOutcome]:
        """
        Install from a script URL or a manifest URL.

        A single script install raises on failure. Manifest entries are
        installed independently and reported as outcomes.
        """
        url = url_like.strip()
        if url.endswith(PLUGIN_SUFFIX):
            plugin = await self.install_from_url(url)
            return [InstallOutcome(target=url, success=True, identity=plugin.identity)]

        if url.endswith(MANIFEST_SUFFIX):
            manifest = await self.fetcher.fetch_json(url)
            return await self._install_urls(manifest_urls(manifest))

        raise UnsupportedSource(f"Unsupported plugin source: {url}")

    async def install_local(self, path_like: str) -> List[InstallOutcome]:
        """
        Install from a local script or a local manifest of remote URLs.
        """
        path = path_like.strip()
        if not path.endswith((PLUGIN_SUFFIX, MANIFEST_SUFFIX)):
            raise UnsupportedSource(f"Unsupported plugin source: {path}")

        try:
            text = Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise FileIOError(f"Failed to read {path}: {e}") from e

        if path.endswith(PLUGIN_SUFFIX):
            plugin = await self.install_from_source(text)
            return [InstallOutcome(target=path, success=True, identity=plugin.identity)]

        try:
            manifest = json.loads(text)
        except ValueError as e:
            raise PluginUnparseable(f"Invalid plugin manifest {path}: {e}") from e
        return await self._install_urls(manifest_urls(manifest))

    async def uninstall(self, identity: str) -> bool:
        """
        Remove a plugin and its file.

        Returns False when nothing matched.

        Raises:
            FileIOError: The file could not be deleted; the registry is
                left unchanged
        """
        async with self._lock:
            plugin = self.registry.find_by_identity(identity)
            if plugin is None:
                return False

            if self.is_managed(plugin):
                try:
                    Path(plugin.path).unlink(missing_ok=True)
                except OSError as e:
                    raise FileIOError(f"Failed to delete {plugin.path}: {e}") from e
            else:
                logger.info(f"Plugin {plugin.name} is not in the managed directory; file left in place")

            self.registry.publish(
                [p for p in self.registry.plugins if p.identity != identity]
            )

        logger.info(f"Uninstalled plugin {plugin.name} v{plugin.version or '?'}")
        return True

    async def update_all(self) -> List[InstallOutcome]:
        """
        Reinstall every plugin that has an origin URL.

        Each attempt settles on its own; failures never abort siblings.
        """
        urls = [p.src_url for p in self.registry.plugins if p.src_url]
        return await self._install_urls(urls)

    async def _install_urls(self, urls: Sequence[str]) -> List[InstallOutcome]:
        semaphore = asyncio.Semaphore(self.update_concurrency)

        async def attempt(url: str) -> InstallOutcome:
            async with semaphore:
                try:
                    plugin = await self.install_from_url(url)
                except PluginError as e:
                    logger.warning(f"Install from {url} failed: {e}")
                    return InstallOutcome(target=url, success=False, error=str(e))
                except Exception as e:
                    logger.error(f"Unexpected error installing from {url}: {e}")
                    return InstallOutcome(target=url, success=False, error=str(e))
            return InstallOutcome(target=url, success=True, identity=plugin.identity)

        return list(await asyncio.gather(*(attempt(url) for url in urls)))
