"""
Plugin discovery from local directories
"""

import logging
import shutil
from pathlib import Path
from typing import Iterable, List, Optional, Set

from .base import Plugin
from .errors import PluginUnparseable
from .loader import DEFAULT_APP_VERSION, load_plugin

logger = logging.getLogger(__name__)

PLUGIN_SUFFIX = ".py"


def ensure_plugin_directory(plugins_dir: str, replace_non_directory: bool = False) -> Path:
    """
    Make sure a plugin directory exists.

    A path occupied by something other than a directory is removed and
    recreated only when replace_non_directory is set.
    """
    plugins_path = Path(plugins_dir)

    if plugins_path.exists() and not plugins_path.is_dir():
        if not replace_non_directory:
            logger.warning(f"Plugins path is not a directory: {plugins_dir}")
            return plugins_path
        logger.warning(f"Replacing non-directory plugins path: {plugins_dir}")
        if plugins_path.is_symlink() or plugins_path.is_file():
            plugins_path.unlink()
        else:
            shutil.rmtree(plugins_path)

    if not plugins_path.exists():
        logger.debug(f"Creating plugins directory: {plugins_dir}")
        plugins_path.mkdir(parents=True, exist_ok=True)

    return plugins_path


def discover_directory_plugins(
    plugins_dir: str,
    seen: Set[str],
    app_version: str = DEFAULT_APP_VERSION,
) -> List[Plugin]:
    """
    Load every plugin script in a directory.

    Identities already in seen are skipped; new ones are added to it.
    """
    plugins: List[Plugin] = []
    plugins_path = ensure_plugin_directory(plugins_dir)

    if not plugins_path.is_dir():
        return plugins

    try:
        items = sorted(plugins_path.iterdir())
    except OSError as e:
        logger.error(f"Failed to list plugins directory {plugins_dir}: {e}")
        return plugins

    for item in items:
        if not item.is_file() or item.suffix != PLUGIN_SUFFIX:
            continue

        try:
            source = item.read_text(encoding="utf-8")
            plugin = load_plugin(source, str(item.resolve()), app_version)
        except (OSError, UnicodeDecodeError, PluginUnparseable) as e:
            logger.error(f"Failed to load plugin {item.name}: {e}")
            continue

        if plugin.identity in seen:
            logger.debug(f"Skipping duplicate plugin {item.name}")
            continue

        seen.add(plugin.identity)
        plugins.append(plugin)
        logger.info(f"Discovered plugin: {plugin.name} v{plugin.version or '?'} ({item.name})")

    return plugins


def discover_all_plugins(
    directories: Iterable[str],
    app_version: str = DEFAULT_APP_VERSION,
    seen: Optional[Set[str]] = None,
) -> List[Plugin]:
    """
    Scan directories in order, deduplicating by identity across all of them.

    The first occurrence of an identity wins, so earlier directories shadow
    later ones.
    """
    seen = set() if seen is None else seen
    plugins: List[Plugin] = []

    for plugins_dir in directories:
        plugins.extend(discover_directory_plugins(plugins_dir, seen, app_version))

    return plugins
