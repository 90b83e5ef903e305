"""
In-memory plugin registry and snapshot publishing
"""

import logging
from typing import Callable, List, Optional, Sequence

from .base import Plugin, PluginSnapshot
from .identity import is_valid_identity
from .local import local_plugin, is_local_target

logger = logging.getLogger(__name__)

SnapshotListener = Callable[[List[PluginSnapshot]], None]


class PluginRegistry:
    """
    Authoritative list of active plugins.

    The plugin list is only ever replaced as a whole by publish(); readers
    always see either the previous or the new list. Every publish notifies
    each subscriber once with the fresh snapshot list.
    """

    def __init__(self):
        self._plugins: List[Plugin] = []
        self._snapshots: List[PluginSnapshot] = []
        self._listeners: List[SnapshotListener] = []
        self.publish_count = 0

    @property
    def plugins(self) -> List[Plugin]:
        """Current plugins, in insertion order"""
        return list(self._plugins)

    def __len__(self) -> int:
        return len(self._plugins)

    def publish(self, plugins: Sequence[Plugin]) -> List[PluginSnapshot]:
        """Replace the plugin set and notify subscribers"""
        new_plugins: List[Plugin] = []
        seen = set()
        for plugin in plugins:
            if not is_valid_identity(plugin.identity):
                logger.warning(f"Refusing to register plugin with invalid identity: {plugin.name}")
                continue
            if plugin.identity in seen:
                logger.warning(f"Dropping duplicate plugin identity: {plugin.identity}")
                continue
            seen.add(plugin.identity)
            new_plugins.append(plugin)

        snapshots = [p.to_snapshot() for p in new_plugins]

        self._plugins = new_plugins
        self._snapshots = snapshots
        self.publish_count += 1
        logger.debug(f"Published {len(snapshots)} plugins")

        self._notify(snapshots)
        return list(snapshots)

    def snapshots(self) -> List[PluginSnapshot]:
        """Snapshot list taken at the last publish"""
        return list(self._snapshots)

    def subscribe(self, listener: SnapshotListener) -> None:
        """Register a listener called with the snapshot list on every publish"""
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: SnapshotListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, snapshots: List[PluginSnapshot]) -> None:
        for listener in list(self._listeners):
            try:
                listener(list(snapshots))
            except Exception as e:
                logger.error(f"Error in snapshot listener {listener!r}: {e}")

    def find_by_identity(self, identity: str) -> Optional[Plugin]:
        for plugin in self._plugins:
            if plugin.identity == identity:
                return plugin
        return None

    def find_by_name(self, name: str) -> Optional[Plugin]:
        for plugin in self._plugins:
            if plugin.name == name:
                return plugin
        return None

    def find_by_platform(self, platform: str) -> Optional[Plugin]:
        for plugin in self._plugins:
            if plugin.platform == platform:
                return plugin
        return None

    def resolve_target(
        self,
        identity: Optional[str] = None,
        platform: Optional[str] = None,
    ) -> Optional[Plugin]:
        """
        Resolve a plugin for invocation.

        Order: the built-in local plugin, then an exact identity match, then
        a platform match when no identity was given.
        """
        if is_local_target(identity, platform):
            return local_plugin
        if identity:
            return self.find_by_identity(identity)
        if platform:
            return self.find_by_platform(platform)
        return None

    def clear(self) -> None:
        """Drop all plugins and listeners without notifying"""
        self._plugins = []
        self._snapshots = []
        self._listeners.clear()
