"""
Plugin Host Plugin System

Manages user-extensible plugin scripts with:
- Content-hash identities and schema-checked script loading
- Discovery from managed and bundled directories
- Install, upgrade, uninstall and bulk update with failure isolation
- Snapshot publishing for the API boundary
"""

from .base import Plugin, PluginInstance, PluginMetadata, PluginSnapshot, HostApi
from .errors import (
    PluginError,
    PluginUnparseable,
    OlderVersionRejected,
    FetchFailed,
    FileIOError,
    UnsupportedSource,
)
from .identity import INVALID_IDENTITY, derive_identity
from .loader import load_plugin
from .discovery import discover_all_plugins
from .fetch import PluginFetcher
from .local import LOCAL_PLUGIN_HASH, LOCAL_PLUGIN_NAME, local_plugin
from .manager import InstallOutcome, PluginManager
from .registry import PluginRegistry

__all__ = [
    "Plugin",
    "PluginInstance",
    "PluginMetadata",
    "PluginSnapshot",
    "HostApi",
    "PluginError",
    "PluginUnparseable",
    "OlderVersionRejected",
    "FetchFailed",
    "FileIOError",
    "UnsupportedSource",
    "INVALID_IDENTITY",
    "derive_identity",
    "load_plugin",
    "discover_all_plugins",
    "PluginFetcher",
    "LOCAL_PLUGIN_HASH",
    "LOCAL_PLUGIN_NAME",
    "local_plugin",
    "InstallOutcome",
    "PluginManager",
    "PluginRegistry",
]
