"""
Plugin base classes and data structures
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Optional, List, Dict, Any, Callable, Tuple

from pydantic import BaseModel, ConfigDict


# Capability methods a plugin script may define at module level
CAPABILITY_NAMES: Tuple[str, ...] = (
    "search",
    "get_media_source",
    "get_music_info",
    "get_lyric",
    "get_album_info",
    "get_artist_works",
    "get_music_sheet_info",
    "import_music_sheet",
    "import_music_item",
    "get_top_lists",
    "get_top_list_detail",
    "get_recommend_sheet_tags",
    "get_recommend_sheets_by_tag",
    "get_music_comments",
)

# Metadata names a plugin script may define at module level
METADATA_FIELDS: Tuple[str, ...] = (
    "platform",
    "version",
    "src_url",
    "author",
    "description",
    "app_version",
    "primary_key",
    "supported_search_type",
    "default_search_type",
    "cache_control",
    "hints",
    "user_variables",
)

# Fields that must be strings when declared
STRING_FIELDS: Tuple[str, ...] = ("platform", "version", "src_url", "author", "description")


@dataclass(frozen=True)
class PluginMetadata:
    """Metadata declared by a plugin"""
    platform: str
    version: str = ""
    src_url: str = ""
    author: str = ""
    description: str = ""
    extra: Dict[str, Any] = field(default_factory=dict)  # Remaining METADATA_FIELDS

    @property
    def name(self) -> str:
        """Logical plugin name, shared across versions"""
        return self.platform


@dataclass
class HostApi:
    """Host API injected into every plugin script"""
    app_version: str
    logger: logging.Logger


@dataclass(frozen=True)
class PluginInstance:
    """Loaded plugin: declared metadata plus bound capability callables"""
    metadata: PluginMetadata
    capabilities: Dict[str, Callable[..., Any]] = field(default_factory=dict)

    @property
    def supported_methods(self) -> List[str]:
        return [name for name in CAPABILITY_NAMES if name in self.capabilities]


@dataclass(frozen=True)
class Plugin:
    """
    A registry entry.

    identity is a content hash of the source; path is empty until the
    source has been persisted to disk.
    """
    identity: str
    instance: PluginInstance
    path: str = ""

    @property
    def metadata(self) -> PluginMetadata:
        return self.instance.metadata

    @property
    def name(self) -> str:
        return self.instance.metadata.name

    @property
    def platform(self) -> str:
        return self.instance.metadata.platform

    @property
    def version(self) -> str:
        return self.instance.metadata.version

    @property
    def src_url(self) -> str:
        return self.instance.metadata.src_url

    def supports(self, method: str) -> bool:
        return method in self.instance.capabilities

    def invoke(self, method: str, *args: Any) -> Any:
        """
        Call a capability. Returns None when the plugin lacks it; errors
        raised by the capability propagate.
        """
        func = self.instance.capabilities.get(method)
        if func is None:
            return None
        return func(*args)

    def with_path(self, path: str) -> "Plugin":
        return replace(self, path=path)

    def to_snapshot(self) -> "PluginSnapshot":
        meta = self.instance.metadata
        return PluginSnapshot(
            hash=self.identity,
            path=self.path,
            platform=meta.platform,
            version=meta.version or None,
            src_url=meta.src_url or None,
            author=meta.author or None,
            description=meta.description or None,
            supported_method=self.instance.supported_methods,
            **meta.extra,
        )


class PluginSnapshot(BaseModel):
    """Serializable view of a plugin, safe to hand across the API boundary"""
    model_config = ConfigDict(frozen=True)

    hash: str
    path: str
    platform: str
    version: Optional[str] = None
    src_url: Optional[str] = None
    author: Optional[str] = None
    description: Optional[str] = None
    app_version: Optional[str] = None
    primary_key: Optional[List[str]] = None
    supported_search_type: Optional[List[str]] = None
    default_search_type: Optional[str] = None
    cache_control: Optional[str] = None
    hints: Optional[Dict[str, Any]] = None
    user_variables: Optional[List[Dict[str, Any]]] = None
    supported_method: List[str] = []
