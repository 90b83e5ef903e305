"""
Built-in plugin for media files on the local filesystem.

Always available and never stored in the registry; it is resolved only
through the LOCAL_PLUGIN_HASH / LOCAL_PLUGIN_NAME pair.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from .base import Plugin, PluginInstance, PluginMetadata

logger = logging.getLogger(__name__)

LOCAL_PLUGIN_HASH = "local-plugin-hash"
LOCAL_PLUGIN_NAME = "local"


def _local_path(music_item: Dict[str, Any]) -> Optional[Path]:
    raw = (music_item or {}).get("local_path")
    return Path(raw) if raw else None


def get_media_source(music_item: Dict[str, Any], quality: str = "standard") -> Optional[Dict[str, Any]]:
    path = _local_path(music_item)
    if path is None:
        return None
    return {"url": path.resolve().as_uri(), "quality": quality}


def get_music_info(music_item: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    path = _local_path(music_item)
    if path is None:
        return None
    return {
        "platform": LOCAL_PLUGIN_NAME,
        "id": str(path),
        "title": music_item.get("title") or path.stem,
        "local_path": str(path),
    }


def get_lyric(music_item: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Read a .lrc file sitting next to the media file"""
    path = _local_path(music_item)
    if path is None:
        return None

    lrc_path = path.with_suffix(".lrc")
    if not lrc_path.is_file():
        return None

    try:
        return {"raw_lrc": lrc_path.read_text(encoding="utf-8")}
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"Failed to read lyric {lrc_path}: {e}")
        return None


local_plugin = Plugin(
    identity=LOCAL_PLUGIN_HASH,
    instance=PluginInstance(
        metadata=PluginMetadata(platform=LOCAL_PLUGIN_NAME, description="Local media files"),
        capabilities={
            "get_media_source": get_media_source,
            "get_music_info": get_music_info,
            "get_lyric": get_lyric,
        },
    ),
)


def is_local_target(identity: Optional[str], platform: Optional[str]) -> bool:
    return identity == LOCAL_PLUGIN_HASH or platform == LOCAL_PLUGIN_NAME
