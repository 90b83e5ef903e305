"""
Load plugin scripts into isolated namespaces
"""

import logging
from pathlib import Path
from typing import Any, Dict

from pydantic import ValidationError

from .base import (
    CAPABILITY_NAMES,
    METADATA_FIELDS,
    STRING_FIELDS,
    HostApi,
    Plugin,
    PluginInstance,
    PluginMetadata,
)
from .errors import PluginUnparseable
from .identity import derive_identity, is_valid_identity
from .local import LOCAL_PLUGIN_NAME

logger = logging.getLogger(__name__)

DEFAULT_APP_VERSION = "0.1.0"


def _script_logger(origin_path: str) -> logging.Logger:
    label = Path(origin_path).stem if origin_path else "inline"
    return logging.getLogger(f"plugins.script.{label}")


def _execute(source: str, origin_path: str, app_version: str) -> Dict[str, Any]:
    """Run the script in a fresh namespace and return it"""
    script_logger = _script_logger(origin_path)
    namespace: Dict[str, Any] = {
        "__name__": "plugin_script",
        "__file__": origin_path or "<plugin>",
        "host": HostApi(app_version=app_version, logger=script_logger),
        "logger": script_logger,
    }
    code = compile(source, origin_path or "<plugin>", "exec")
    exec(code, namespace)
    return namespace


def _extract_metadata(namespace: Dict[str, Any]) -> PluginMetadata:
    declared = {k: namespace[k] for k in METADATA_FIELDS if k in namespace}

    for key in STRING_FIELDS:
        if key in declared and declared[key] is not None and not isinstance(declared[key], str):
            raise PluginUnparseable(f"Metadata field '{key}' must be a string")

    platform = declared.pop("platform", None)
    if not platform or not platform.strip():
        raise PluginUnparseable("Plugin does not declare a platform")
    if platform.strip() == LOCAL_PLUGIN_NAME:
        raise PluginUnparseable(f"Platform '{LOCAL_PLUGIN_NAME}' is reserved for the built-in plugin")

    return PluginMetadata(
        platform=platform.strip(),
        version=declared.pop("version", None) or "",
        src_url=declared.pop("src_url", None) or "",
        author=declared.pop("author", None) or "",
        description=declared.pop("description", None) or "",
        extra=declared,
    )


def _extract_capabilities(namespace: Dict[str, Any]) -> Dict[str, Any]:
    capabilities = {}
    for name in CAPABILITY_NAMES:
        if name not in namespace:
            continue
        func = namespace[name]
        if not callable(func):
            raise PluginUnparseable(f"Capability '{name}' is not callable")
        capabilities[name] = func
    return capabilities


def load_plugin(
    source: str,
    origin_path: str = "",
    app_version: str = DEFAULT_APP_VERSION,
) -> Plugin:
    """
    Load a plugin from raw source text.

    Args:
        source: Script text
        origin_path: File the source was read from, empty if not persisted
        app_version: Host version exposed to the script

    Raises:
        PluginUnparseable: The source is empty, fails to execute or does
            not declare a well-formed plugin
    """
    identity = derive_identity(source)
    if not is_valid_identity(identity):
        raise PluginUnparseable("Plugin source is empty")

    try:
        namespace = _execute(source, origin_path, app_version)
    except (Exception, SystemExit) as e:
        # Scripts may call exit() at module level
        raise PluginUnparseable(f"Plugin script failed to load: {e}") from e

    instance = PluginInstance(
        metadata=_extract_metadata(namespace),
        capabilities=_extract_capabilities(namespace),
    )
    plugin = Plugin(identity=identity, instance=instance, path=origin_path)

    # Snapshot schema validates the optional metadata types
    try:
        plugin.to_snapshot()
    except ValidationError as e:
        raise PluginUnparseable(f"Plugin metadata is malformed: {e}") from e

    return plugin
