"""
Plugin error taxonomy
"""


class PluginError(Exception):
    """Base class for plugin registry and lifecycle errors"""


class PluginUnparseable(PluginError):
    """Source could not be loaded or does not declare a valid plugin"""


class OlderVersionRejected(PluginError):
    """Install would replace a newer installed version"""

    def __init__(self, name: str, installed: str, incoming: str):
        self.name = name
        self.installed = installed
        self.incoming = incoming
        super().__init__(
            f"A newer version of plugin '{name}' is already installed "
            f"({installed} > {incoming})"
        )


class FetchFailed(PluginError):
    """Remote retrieval failed; carries the underlying message"""


class FileIOError(PluginError):
    """Writing or deleting a plugin file failed"""


class UnsupportedSource(PluginError):
    """Install source is neither a plugin script nor a manifest"""
