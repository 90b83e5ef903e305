"""
Shared fixtures for plugin host tests.
"""

from pathlib import Path
from typing import Dict, Optional, Union

import httpx
import pytest

from plugins import PluginFetcher, PluginManager, PluginRegistry


def make_source(
    platform: str,
    version: str = "1.0.0",
    src_url: Optional[str] = None,
    body: str = "",
) -> str:
    """Build a plugin script declaring the given metadata"""
    lines = [f'platform = "{platform}"', f'version = "{version}"']
    if src_url:
        lines.append(f'src_url = "{src_url}"')
    lines.append("")
    lines.append("def search(query, page=1, search_type='music'):")
    lines.append(f"    return {{'platform': platform, 'query': query, 'page': page}}")
    if body:
        lines.append("")
        lines.append(body)
    return "\n".join(lines) + "\n"


def write_plugin(directory: Path, filename: str, source: str) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / filename
    path.write_text(source, encoding="utf-8")
    return path


def script_files(directory: Path):
    return sorted(p.name for p in directory.glob("*.py"))


class RemoteSources:
    """
    In-memory HTTP server for plugin scripts and manifests.

    Values are response bodies; an int is returned as that status code.
    """

    def __init__(self):
        self.routes: Dict[str, Union[str, int]] = {}
        self.requests = []

    def __setitem__(self, url: str, value: Union[str, int]):
        self.routes[url] = value

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = str(request.url.copy_remove_param("_"))
        value = self.routes.get(key, 404)
        if isinstance(value, int):
            return httpx.Response(value, text="")
        return httpx.Response(200, text=value)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def managed_dir(tmp_path) -> Path:
    return tmp_path / "managed"


@pytest.fixture
def bundled_dir(tmp_path) -> Path:
    path = tmp_path / "bundled"
    path.mkdir()
    return path


@pytest.fixture
def remote() -> RemoteSources:
    return RemoteSources()


@pytest.fixture
def registry() -> PluginRegistry:
    return PluginRegistry()


@pytest.fixture
def manager(managed_dir, bundled_dir, remote, registry) -> PluginManager:
    return PluginManager(
        managed_dir=str(managed_dir),
        bundled_dir=str(bundled_dir),
        registry=registry,
        fetcher=PluginFetcher(timeout=5.0, transport=remote.transport()),
    )
