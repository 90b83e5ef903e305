"""
API endpoints for plugin management
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional, Set

from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect

from plugins import (
    PluginError,
    PluginManager,
    PluginSnapshot,
    PluginUnparseable,
    OlderVersionRejected,
    FetchFailed,
    FileIOError,
    UnsupportedSource,
)
from schemas import (
    CallPluginMethodRequest,
    CallPluginMethodResponse,
    InstallOutcomeResponse,
    InstallRequest,
    InstallResponse,
    UninstallResponse,
    UpdateAllResponse,
)

logger = logging.getLogger(__name__)
router = APIRouter()

# Will be set during app startup
_plugin_manager: Optional[PluginManager] = None


def set_plugin_manager(manager: Optional[PluginManager]):
    """Set the plugin manager instance"""
    global _plugin_manager
    _plugin_manager = manager


def get_plugin_manager() -> PluginManager:
    """Get the plugin manager or raise 503"""
    if _plugin_manager is None:
        raise HTTPException(status_code=503, detail="Plugin system not initialized")
    return _plugin_manager


class SnapshotBroadcaster:
    """
    Pushes snapshot lists to connected WebSocket clients.

    Subscribed to the registry, so every publish reaches every client.
    """

    def __init__(self):
        self._queues: Set[asyncio.Queue] = set()

    def __call__(self, snapshots: List[PluginSnapshot]) -> None:
        payload = [s.model_dump(mode="json") for s in snapshots]
        for queue in list(self._queues):
            queue.put_nowait(payload)

    def connect(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue()
        self._queues.add(queue)
        return queue

    def disconnect(self, queue: asyncio.Queue) -> None:
        self._queues.discard(queue)

    @property
    def client_count(self) -> int:
        return len(self._queues)


broadcaster = SnapshotBroadcaster()


def _to_http_error(error: PluginError) -> HTTPException:
    if isinstance(error, (PluginUnparseable, UnsupportedSource)):
        return HTTPException(status_code=400, detail=str(error))
    if isinstance(error, OlderVersionRejected):
        return HTTPException(status_code=409, detail=str(error))
    if isinstance(error, FetchFailed):
        return HTTPException(status_code=502, detail=str(error))
    if isinstance(error, FileIOError):
        return HTTPException(status_code=500, detail=str(error))
    return HTTPException(status_code=500, detail=str(error))


@asynccontextmanager
async def _pushes_plugins(manager: PluginManager):
    """Guarantee one snapshot push per request, even when nothing was published"""
    published_before = manager.registry.publish_count
    try:
        yield
    finally:
        if manager.registry.publish_count == published_before:
            broadcaster(manager.get_all_plugins())


@router.get("/", response_model=List[PluginSnapshot])
async def get_all_plugins():
    """List all registered plugins"""
    return get_plugin_manager().get_all_plugins()


@router.post("/call", response_model=CallPluginMethodResponse)
async def call_plugin_method(request: CallPluginMethodRequest):
    """Invoke a capability; result is null when no plugin handles it"""
    manager = get_plugin_manager()
    result = await manager.call_plugin_method(
        request.hash, request.platform, request.method, request.args
    )
    return CallPluginMethodResponse(result=result)


@router.post("/refresh", response_model=List[PluginSnapshot])
async def refresh_plugins():
    """Rescan plugin directories"""
    return await get_plugin_manager().refresh()


@router.post("/update-all", response_model=UpdateAllResponse)
async def update_all_plugins():
    """Reinstall every plugin from its origin URL"""
    outcomes = await get_plugin_manager().update_all()
    return UpdateAllResponse(
        outcomes=[InstallOutcomeResponse.model_validate(o) for o in outcomes]
    )


@router.post("/install/remote", response_model=InstallResponse)
async def install_plugin_remote(request: InstallRequest):
    """Install from a script URL or manifest URL"""
    manager = get_plugin_manager()
    async with _pushes_plugins(manager):
        try:
            outcomes = await manager.install_remote(request.source)
        except PluginError as e:
            logger.warning(f"Remote install of {request.source} failed: {e}")
            raise _to_http_error(e)

    return InstallResponse(
        outcomes=[InstallOutcomeResponse.model_validate(o) for o in outcomes],
        plugins=manager.get_all_plugins(),
    )


@router.post("/install/local", response_model=InstallResponse)
async def install_plugin_local(request: InstallRequest):
    """Install from a local script or manifest"""
    manager = get_plugin_manager()
    async with _pushes_plugins(manager):
        try:
            outcomes = await manager.install_local(request.source)
        except PluginError as e:
            logger.warning(f"Local install of {request.source} failed: {e}")
            raise _to_http_error(e)

    return InstallResponse(
        outcomes=[InstallOutcomeResponse.model_validate(o) for o in outcomes],
        plugins=manager.get_all_plugins(),
    )


@router.delete("/{identity}", response_model=UninstallResponse)
async def uninstall_plugin(identity: str):
    """Uninstall a plugin by hash"""
    manager = get_plugin_manager()
    async with _pushes_plugins(manager):
        try:
            removed = await manager.uninstall(identity)
        except PluginError as e:
            logger.error(f"Uninstall of {identity} failed: {e}")
            raise _to_http_error(e)

    return UninstallResponse(removed=removed, plugins=manager.get_all_plugins())


@router.websocket("/events")
async def plugin_events(websocket: WebSocket):
    """Stream the snapshot list on connect and after every publish"""
    manager = _plugin_manager
    if manager is None:
        await websocket.close(code=1011)
        return

    await websocket.accept()
    queue = broadcaster.connect()

    async def forward():
        while True:
            payload: List[Dict[str, Any]] = await queue.get()
            await websocket.send_json(payload)

    await websocket.send_json(
        [s.model_dump(mode="json") for s in manager.get_all_plugins()]
    )
    forward_task = asyncio.create_task(forward())

    try:
        # Client messages are ignored; only a disconnect ends the stream
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
    except WebSocketDisconnect:
        pass
    finally:
        forward_task.cancel()
        broadcaster.disconnect(queue)
        logger.debug("Plugin events client disconnected")
