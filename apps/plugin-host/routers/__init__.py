"""
API routers for plugin-host endpoints.
"""

from .plugins import router as plugins_router

__all__ = ["plugins_router"]
