"""
Pydantic schemas for API validation
"""

from typing import Any, List, Optional

from pydantic import BaseModel, Field

from plugins import PluginSnapshot


class CallPluginMethodRequest(BaseModel):
    hash: Optional[str] = None
    platform: Optional[str] = None
    method: str
    args: List[Any] = Field(default_factory=list)


class CallPluginMethodResponse(BaseModel):
    result: Any = None


class InstallRequest(BaseModel):
    source: str = Field(..., min_length=1)  # URL, file path, or manifest of either


class InstallOutcomeResponse(BaseModel):
    target: str
    success: bool
    identity: Optional[str] = None
    error: Optional[str] = None

    class Config:
        from_attributes = True


class InstallResponse(BaseModel):
    outcomes: List[InstallOutcomeResponse]
    plugins: List[PluginSnapshot]


class UpdateAllResponse(BaseModel):
    outcomes: List[InstallOutcomeResponse]


class UninstallResponse(BaseModel):
    removed: bool
    plugins: List[PluginSnapshot]
