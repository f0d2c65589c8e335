"""
Pydantic-схемы JSON-отчетов CLI.
"""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class RegionInfo(BaseModel):
    model_config = ConfigDict(extra="forbid")

    index: int
    kind: Literal["cached", "passthrough"]
    location: Optional[str] = None
    block_hash: Optional[str] = None
    segment: Optional[int] = None
    keys: List[str] = Field(default_factory=list)
    condition: Optional[str] = None
    negated: bool = False
    preview: str = ""


class CompileReport(BaseModel):
    model_config = ConfigDict(extra="forbid")

    protocol: int = 1
    template: str
    source_hash: str
    regions: List[RegionInfo]


class RenderStatsReport(BaseModel):
    model_config = ConfigDict(extra="forbid")

    protocol: int = 1
    template: str
    cache_enabled: bool
    backend: str
    regions: int
    hits: int
    misses: int
    writes: int
    bypassed: int
    store_errors: int


class CacheStatsReport(BaseModel):
    model_config = ConfigDict(extra="forbid")

    protocol: int = 1
    enabled: bool
    backend: str
    path: str
    exists: bool
    sizeBytes: int
    entries: int
    purged: Optional[bool] = None


__all__ = ["RegionInfo", "CompileReport", "RenderStatsReport", "CacheStatsReport"]
