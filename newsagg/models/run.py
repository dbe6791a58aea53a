"""Fetch run models."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class AdapterResult(BaseModel):
    """What one adapter contributed to a run."""

    name: str = Field(..., description="Adapter class name")
    fetched: int = Field(0, description="Articles returned by the adapter")
    stored: int = Field(0, description="Articles upserted")
    new: int = Field(0, description="Articles inserted for the first time")
    updated: int = Field(0, description="Existing articles refreshed")
    duration_seconds: float = Field(0.0, description="Time spent on this adapter")
    error: Optional[str] = Field(None, description="Error message if the adapter failed")


class RunSummary(BaseModel):
    """Outcome of one orchestrator execution."""

    total_fetched: int = Field(0, description="Articles returned by adapters")
    total_stored: int = Field(0, description="Articles upserted")
    duration_seconds: float = Field(0.0, description="Wall-clock duration")
    errors: List[str] = Field(default_factory=list, description="Per-adapter errors")
    skipped: bool = Field(False, description="Whether the run was skipped")
    skip_reason: Optional[str] = Field(None, description="Why the run was skipped")
    adapters: List[AdapterResult] = Field(default_factory=list, description="Per-adapter results")

    @property
    def success(self) -> bool:
        return not self.errors


class FetchRun(BaseModel):
    """Metrics snapshot of the latest fetch, kept in the cache."""

    last_run: datetime = Field(..., description="When the run finished")
    total_fetched: int = Field(0, description="Articles returned by adapters")
    total_stored: int = Field(0, description="Articles upserted")
    duration: float = Field(0.0, description="Duration in seconds")
    errors_count: int = Field(0, description="Number of per-adapter errors")
