"""Run summaries returned by the reconciler and the orchestrator."""

from typing import Optional

from pydantic import BaseModel, Field


class UpsertResult(BaseModel):
    """Counts from one reconciling upsert call."""

    inserted: int = 0
    updated: int = 0
    failed: int = 0

    @property
    def written(self) -> int:
        return self.inserted + self.updated


class SourceResult(BaseModel):
    """Per-source outcome of an orchestrator run.

    This is the only thing exposed to callers (scheduled job, admin endpoint).
    """

    source: str
    status: str = Field(..., description="'fulfilled' or 'rejected'")
    count: Optional[int] = Field(None, description="Programs that passed normalization")
    inserted: int = 0
    updated: int = 0
    error: Optional[str] = None
