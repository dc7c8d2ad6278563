"""Shared Pydantic models for the REU ingestion pipeline."""

from .program import (
    NormalizedProgram,
    ProgramStatus,
    RawProgramRecord,
    SourceTag,
    StoredProgram,
)
from .run_result import SourceResult, UpsertResult

__all__ = [
    "NormalizedProgram",
    "ProgramStatus",
    "RawProgramRecord",
    "SourceTag",
    "StoredProgram",
    "SourceResult",
    "UpsertResult",
]
