"""Program store implementations."""

from .client import SupabaseProgramStore
from .memory import InMemoryProgramStore
from .store import ProgramStore

__all__ = ["InMemoryProgramStore", "ProgramStore", "SupabaseProgramStore"]
