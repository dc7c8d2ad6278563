"""Program store interface required by the reconciling upsert."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional, Tuple

Record = Dict[str, Any]
Filters = Optional[Dict[str, Any]]


class ProgramStore(ABC):
    """Minimal persistence contract for stored programs.

    Implementations are synchronous; async callers run them in a worker
    thread.
    """

    @abstractmethod
    def find_all(self, filters: Filters = None) -> List[Record]:
        """All stored programs matching equality filters."""

    @abstractmethod
    def find_one(self, filters: Filters = None) -> Optional[Record]:
        """First stored program matching equality filters, or None."""

    @abstractmethod
    def insert_many(self, records: List[Record]) -> List[Record]:
        """Insert records; returns the stored rows (with ids)."""

    @abstractmethod
    def update_many(self, pairs: Iterable[Tuple[str, Record]]) -> List[Record]:
        """Overwrite each stored program identified by id with its record."""

    @abstractmethod
    def count(self, filters: Filters = None) -> int:
        """Number of stored programs matching equality filters."""
