"""In-memory program store for dry runs and tests."""

import copy
import itertools
import logging
from typing import Dict, Iterable, List, Optional, Tuple

from .store import Filters, ProgramStore, Record

logger = logging.getLogger(__name__)


class InMemoryProgramStore(ProgramStore):
    """Dict-backed store; ids are sequential strings."""

    def __init__(self, records: Optional[List[Record]] = None):
        self._rows: Dict[str, Record] = {}
        self._ids = itertools.count(1)
        for record in records or []:
            self.insert_many([record])

    def find_all(self, filters: Filters = None) -> List[Record]:
        return [copy.deepcopy(row) for row in self._rows.values() if self._matches(row, filters)]

    def find_one(self, filters: Filters = None) -> Optional[Record]:
        for row in self._rows.values():
            if self._matches(row, filters):
                return copy.deepcopy(row)
        return None

    def insert_many(self, records: List[Record]) -> List[Record]:
        inserted = []
        for record in records:
            program_id = str(record.get("id") or next(self._ids))
            row = {**copy.deepcopy(record), "id": program_id}
            self._rows[program_id] = row
            inserted.append(copy.deepcopy(row))
        return inserted

    def update_many(self, pairs: Iterable[Tuple[str, Record]]) -> List[Record]:
        updated = []
        for program_id, record in pairs:
            if program_id not in self._rows:
                raise KeyError(f"No stored program with id {program_id}")
            row = {**copy.deepcopy(record), "id": program_id}
            self._rows[program_id] = row
            updated.append(copy.deepcopy(row))
        return updated

    def count(self, filters: Filters = None) -> int:
        return sum(1 for row in self._rows.values() if self._matches(row, filters))

    @staticmethod
    def _matches(row: Record, filters: Filters) -> bool:
        return all(row.get(column) == value for column, value in (filters or {}).items())
