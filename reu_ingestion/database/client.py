"""Supabase-backed program store."""

import logging
import os
from typing import Any, Iterable, List, Optional, Tuple

from supabase import Client, create_client

from .store import Filters, ProgramStore, Record

logger = logging.getLogger(__name__)

PROGRAMS_TABLE = "programs"
PAGE_SIZE = 1000


class SupabaseProgramStore(ProgramStore):
    """Program store on the Supabase ``programs`` table."""

    def __init__(
        self,
        url: Optional[str] = None,
        key: Optional[str] = None,
        table: str = PROGRAMS_TABLE,
    ) -> None:
        """Initialize Supabase client from explicit args or env vars.

        Args:
            url: Supabase project URL (falls back to SUPABASE_URL env var).
            key: Supabase service key (falls back to SUPABASE_KEY env var).
            table: Table holding stored programs.
        """
        self._url = url or os.environ["SUPABASE_URL"]
        self._key = key or os.environ["SUPABASE_KEY"]
        self._table = table
        self._client: Client = create_client(self._url, self._key)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def find_all(self, filters: Filters = None) -> List[Record]:
        """Return every matching row, paging past the API's row limit.

        Returns:
            List of row dicts.
        """
        rows: List[Record] = []
        start = 0
        while True:
            query = self._apply_filters(self._client.table(self._table).select("*"), filters)
            response = query.range(start, start + PAGE_SIZE - 1).execute()
            page = response.data or []
            rows.extend(page)
            if len(page) < PAGE_SIZE:
                break
            start += PAGE_SIZE
        logger.debug("Loaded %d programs from %s", len(rows), self._table)
        return rows

    def find_one(self, filters: Filters = None) -> Optional[Record]:
        query = self._apply_filters(self._client.table(self._table).select("*"), filters)
        response = query.limit(1).execute()
        return response.data[0] if response.data else None

    def insert_many(self, records: List[Record]) -> List[Record]:
        """Insert a batch of program rows.

        Args:
            records: Row dicts without ids.

        Returns:
            The inserted rows.
        """
        if not records:
            return []
        response = self._client.table(self._table).insert(records).execute()
        logger.info("Inserted %d programs", len(records))
        return response.data or []

    def update_many(self, pairs: Iterable[Tuple[str, Record]]) -> List[Record]:
        """Overwrite rows by id in one round trip (upsert keyed on id).

        Args:
            pairs: (id, row dict) pairs.

        Returns:
            The updated rows.
        """
        rows = [{**record, "id": program_id} for program_id, record in pairs]
        if not rows:
            return []
        response = (
            self._client.table(self._table)
            .upsert(rows, on_conflict="id")
            .execute()
        )
        logger.info("Updated %d programs", len(rows))
        return response.data or []

    def count(self, filters: Filters = None) -> int:
        query = self._apply_filters(
            self._client.table(self._table).select("id", count="exact"), filters
        )
        response = query.execute()
        return response.count or 0

    @staticmethod
    def _apply_filters(query: Any, filters: Filters) -> Any:
        for column, value in (filters or {}).items():
            query = query.eq(column, value)
        return query
