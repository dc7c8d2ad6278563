"""Reconciling upsert - match scraped programs against stored ones and write back."""

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Set, Tuple

from ..database.store import ProgramStore, Record
from ..models import NormalizedProgram, StoredProgram, UpsertResult

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 100


def _lower(value: Any) -> str:
    return str(value or "").strip().lower()


def _first_field(fields: Any) -> Optional[str]:
    if isinstance(fields, list) and fields:
        return _lower(fields[0]) or None
    return None


class MatchIndex:
    """Lookup tables over a snapshot of stored programs.

    Keys: (title, institution), (institution, first field), and link, all
    lower-cased. Built once per upsert call and never refreshed mid-call.
    """

    def __init__(self, stored: List[Record]):
        self.by_title_institution: Dict[Tuple[str, str], Record] = {}
        self.by_institution_field: Dict[Tuple[str, str], Record] = {}
        self.by_link: Dict[str, Record] = {}

        for row in stored:
            self.by_title_institution.setdefault(
                (_lower(row.get("title")), _lower(row.get("institution"))), row
            )
            first_field = _first_field(row.get("fields"))
            if first_field:
                self.by_institution_field.setdefault(
                    (_lower(row.get("institution")), first_field), row
                )
            link = _lower(row.get("link"))
            if link:
                self.by_link.setdefault(link, row)

    def match_exact(self, program: NormalizedProgram) -> Optional[Record]:
        """Rule one: lower-cased (title, institution)."""
        return self.by_title_institution.get(
            (_lower(program.title), _lower(program.institution))
        )

    def match_fallback(self, program: NormalizedProgram, claimed: Set[str]) -> Optional[Record]:
        """Rules two and three: (institution, first field), then link.

        Rows whose id is in ``claimed`` are never returned.
        """
        first_field = _first_field(program.fields)
        if first_field:
            row = self.by_institution_field.get((_lower(program.institution), first_field))
            if row is not None and str(row.get("id")) not in claimed:
                return row
        link = _lower(program.link)
        if link:
            row = self.by_link.get(link)
            if row is not None and str(row.get("id")) not in claimed:
                return row
        return None


def dedupe_incoming(programs: List[NormalizedProgram]) -> List[NormalizedProgram]:
    """Keep only the last occurrence of each (title, institution) pair."""
    latest: Dict[str, NormalizedProgram] = {}
    for program in programs:
        key = program.match_key()
        latest.pop(key, None)
        latest[key] = program
    return list(latest.values())


class ProgramReconciler:
    """Partitions normalized programs into updates and inserts and writes them.

    A snapshot of stored programs is read once per call. Concurrent runs are
    not coordinated, so duplicates across simultaneous runs are possible.
    """

    def __init__(self, store: ProgramStore, batch_size: int = DEFAULT_BATCH_SIZE):
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self.store = store
        self.batch_size = batch_size

    async def upsert(self, records: List[NormalizedProgram], source_tag: str) -> UpsertResult:
        """Insert new programs and overwrite matched ones.

        Args:
            records: Normalized programs from one source.
            source_tag: Source label for logging.

        Returns:
            UpsertResult with inserted/updated/failed counts.
        """
        result = UpsertResult()
        if not records:
            logger.info("upsert_skipped source=%s reason=no_records", source_tag)
            return result

        programs = dedupe_incoming(records)
        logger.info(
            "upsert_start source=%s received=%d unique=%d",
            source_tag, len(records), len(programs),
        )

        stored = await asyncio.to_thread(self.store.find_all)
        index = MatchIndex(stored)
        now = datetime.utcnow()

        # Exact matches claim their rows before any fallback match runs.
        matches: List[Optional[Record]] = [index.match_exact(program) for program in programs]
        claimed: Set[str] = {str(row["id"]) for row in matches if row is not None}
        for position, program in enumerate(programs):
            if matches[position] is None:
                row = index.match_fallback(program, claimed)
                if row is not None:
                    claimed.add(str(row["id"]))
                    matches[position] = row

        updates: List[Tuple[str, Record]] = []
        inserts: List[Record] = []
        for program, match in zip(programs, matches):
            if match is not None:
                updates.append((str(match["id"]), self._update_payload(program, match, now)))
            else:
                inserts.append(self._insert_payload(program, now))

        logger.info(
            "upsert_partitioned source=%s updates=%d inserts=%d",
            source_tag, len(updates), len(inserts),
        )

        for batch in self._chunks(updates):
            ok, failed = await self._write(self.store.update_many, batch, source_tag, "update")
            result.updated += ok
            result.failed += failed
        for batch in self._chunks(inserts):
            ok, failed = await self._write(self.store.insert_many, batch, source_tag, "insert")
            result.inserted += ok
            result.failed += failed

        logger.info(
            "upsert_complete source=%s inserted=%d updated=%d failed=%d",
            source_tag, result.inserted, result.updated, result.failed,
        )
        return result

    @staticmethod
    def _insert_payload(program: NormalizedProgram, now: datetime) -> Record:
        payload = program.model_copy(update={"created_at": now, "updated_at": now})
        return payload.model_dump(mode="json")

    @staticmethod
    def _update_payload(program: NormalizedProgram, match: Record, now: datetime) -> Record:
        """Full overwrite except id and created_at; updated_at refreshed."""
        stored = StoredProgram(
            **program.model_dump(exclude={"created_at", "updated_at"}),
            id=match["id"],
            created_at=match.get("created_at") or now,
            updated_at=now,
        )
        return stored.model_dump(mode="json", exclude={"id"})

    def _chunks(self, items: List[Any]) -> List[List[Any]]:
        return [items[i:i + self.batch_size] for i in range(0, len(items), self.batch_size)]

    async def _write(self, operation, batch: List[Any], source_tag: str, kind: str) -> Tuple[int, int]:
        """Write one batch; on failure fall back to one record at a time."""
        try:
            await asyncio.to_thread(operation, batch)
            return len(batch), 0
        except Exception as exc:
            logger.error(
                "batch_write_failed source=%s kind=%s size=%d error=%s",
                source_tag, kind, len(batch), exc,
            )

        ok = failed = 0
        for item in batch:
            try:
                await asyncio.to_thread(operation, [item])
                ok += 1
            except Exception as exc:
                failed += 1
                logger.error(
                    "record_write_failed source=%s kind=%s title=%r error=%s",
                    source_tag, kind, self._title_of(item), exc,
                )
        return ok, failed

    @staticmethod
    def _title_of(item: Any) -> Optional[str]:
        record = item[1] if isinstance(item, tuple) else item
        return record.get("title") if isinstance(record, dict) else None
