"""Scrape orchestrator - runs extractors concurrently and reconciles each source."""

import asyncio
import logging
import time
from typing import Dict, Iterable, List, Optional, Union

from ..adapters.base import BaseAdapter
from ..models import RawProgramRecord, SourceResult, SourceTag
from ..normalizer import ProgramNormalizer
from ..reconciler import ProgramReconciler

logger = logging.getLogger(__name__)

DEFAULT_SOURCES = (
    SourceTag.NSF,
    SourceTag.GOOGLE_SHEETS,
    SourceTag.PATHWAYS_TO_SCIENCE,
)

FULFILLED = "fulfilled"
REJECTED = "rejected"


def _resolve_source(name: Union[str, SourceTag]) -> Optional[SourceTag]:
    if isinstance(name, SourceTag):
        return name
    try:
        return SourceTag(name)
    except ValueError:
        return None


class ScrapeOrchestrator:
    """Runs a set of extractors and feeds each result through normalize and upsert.

    A failure in one source (fetch, normalize or upsert) marks only that
    source as rejected; run_all never raises for source failures.
    """

    def __init__(
        self,
        adapters: Dict[SourceTag, BaseAdapter],
        normalizer: ProgramNormalizer,
        reconciler: ProgramReconciler,
    ):
        self.adapters = adapters
        self.normalizer = normalizer
        self.reconciler = reconciler

    async def run_all(
        self, sources: Optional[Iterable[Union[str, SourceTag]]] = None
    ) -> List[SourceResult]:
        """Run the requested sources (default NSF, GoogleSheets, PathwaysToScience).

        Returns:
            One SourceResult per requested source, in request order.
        """
        requested = list(sources) if sources is not None else list(DEFAULT_SOURCES)
        start = time.monotonic()
        logger.info("run_start sources=%s", ",".join(str(getattr(s, "value", s)) for s in requested))

        results: List[Optional[SourceResult]] = [None] * len(requested)
        runnable = []
        for position, name in enumerate(requested):
            tag = _resolve_source(name)
            adapter = self.adapters.get(tag) if tag is not None else None
            if adapter is None:
                label = getattr(name, "value", name)
                logger.error("source_unknown source=%s", label)
                results[position] = SourceResult(
                    source=str(label), status=REJECTED, error=f"Unknown source: {label}"
                )
                continue
            runnable.append((position, tag, adapter))

        fetched = await asyncio.gather(
            *(adapter.logged_fetch() for _, _, adapter in runnable),
            return_exceptions=True,
        )

        for (position, tag, _), outcome in zip(runnable, fetched):
            if isinstance(outcome, BaseException):
                results[position] = SourceResult(
                    source=tag.value, status=REJECTED, error=str(outcome) or type(outcome).__name__
                )
                continue
            results[position] = await self._reconcile(tag, outcome)

        duration_ms = (time.monotonic() - start) * 1000
        fulfilled = sum(1 for r in results if r.status == FULFILLED)
        logger.info(
            "run_complete sources=%d fulfilled=%d rejected=%d duration_ms=%.0f",
            len(results), fulfilled, len(results) - fulfilled, duration_ms,
        )
        return results

    async def _reconcile(self, tag: SourceTag, records: List[RawProgramRecord]) -> SourceResult:
        try:
            programs = self.normalizer.normalize_batch(records)
            upserted = await self.reconciler.upsert(programs, tag.value)
        except Exception as exc:
            logger.error("source_failed source=%s stage=reconcile error=%s", tag.value, exc, exc_info=True)
            return SourceResult(source=tag.value, status=REJECTED, error=str(exc) or type(exc).__name__)

        logger.info(
            "source_complete source=%s count=%d inserted=%d updated=%d failed=%d",
            tag.value, len(programs), upserted.inserted, upserted.updated, upserted.failed,
        )
        return SourceResult(
            source=tag.value,
            status=FULFILLED,
            count=len(programs),
            inserted=upserted.inserted,
            updated=upserted.updated,
        )
