"""Tests for the scrape orchestrator: partial failure isolation and source selection."""

from unittest.mock import AsyncMock

import pytest

from reu_ingestion.adapters.base import BaseAdapter
from reu_ingestion.models import RawProgramRecord, SourceTag, UpsertResult
from reu_ingestion.normalizer import ProgramNormalizer
from reu_ingestion.orchestrator import ScrapeOrchestrator
from reu_ingestion.reconciler import ProgramReconciler


class StaticAdapter(BaseAdapter):
    def __init__(self, tag, records=None, error=None):
        self._tag = tag
        self.records = records or []
        self.error = error
        self.calls = 0

    @property
    def source_tag(self):
        return self._tag

    async def fetch_programs(self):
        self.calls += 1
        if self.error:
            raise self.error
        return self.records


def _raw(tag, title):
    return RawProgramRecord(
        source=tag, title=title, institution=f"{title} Institute", field_text="Physics"
    )


@pytest.fixture
def adapters():
    return {
        SourceTag.NSF: StaticAdapter(
            SourceTag.NSF, [_raw(SourceTag.NSF, "NSF One"), _raw(SourceTag.NSF, "NSF Two")]
        ),
        SourceTag.GOOGLE_SHEETS: StaticAdapter(
            SourceTag.GOOGLE_SHEETS, error=RuntimeError("boom")
        ),
        SourceTag.PATHWAYS_TO_SCIENCE: StaticAdapter(
            SourceTag.PATHWAYS_TO_SCIENCE,
            [_raw(SourceTag.PATHWAYS_TO_SCIENCE, "Pathways One"), _raw(SourceTag.PATHWAYS_TO_SCIENCE, None)],
        ),
        SourceTag.ETAP: StaticAdapter(SourceTag.ETAP, [_raw(SourceTag.ETAP, "ETAP One")]),
    }


@pytest.fixture
def orchestrator(adapters, memory_store):
    return ScrapeOrchestrator(adapters, ProgramNormalizer(), ProgramReconciler(memory_store))


@pytest.mark.asyncio
async def test_one_failing_source_does_not_block_others(orchestrator, memory_store):
    results = await orchestrator.run_all()

    assert [r.source for r in results] == ["NSF", "GoogleSheets", "PathwaysToScience"]
    nsf, sheets, pathways = results

    assert nsf.status == "fulfilled"
    assert (nsf.count, nsf.inserted, nsf.updated) == (2, 2, 0)

    assert sheets.status == "rejected"
    assert sheets.error == "boom"
    assert sheets.count is None

    # The untitled Pathways record is dropped by the normalizer
    assert pathways.status == "fulfilled"
    assert pathways.count == 1

    assert memory_store.count() == 3


@pytest.mark.asyncio
async def test_default_sources_skip_etap(orchestrator, adapters):
    await orchestrator.run_all()
    assert adapters[SourceTag.ETAP].calls == 0


@pytest.mark.asyncio
async def test_requested_sources_only(orchestrator, adapters):
    results = await orchestrator.run_all(["ETAP"])

    assert [(r.source, r.status, r.count) for r in results] == [("ETAP", "fulfilled", 1)]
    assert adapters[SourceTag.NSF].calls == 0


@pytest.mark.asyncio
async def test_unknown_source_is_rejected(orchestrator):
    results = await orchestrator.run_all(["NSF", "Bogus"])

    assert results[0].status == "fulfilled"
    assert results[1].source == "Bogus"
    assert results[1].status == "rejected"
    assert "Bogus" in results[1].error


@pytest.mark.asyncio
async def test_source_without_adapter_is_rejected(adapters, memory_store):
    del adapters[SourceTag.ETAP]
    orchestrator = ScrapeOrchestrator(adapters, ProgramNormalizer(), ProgramReconciler(memory_store))

    results = await orchestrator.run_all([SourceTag.ETAP])

    assert results[0].status == "rejected"


@pytest.mark.asyncio
async def test_upsert_failure_isolated_to_its_source(adapters):
    reconciler = AsyncMock()

    async def upsert(programs, source_tag):
        if source_tag == "NSF":
            raise RuntimeError("store unavailable")
        return UpsertResult(inserted=len(programs))

    reconciler.upsert.side_effect = upsert
    orchestrator = ScrapeOrchestrator(adapters, ProgramNormalizer(), reconciler)

    results = await orchestrator.run_all(["NSF", "PathwaysToScience"])

    assert results[0].status == "rejected"
    assert results[0].error == "store unavailable"
    assert results[1].status == "fulfilled"
    assert results[1].inserted == 1
