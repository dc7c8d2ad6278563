"""Tests for the reconciling upsert against the in-memory store."""

import pytest

from reu_ingestion.database import InMemoryProgramStore
from reu_ingestion.reconciler import ProgramReconciler, dedupe_incoming


class FlakyStore(InMemoryProgramStore):
    """Rejects any insert batch containing a program titled 'Bad'."""

    def __init__(self):
        super().__init__()
        self.insert_calls = 0

    def insert_many(self, records):
        self.insert_calls += 1
        if any(r.get("title") == "Bad" for r in records):
            raise RuntimeError("constraint violation")
        return super().insert_many(records)


@pytest.mark.asyncio
async def test_second_upsert_updates_existing(memory_store, make_program):
    reconciler = ProgramReconciler(memory_store)

    first = await reconciler.upsert([make_program("X", "Y")], "NSF")
    second = await reconciler.upsert([make_program("X", "Y", description="new")], "NSF")

    assert (first.inserted, first.updated) == (1, 0)
    assert (second.inserted, second.updated) == (0, 1)
    rows = memory_store.find_all()
    assert len(rows) == 1
    assert rows[0]["description"] == "new"


@pytest.mark.asyncio
async def test_in_batch_duplicates_keep_last(memory_store, make_program):
    result = await ProgramReconciler(memory_store).upsert(
        [make_program("X", "Y", description="a"), make_program("x", "y", description="b")],
        "NSF",
    )

    assert result.inserted == 1
    rows = memory_store.find_all()
    assert len(rows) == 1
    assert rows[0]["description"] == "b"


def test_dedupe_incoming_preserves_order_of_last_occurrence(make_program):
    programs = [make_program("A", "1"), make_program("B", "2"), make_program("a", "1", description="z")]
    deduped = dedupe_incoming(programs)
    assert [(p.title, p.description) for p in deduped] == [("B", ""), ("a", "z")]


@pytest.mark.asyncio
async def test_link_fallback_match(make_program):
    store = InMemoryProgramStore([
        {"title": "Old", "institution": "Other", "fields": ["Physics"], "link": "https://A.edu/reu"},
    ])

    result = await ProgramReconciler(store).upsert(
        [make_program("New", "Inst", link="https://a.edu/REU")], "GoogleSheets"
    )

    assert result.updated == 1
    assert result.inserted == 0
    rows = store.find_all()
    assert len(rows) == 1
    assert rows[0]["title"] == "New"
    assert rows[0]["id"] == "1"


@pytest.mark.asyncio
async def test_institution_and_first_field_match(make_program):
    store = InMemoryProgramStore([
        {"title": "REU A", "institution": "MIT", "fields": ["Physics"], "link": ""},
    ])

    result = await ProgramReconciler(store).upsert(
        [make_program("REU B", "mit", fields=["Physics", "Mathematics"])], "NSF"
    )

    assert result.updated == 1
    assert store.count() == 1


@pytest.mark.asyncio
async def test_no_match_inserts(make_program):
    store = InMemoryProgramStore([
        {"title": "REU A", "institution": "MIT", "fields": ["Physics"], "link": "https://mit.edu"},
    ])

    result = await ProgramReconciler(store).upsert(
        [make_program("REU B", "MIT", fields=["Biology"], link="https://mit.edu/bio")], "NSF"
    )

    assert result.inserted == 1
    assert store.count() == 2


@pytest.mark.asyncio
@pytest.mark.parametrize("order", ["exact_first", "fallback_first"])
async def test_exact_match_claims_row_before_fallback(make_program, order):
    store = InMemoryProgramStore([
        {"title": "REU A", "institution": "MIT", "fields": ["Physics"], "link": ""},
    ])
    programs = [
        make_program("REU A", "MIT", fields=["Physics"], description="exact"),
        make_program("REU B", "MIT", fields=["Physics"], description="fallback"),
    ]
    if order == "fallback_first":
        programs.reverse()

    result = await ProgramReconciler(store).upsert(programs, "NSF")

    assert (result.updated, result.inserted) == (1, 1)
    assert store.count() == 2
    row = store.find_one({"id": "1"})
    assert (row["title"], row["description"]) == ("REU A", "exact")


@pytest.mark.asyncio
async def test_fallback_matches_do_not_share_a_row(make_program):
    store = InMemoryProgramStore([
        {"title": "Old", "institution": "Other", "fields": ["Physics"], "link": "https://a.edu/reu"},
    ])

    result = await ProgramReconciler(store).upsert(
        [
            make_program("New 1", "Inst 1", link="https://a.edu/reu"),
            make_program("New 2", "Inst 2", link="https://a.edu/reu"),
        ],
        "GoogleSheets",
    )

    assert (result.updated, result.inserted) == (1, 1)
    assert store.count() == 2


@pytest.mark.asyncio
async def test_update_preserves_id_and_created_at(make_program):
    store = InMemoryProgramStore([
        {"title": "X", "institution": "Y", "fields": ["Biology"], "created_at": "2024-01-01T00:00:00"},
    ])

    await ProgramReconciler(store).upsert([make_program("X", "Y", stipend="$6,000")], "NSF")

    row = store.find_one({"id": "1"})
    assert row["created_at"].startswith("2024-01-01")
    assert row["updated_at"] > row["created_at"]
    assert row["stipend"] == "$6,000"
    assert "id" in row


@pytest.mark.asyncio
async def test_failed_batch_falls_back_to_single_writes(make_program):
    store = FlakyStore()

    result = await ProgramReconciler(store).upsert(
        [make_program("Good 1", "A"), make_program("Bad", "B"), make_program("Good 2", "C")], "NSF"
    )

    assert result.inserted == 2
    assert result.failed == 1
    # One failed batch call plus three single-record calls
    assert store.insert_calls == 4
    assert sorted(r["title"] for r in store.find_all()) == ["Good 1", "Good 2"]


@pytest.mark.asyncio
async def test_writes_are_chunked(make_program):
    store = FlakyStore()

    result = await ProgramReconciler(store, batch_size=2).upsert(
        [make_program(f"Program {i}", "Inst") for i in range(5)], "NSF"
    )

    assert result.inserted == 5
    assert store.insert_calls == 3


@pytest.mark.asyncio
async def test_empty_input_touches_nothing(make_program):
    store = FlakyStore()
    result = await ProgramReconciler(store).upsert([], "NSF")
    assert (result.inserted, result.updated, result.failed) == (0, 0, 0)
    assert store.insert_calls == 0


def test_batch_size_must_be_positive(memory_store):
    with pytest.raises(ValueError):
        ProgramReconciler(memory_store, batch_size=0)
