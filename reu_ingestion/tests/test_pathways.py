"""Tests for the Pathways to Science adapter: HTML parsing and batched detail fetches."""

import pytest
import respx
import httpx

from reu_ingestion.adapters import PathwaysAdapter, RateLimitedError
from reu_ingestion.adapters.pathways import (
    BASE_URL,
    clean_description_text,
    extract_program_links,
    parse_program_page,
)
from reu_ingestion.models import SourceTag


SEARCH_URL = "https://pathways.test/programs.aspx"
DETAIL_101 = f"{BASE_URL}/programs/view.aspx?progid=101"
DETAIL_102 = f"{BASE_URL}/programs/view.aspx?progid=102"


def _adapter(**kwargs):
    return PathwaysAdapter(search_url=SEARCH_URL, request_delay=0, **kwargs)


# ---------------------------------------------------------------------------
# Link discovery
# ---------------------------------------------------------------------------

def test_links_from_program_blocks(pathways_listing_html):
    assert extract_program_links(pathways_listing_html) == {DETAIL_101, DETAIL_102}


def test_links_from_raw_program_ids():
    html = "<html><script>var rows = ['progid=555', 'progid=556'];</script></html>"
    assert extract_program_links(html) == {
        f"{BASE_URL}/programs/view.aspx?progid=555",
        f"{BASE_URL}/programs/view.aspx?progid=556",
    }


def test_links_from_alternative_containers():
    html = '<div class="panel12"><a href="/programs/view.aspx?id=7">Seven</a><a href="/about">About</a></div>'
    assert extract_program_links(html) == {f"{BASE_URL}/programs/view.aspx?id=7"}


def test_no_links():
    assert extract_program_links("<html><body>Nothing here</body></html>") == set()


# ---------------------------------------------------------------------------
# Detail page parsing
# ---------------------------------------------------------------------------

def test_parse_program_page(pathways_detail_html):
    record = parse_program_page(pathways_detail_html, DETAIL_101)

    assert record.source == SourceTag.PATHWAYS_TO_SCIENCE
    assert record.title == "REU Site: Ocean Chemistry"
    assert record.institution == "Coastal State University"
    assert record.deadline_raw == "02/15/2025"
    assert record.field_text == ["Oceanography", "Chemistry", "Earth Science"]
    assert record.url == "https://coastal.edu/reu"
    assert record.description.startswith("Ten weeks of research on ocean chemistry.")
    assert "reu@coastal.edu" not in record.description
    assert "123-4567" not in record.description


def test_parse_program_page_missing_institution():
    record = parse_program_page("<html><h1>Orphan REU</h1></html>", DETAIL_101)
    assert record.title is None
    assert record.institution is None
    assert record.url == DETAIL_101
    assert not record.is_usable


def test_clean_description_text():
    text = "Apply at https://x.edu/apply or email a@b.edu,  call 555-123-4567  today."
    assert clean_description_text(text) == "Apply at or email , call today."


# ---------------------------------------------------------------------------
# Fetching
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
@respx.mock
async def test_fetch_programs_drops_failed_detail_pages(pathways_listing_html, pathways_detail_html):
    respx.get(SEARCH_URL).mock(return_value=httpx.Response(200, text=pathways_listing_html))
    ok_route = respx.get(DETAIL_101).mock(return_value=httpx.Response(200, text=pathways_detail_html))
    bad_route = respx.get(DETAIL_102).mock(return_value=httpx.Response(500))

    records = await _adapter(batch_size=1, concurrency=2).fetch_programs()

    assert len(records) == 1
    assert records[0].title == "REU Site: Ocean Chemistry"
    # Detail pages are never retried
    assert ok_route.call_count == 1
    assert bad_route.call_count == 1


@pytest.mark.asyncio
@respx.mock
async def test_fetch_programs_rate_limited():
    respx.get(SEARCH_URL).mock(return_value=httpx.Response(429, headers={"Retry-After": "120"}))

    with pytest.raises(RateLimitedError) as exc_info:
        await _adapter().fetch_programs()

    assert exc_info.value.retry_after == "120"
    assert exc_info.value.source == "PathwaysToScience"


@pytest.mark.asyncio
@respx.mock
async def test_fetch_programs_listing_error_propagates():
    respx.get(SEARCH_URL).mock(return_value=httpx.Response(503))
    with pytest.raises(httpx.HTTPStatusError):
        await _adapter().fetch_programs()


@pytest.mark.asyncio
@respx.mock
async def test_fetch_programs_no_links():
    respx.get(SEARCH_URL).mock(return_value=httpx.Response(200, text="<html></html>"))
    assert await _adapter().fetch_programs() == []
