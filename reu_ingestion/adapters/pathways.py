"""Pathways to Science adapter - HTML listing + per-program detail pages."""

import asyncio
import logging
import re
from typing import Iterable, List, Optional, Set

import httpx
from bs4 import BeautifulSoup, NavigableString, Tag

from .base import BaseAdapter, RateLimitedError
from ..models import RawProgramRecord, SourceTag

logger = logging.getLogger(__name__)

BASE_URL = "https://www.pathwaystoscience.org"
SEARCH_URL = (
    f"{BASE_URL}/programs.aspx?u=Undergrads_Undergraduate+Students&sm=&sd=&sy="
    "&dd=SummerResearch_Summer+Research+Opportunity&submit=y"
    "&dhub=SummerResearch_Summer+Research+Opportunity&all=all"
)
CONCURRENT_REQUESTS = 10
REQUEST_DELAY = 1.0
BATCH_SIZE = 20

HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) Chrome/120.0.0.0 Safari/537.36",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "Pragma": "no-cache",
}

CONTENT_SELECTOR = ".col-sm-7.text-left"
ALTERNATIVE_LINK_SELECTORS = (
    "#ctl00_ContentPlaceHolder1_SearchResults a",
    ".panel12 a",
    ".col-sm-7.text-left a",
)
DESCRIPTION_END_MARKERS = (
    "Application Deadline:", "Deadline:", "Eligibility:", "Requirements:",
    "How to Apply:", "Contact:", "For more information:",
)

_PROGID_RE = re.compile(r"progid=(\d+)")
_URL_RE = re.compile(r"https?://[\w\d./?=#&%:-]+")
_EMAIL_RE = re.compile(r"[\w._%+-]+@[\w.-]+\.[a-zA-Z]{2,}")
_PHONE_RE = re.compile(r"\(\d{3}\)\s*\d{3}[-\s]?\d{4}|\d{3}[-\s]?\d{3}[-\s]?\d{4}")
_WHITESPACE_RE = re.compile(r"\s+")
_DEADLINE_TEXT_PATTERNS = (
    re.compile(r"Application Deadline:\s*([\d/]+\d{4})", re.IGNORECASE),
    re.compile(r"Application Deadline:\s*([A-Za-z]+\s+\d{1,2},?\s+\d{4})", re.IGNORECASE),
)


def absolute_url(href: str) -> str:
    if href.startswith("http"):
        return href
    return f"{BASE_URL}{'' if href.startswith('/') else '/'}{href}"


def _label_regex(label: str) -> re.Pattern:
    """Regex for '<b>Label</b> text' in raw HTML, skipping wrapping inline tags."""
    return re.compile(
        rf"<b>\s*{re.escape(label)}\s*</b>\s*(?:<(?!br|/div|b>)[^>]+>\s*)*([^<]+)",
        re.IGNORECASE,
    )


def clean_description_text(text: str) -> str:
    """Remove URLs, emails and phone numbers, then collapse whitespace."""
    text = _URL_RE.sub("", text)
    text = _EMAIL_RE.sub("", text)
    text = _PHONE_RE.sub("", text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def extract_program_links(html: str) -> Set[str]:
    """Discover detail-page links on the listing page.

    Order: links inside .progigert blocks, then program ids scraped from the
    raw HTML, then alternative result-container selectors.
    """
    soup = BeautifulSoup(html, "html.parser")
    links: Set[str] = set()

    blocks = soup.select(".progigert")
    logger.info("Found %d elements with class 'progigert'", len(blocks))
    for block in blocks:
        for anchor in block.find_all("a"):
            href = anchor.get("href")
            if href:
                links.add(absolute_url(href))

    if not links:
        for prog_id in _PROGID_RE.findall(html):
            links.add(f"{BASE_URL}/programs/view.aspx?progid={prog_id}")

    if not links:
        for selector in ALTERNATIVE_LINK_SELECTORS:
            for anchor in soup.select(selector):
                href = anchor.get("href")
                if href and "programs/view.aspx" in href:
                    links.add(absolute_url(href))
            if links:
                break

    return links


def _find_label(content: Tag, label: str) -> Optional[Tag]:
    for bold in content.find_all("b"):
        if label in bold.get_text():
            return bold
    return None


def _text_after_label(label_tag: Tag) -> str:
    """Text directly following a <b> label, up to the next tag."""
    parts = []
    for sibling in label_tag.next_siblings:
        if isinstance(sibling, NavigableString):
            parts.append(str(sibling))
            continue
        break
    return "".join(parts).strip()


def _section_lookup(content: Optional[Tag], html: str, label: str) -> str:
    """Label-anchored DOM lookup first, raw-HTML regex second."""
    if content is not None:
        label_tag = _find_label(content, label)
        if label_tag is not None:
            text = _text_after_label(label_tag)
            if text:
                return text
    match = _label_regex(label).search(html)
    return match.group(1).strip() if match else ""


def parse_description(content: Optional[Tag], html: str) -> str:
    description = _section_lookup(content, html, "Description:")
    if not description and content is not None:
        label_tag = _find_label(content, "Description:")
        if label_tag is not None and label_tag.parent is not None:
            text = label_tag.parent.get_text(" ")
            if "Description:" in text:
                description = text.split("Description:", 1)[1]
                for marker in DESCRIPTION_END_MARKERS:
                    if marker in description:
                        description = description.split(marker, 1)[0]
    return clean_description_text(description) if description else ""


def parse_deadline_text(content: Optional[Tag], html: str) -> str:
    deadline = _section_lookup(content, html, "Application Deadline:")
    if not deadline and content is not None:
        all_text = content.get_text(" ")
        for pattern in _DEADLINE_TEXT_PATTERNS:
            match = pattern.search(all_text)
            if match:
                deadline = match.group(1).strip()
                break
    return deadline


def parse_institution(content: Optional[Tag], html: str) -> str:
    if content is not None:
        label_tag = _find_label(content, "Participating Institution(s):")
        if label_tag is not None and label_tag.parent is not None:
            section = label_tag.parent
            for selector in ('a span[style="font-size:9pt"]', 'span[style="font-size:9pt"]', "a"):
                found = section.select_one(selector)
                if found is not None and found.get_text(strip=True):
                    return found.get_text(strip=True)
    return _section_lookup(None, html, "Participating Institution(s):")


def _split_keywords(text: str) -> List[str]:
    return [part.strip() for part in re.split(r"[\n,]+", text) if part.strip()]


def parse_keywords(content: Optional[Tag], html: str) -> List[str]:
    """Keywords live in a span right after a 'Keywords:' div."""
    if content is not None:
        for div in content.find_all("div"):
            if "Keywords:" in div.get_text() and not div.find("div"):
                span = div.find_next_sibling("span")
                if span is not None and span.get_text(strip=True):
                    return _split_keywords(span.get_text())
    return _split_keywords(_section_lookup(None, html, "Keywords:"))


def parse_disciplines(content: Optional[Tag], html: str) -> List[str]:
    return _split_keywords(_section_lookup(content, html, "Academic Disciplines:"))


def parse_program_page(html: str, url: str) -> RawProgramRecord:
    """Parse one detail page.

    Missing title or institution yields a record with null title/institution
    and empty content; callers must treat it as unusable.
    """
    soup = BeautifulSoup(html, "html.parser")
    content = soup.select_one(CONTENT_SELECTOR)

    heading = soup.find("h1") or (content.find("h1") if content is not None else None)
    title = heading.get_text(strip=True) if heading is not None else ""
    institution = parse_institution(content, html)

    if not title or not institution:
        logger.warning("Missing required fields in program details url=%s", url)
        return RawProgramRecord(
            source=SourceTag.PATHWAYS_TO_SCIENCE,
            title=None,
            institution=None,
            description="",
            deadline_raw="",
            field_text=[],
            url=url,
        )

    program_url = url
    if content is not None:
        link = content.select_one('div.well a[target="_blank"]')
        if link is not None and link.get("href"):
            program_url = link["href"]

    field_text = parse_keywords(content, html) + parse_disciplines(content, html)
    return RawProgramRecord(
        source=SourceTag.PATHWAYS_TO_SCIENCE,
        title=title,
        institution=institution,
        description=parse_description(content, html),
        deadline_raw=parse_deadline_text(content, html) or None,
        field_text=list(dict.fromkeys(field_text)),
        url=program_url,
    )


def _batches(items: List[str], size: int) -> Iterable[List[str]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


class PathwaysAdapter(BaseAdapter):
    """Adapter for the Pathways to Science program search.

    Errors from the listing fetch propagate (429 as RateLimitedError).
    Detail-page failures are logged and dropped, never retried.
    """

    def __init__(
        self,
        search_url: str = SEARCH_URL,
        batch_size: int = BATCH_SIZE,
        concurrency: int = CONCURRENT_REQUESTS,
        request_delay: float = REQUEST_DELAY,
        timeout: float = 30.0,
    ):
        self.search_url = search_url
        self.batch_size = batch_size
        self.concurrency = concurrency
        self.request_delay = request_delay
        self.timeout = httpx.Timeout(timeout)

    @property
    def source_tag(self) -> SourceTag:
        return SourceTag.PATHWAYS_TO_SCIENCE

    async def fetch_programs(self) -> List[RawProgramRecord]:
        async with httpx.AsyncClient(
            timeout=self.timeout, follow_redirects=True, headers=HEADERS
        ) as client:
            listing = await self._fetch_listing(client)
            links = sorted(extract_program_links(listing))
            logger.info("Detected %d unique program links to process", len(links))
            if not links:
                return []
            return await self._fetch_all_details(client, links)

    async def _fetch_listing(self, client: httpx.AsyncClient) -> str:
        response = await client.get(self.search_url, headers={"Referer": BASE_URL})
        if response.status_code == 429:
            raise RateLimitedError(self.source_tag.value, response.headers.get("retry-after"))
        response.raise_for_status()
        return response.text

    async def _fetch_all_details(
        self, client: httpx.AsyncClient, links: List[str]
    ) -> List[RawProgramRecord]:
        semaphore = asyncio.Semaphore(self.concurrency)
        programs: List[RawProgramRecord] = []
        batches = list(_batches(links, self.batch_size))

        for index, batch in enumerate(batches, start=1):
            logger.info("Processing batch %d/%d size=%d", index, len(batches), len(batch))
            results = await asyncio.gather(
                *(self._fetch_details(client, semaphore, url) for url in batch),
                return_exceptions=True,
            )
            for url, result in zip(batch, results):
                if isinstance(result, BaseException):
                    logger.error("detail_fetch_failed url=%s error=%s", url, result)
                    continue
                programs.append(result)

        logger.info(
            "fetch_summary source=%s scraped=%d failed=%d",
            self.source_tag.value, len(programs), len(links) - len(programs),
        )
        return programs

    async def _fetch_details(
        self, client: httpx.AsyncClient, semaphore: asyncio.Semaphore, url: str
    ) -> RawProgramRecord:
        async with semaphore:
            await asyncio.sleep(self.request_delay)
            logger.debug("Fetching program details from: %s", url)
            response = await client.get(url, headers={"Referer": url})
            response.raise_for_status()
        return parse_program_page(response.text, url)
