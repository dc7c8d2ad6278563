"""Deadline normalization across inconsistent source formats."""

import logging
import re
from datetime import date, datetime
from typing import Optional, Union

logger = logging.getLogger(__name__)

UNKNOWN_DEADLINE = "unknown"
PATHWAYS_DEADLINE_NOTICE = "Check website for deadlines"
DEFAULT_DEADLINE_YEAR = 2025
MIN_DEADLINE_YEAR = 2000
MAX_YEARS_AHEAD = 5

MONTHS = [
    "january", "february", "march", "april", "may", "june",
    "july", "august", "september", "october", "november", "december",
]

_NUMERIC_DATE_RE = re.compile(r"\b(\d{1,2})[/\-.](\d{1,2})[/\-.](\d{2,4})\b")
_TEXT_DATE_RE = re.compile(
    r"\b([A-Za-z]{3,})\.?\s+(\d{1,2})(?:st|nd|rd|th)?,?\s+(\d{4})\b"
)
_ISO_DATE_RE = re.compile(r"\b(\d{4})-(\d{2})-(\d{2})")
_MONTH_NAME_RE = re.compile("|".join(MONTHS), re.IGNORECASE)
_DAY_RE = re.compile(r"\b(\d{1,2})(?:st|nd|rd|th)?\b")
_YEAR_RE = re.compile(r"\b(\d{4})\b")


def month_number(name: str) -> Optional[int]:
    """Month index (1-12) for a full or partial month name like 'Febr' or 'Sept'."""
    token = name.lower().rstrip(".")
    if len(token) < 3:
        return None
    for index, month in enumerate(MONTHS, start=1):
        if month.startswith(token):
            return index
    return None


def _in_range(value: date, today: date) -> bool:
    return MIN_DEADLINE_YEAR <= value.year <= today.year + MAX_YEARS_AHEAD


def _safe_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _from_numeric(text: str) -> Optional[date]:
    match = _NUMERIC_DATE_RE.search(text)
    if not match:
        return None
    month, day, year = (int(part) for part in match.groups())
    if year < 100:
        year += 2000
    return _safe_date(year, month, day)


def _from_text_month(text: str) -> Optional[date]:
    for match in _TEXT_DATE_RE.finditer(text):
        month = month_number(match.group(1))
        if month:
            return _safe_date(int(match.group(3)), month, int(match.group(2)))
    return None


def _from_iso(text: str) -> Optional[date]:
    match = _ISO_DATE_RE.search(text)
    if not match:
        return None
    year, month, day = (int(part) for part in match.groups())
    return _safe_date(year, month, day)


def _from_loose_text(text: str, default_year: int) -> Optional[date]:
    month_match = _MONTH_NAME_RE.search(text)
    if not month_match:
        return None
    month = MONTHS.index(month_match.group(0).lower()) + 1
    day_match = _DAY_RE.search(text)
    if not day_match:
        return None
    year_match = _YEAR_RE.search(text)
    year = int(year_match.group(1)) if year_match else default_year
    return _safe_date(year, month, int(day_match.group(1)))


def parse_deadline(
    raw: Union[str, date, datetime, None],
    source_tag: Optional[str] = None,
    default_year: int = DEFAULT_DEADLINE_YEAR,
    today: Optional[date] = None,
) -> str:
    """Parse a deadline into ``YYYY-MM-DD`` or the ``"unknown"`` marker.

    Pathways to Science deadlines are free text too often to trust, so that
    source always gets the "check website" notice instead of a parse.

    Args:
        raw: Deadline as the source gave it.
        source_tag: Source of the record (SourceTag value).
        default_year: Year assumed when only month and day are present.
        today: Reference date for the plausibility window (defaults to today).

    Returns:
        ISO date string, ``"unknown"``, or the Pathways notice.
    """
    if source_tag is not None and str(getattr(source_tag, "value", source_tag)) == "PathwaysToScience":
        return PATHWAYS_DEADLINE_NOTICE

    today = today or date.today()
    if raw is None:
        return UNKNOWN_DEADLINE

    if isinstance(raw, datetime):
        raw = raw.date()
    if isinstance(raw, date):
        return raw.isoformat() if _in_range(raw, today) else UNKNOWN_DEADLINE

    text = str(raw).strip()
    if not text:
        return UNKNOWN_DEADLINE

    parsed = (
        _from_numeric(text)
        or _from_text_month(text)
        or _from_iso(text)
        or _from_loose_text(text, default_year)
    )
    if parsed is None:
        logger.debug("deadline_unparsed raw=%r", text)
        return UNKNOWN_DEADLINE
    if not _in_range(parsed, today):
        logger.debug("deadline_out_of_range raw=%r parsed=%s", text, parsed)
        return UNKNOWN_DEADLINE
    return parsed.isoformat()
