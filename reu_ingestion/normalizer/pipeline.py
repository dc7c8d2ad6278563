"""Normalization pipeline - RawProgramRecord -> NormalizedProgram."""

import logging
import re
from typing import Iterable, List, Optional, Union

from pydantic import ValidationError

from ..models import NormalizedProgram, ProgramStatus, RawProgramRecord, SourceTag
from .dates import DEFAULT_DEADLINE_YEAR, parse_deadline
from .fields import CANONICAL_FIELDS, FieldStandardizer, split_field_text

logger = logging.getLogger(__name__)

DEFAULT_LOCATION = "Unknown Location"
DEFAULT_DURATION = "10 weeks"
DEFAULT_REQUIREMENTS = "Please check the program website for specific eligibility requirements."

_PLACEHOLDER_MARKERS = ("100%", "in person", "in-person")
_READ_MORE_RE = re.compile(r"\.\.\.\s*read more|\(\s*read more\s*\)|read more|\.\.\.", re.IGNORECASE)
_PARAGRAPH_SPLIT_RE = re.compile(r"\s*\n\s*")
_WHITESPACE_RE = re.compile(r"\s+")
_MONEY_RE = re.compile(r"\$|\d+[,\d]*(\.\d+)?")


def is_placeholder_title(title: Optional[str]) -> bool:
    """Titles the spreadsheet stores as marketing text instead of a program name."""
    if not title:
        return False
    lowered = title.lower()
    return any(marker in lowered for marker in _PLACEHOLDER_MARKERS)


def derive_title(institution: Optional[str], field: Optional[str]) -> str:
    """Build a program title from institution and field text."""
    institution = (institution or "").strip()
    field = (field or "").strip()
    if institution and field:
        return f"{field} Research at {institution}"
    if institution:
        return f"Research Experience at {institution}"
    if field:
        return f"{field} Research Experience"
    return "Undergraduate Research Experience"


def clean_description(text: Optional[str]) -> str:
    """Strip "read more" boilerplate and normalize whitespace.

    Whitespace collapses to single spaces inside a paragraph; paragraphs are
    separated by one blank line.
    """
    if not text:
        return ""
    text = _READ_MORE_RE.sub("", str(text))
    paragraphs = []
    for chunk in _PARAGRAPH_SPLIT_RE.split(text):
        chunk = _WHITESPACE_RE.sub(" ", chunk).strip()
        if chunk:
            paragraphs.append(chunk)
    return "\n\n".join(paragraphs)


def clean_stipend(text: Optional[str]) -> str:
    """Keep stipend text only when it looks like a monetary value."""
    if not text:
        return ""
    text = str(text).strip()
    return text if _MONEY_RE.search(text) else ""


def first_field_token(field_text: Union[str, List[str], None]) -> Optional[str]:
    tokens = split_field_text(field_text)
    return tokens[0] if tokens else None


class ProgramNormalizer:
    """Turns raw extractor records into canonical programs.

    Records without a usable title or institution are rejected, never
    written partially.
    """

    def __init__(
        self,
        standardizer: Optional[FieldStandardizer] = None,
        default_deadline_year: int = DEFAULT_DEADLINE_YEAR,
    ):
        self.standardizer = standardizer or FieldStandardizer()
        self.default_deadline_year = default_deadline_year
        self.rejected = 0

    def normalize(self, raw: RawProgramRecord) -> Optional[NormalizedProgram]:
        """Normalize one record; returns None when it fails validation."""
        if not raw.is_usable:
            self.rejected += 1
            logger.warning(
                "normalize_rejected source=%s reason=missing_title_or_institution url=%s",
                raw.source.value,
                raw.url,
            )
            return None

        title = raw.title.strip()
        institution = raw.institution.strip()
        fields = self.standardizer.standardize_list(raw.field_text, raw.description, title)

        if raw.source == SourceTag.GOOGLE_SHEETS and is_placeholder_title(title):
            field_name = first_field_token(raw.field_text)
            if not field_name:
                field_name = next((tag for tag in fields if tag in CANONICAL_FIELDS), None)
            title = derive_title(institution, field_name)
            logger.debug("title_derived source=%s title=%r", raw.source.value, title)

        try:
            return NormalizedProgram(
                title=title,
                institution=institution,
                location=(raw.location or "").strip() or DEFAULT_LOCATION,
                fields=fields,
                description=clean_description(raw.description),
                deadline=parse_deadline(
                    raw.deadline_raw, raw.source.value, default_year=self.default_deadline_year
                ),
                stipend=clean_stipend(raw.stipend_raw),
                duration=(raw.duration_raw or "").strip() or DEFAULT_DURATION,
                requirements=(raw.requirements_raw or "").strip() or DEFAULT_REQUIREMENTS,
                link=(raw.url or "").strip(),
                source=raw.source,
                status=raw.status or ProgramStatus.ACTIVE,
            )
        except ValidationError as exc:
            self.rejected += 1
            logger.warning(
                "normalize_rejected source=%s title=%r reason=validation error=%s",
                raw.source.value,
                title,
                exc,
            )
            return None

    def normalize_batch(self, records: Iterable[RawProgramRecord]) -> List[NormalizedProgram]:
        """Normalize many records, dropping the ones that fail validation."""
        normalized = []
        total = 0
        for raw in records:
            total += 1
            program = self.normalize(raw)
            if program is not None:
                normalized.append(program)
        logger.info("normalize_complete total=%d valid=%d rejected=%d",
                    total, len(normalized), total - len(normalized))
        return normalized
