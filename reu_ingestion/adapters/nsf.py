"""NSF award-opportunity API adapters (NSF and ETAP record mappings)."""

import logging
import time
from abc import abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx

from .base import ADAPTER_TIMEOUT, BaseAdapter, adapter_retry
from ..models import ProgramStatus, RawProgramRecord, SourceTag

logger = logging.getLogger(__name__)

NSF_API_URL = "https://etap.nsf.gov/api/edge/awards/public/opportunities/search"
DEFAULT_NSF_DEADLINE = "2024-02-15"
NSF_STIPEND = "$5,000-$6,000"
NSF_DURATION = "10 weeks"
NSF_REQUIREMENTS = "U.S. citizenship or permanent residency typically required. Undergraduate students only."


class NsfApiAdapter(BaseAdapter):
    """Shared request/retry logic for the NSF opportunity search endpoint.

    Subclasses only decide how one opportunity maps to a RawProgramRecord.
    Never raises from fetch_programs: on retry exhaustion or a malformed
    response the adapter logs the cause and returns [].
    """

    def __init__(
        self,
        api_token: str = "",
        user_id: str = "",
        search_term: str = "REU",
        api_url: str = NSF_API_URL,
    ):
        """Initialize adapter.

        Args:
            api_token: Bearer token for the award API (env: NSF_API_TOKEN)
            user_id: ETAP user id sent as a query parameter (env: NSF_USER_ID)
            search_term: Search keyword
            api_url: Search endpoint
        """
        self.api_token = api_token
        self.user_id = user_id
        self.search_term = search_term
        self.api_url = api_url

    async def fetch_programs(self) -> List[RawProgramRecord]:
        logger.info("Fetching programs from %s", self.source_tag.value)
        try:
            opportunities = await self._fetch_with_retry()
        except Exception as e:
            logger.error(f"[{self.source_tag.value}] All retries exhausted: {e}")
            return []

        records = []
        for opportunity in opportunities:
            try:
                record = self._to_record(opportunity)
            except Exception as e:
                logger.error(f"[{self.source_tag.value}] Error processing opportunity: {e}")
                continue
            if record:
                records.append(record)

        logger.info(f"Normalized {len(records)} programs from {self.source_tag.value}")
        return records

    @adapter_retry()
    async def _fetch_with_retry(self) -> List[Dict[str, Any]]:
        """GET the search endpoint; transport errors and non-2xx are retried."""
        url = self.api_url
        start = time.monotonic()
        status_code = None

        params = {"s": self.search_term, "userId": self.user_id}
        headers = {
            "Authorization": f"Bearer {self.api_token}",
            "Accept": "*/*",
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient(timeout=ADAPTER_TIMEOUT) as client:
                response = await client.get(url, params=params, headers=headers)
                status_code = response.status_code
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException as e:
            duration = time.monotonic() - start
            logger.error(
                f"[{self.source_tag.value}] url={url} status=timeout "
                f"duration={duration:.2f}s result=failure error='{e}'"
            )
            raise
        except Exception as e:
            duration = time.monotonic() - start
            logger.error(
                f"[{self.source_tag.value}] url={url} status={status_code} "
                f"duration={duration:.2f}s result=failure error='{e}'"
            )
            raise

        duration = time.monotonic() - start
        logger.info(
            f"[{self.source_tag.value}] url={url} status={status_code} "
            f"duration={duration:.2f}s result=success"
        )

        body = (data.get("response") or {}).get("body") or []
        logger.info(f"NSF API returned {len(body)} opportunities")
        return body

    @abstractmethod
    def _to_record(self, opportunity: Dict[str, Any]) -> Optional[RawProgramRecord]:
        """Map one opportunity to a record, or None to skip it."""


class NsfAdapter(NsfApiAdapter):
    """NSF REU sites: award + opportunity JSON mapped with fixed program defaults."""

    def __init__(self, *args, default_deadline: str = DEFAULT_NSF_DEADLINE, **kwargs):
        super().__init__(*args, **kwargs)
        self.default_deadline = default_deadline

    @property
    def source_tag(self) -> SourceTag:
        return SourceTag.NSF

    def _to_record(self, opportunity: Dict[str, Any]) -> Optional[RawProgramRecord]:
        award = opportunity.get("award") or {}
        opp = opportunity.get("opportunity") or {}

        title = award.get("awardTitle")
        institution = award.get("institutionName")
        link = opp.get("url")
        logger.debug(
            "Processing opportunity title=%r institution=%r url=%s", title, institution, link
        )

        if not (title and institution and link):
            logger.warning(
                "Skipping opportunity due to missing required fields: "
                "has_title=%s has_institution=%s has_link=%s",
                bool(title), bool(institution), bool(link),
            )
            return None

        city = award.get("awardeeCity")
        state = award.get("awardeeStateCode")
        location = f"{city}, {state}" if city and state else institution

        raw_fields = self._collect_field_candidates(opportunity, award)
        description = (
            award.get("abstractText")
            or award.get("programOverview")
            or award.get("description")
            or award.get("awardAbstract")
            or ""
        )
        if not description:
            field_label = ", ".join(raw_fields) if raw_fields else "STEM"
            description = f"Research experience in {field_label} at {institution}."

        return RawProgramRecord(
            source=self.source_tag,
            title=title,
            institution=institution,
            location=location,
            field_text=raw_fields,
            description=description,
            deadline_raw=opp.get("endDate") or self.default_deadline,
            stipend_raw=NSF_STIPEND,
            duration_raw=NSF_DURATION,
            requirements_raw=NSF_REQUIREMENTS,
            url=link,
            status=ProgramStatus.APPROVED,
        )

    @staticmethod
    def _collect_field_candidates(opportunity: Dict[str, Any], award: Dict[str, Any]) -> List[str]:
        """Gather raw field text from every place the API may put it, most reliable first."""
        raw_fields: List[str] = []

        topics = opportunity.get("researchTopics")
        if topics:
            raw_fields.extend(t.strip() for t in str(topics).split(";"))

        studies = opportunity.get("fieldOfStudies")
        if isinstance(studies, list):
            raw_fields.extend(str(s) for s in studies if s)

        for key in ("programElement", "programReference"):
            value = award.get(key)
            if isinstance(value, str) and value:
                raw_fields.extend(part.strip() for part in value.split(","))

        for key in ("directorate", "division", "fundProgramName"):
            value = award.get(key)
            if value:
                raw_fields.append(str(value))

        return [f for f in raw_fields if f]


class EtapAdapter(NsfApiAdapter):
    """ETAP mapping of the same payload: institution address, program element
    objects, application deadline and start/end dates."""

    @property
    def source_tag(self) -> SourceTag:
        return SourceTag.ETAP

    def _to_record(self, opportunity: Dict[str, Any]) -> Optional[RawProgramRecord]:
        award = opportunity.get("award") or {}
        opp = opportunity.get("opportunity") or {}

        title = award.get("awardTitle")
        institution = award.get("institutionName")
        link = opp.get("url")
        if not (title and institution and link):
            logger.warning(
                "Skipping ETAP opportunity: has_title=%s has_institution=%s has_link=%s",
                bool(title), bool(institution), bool(link),
            )
            return None

        address = award.get("institutionAddress") or {}
        if address.get("city") and address.get("stateCode"):
            location = f"{address['city']}, {address['stateCode']}"
        else:
            location = "United States"

        elements = award.get("programElement")
        field_text = "STEM"
        if isinstance(elements, list):
            names = [pe.get("text") for pe in elements if isinstance(pe, dict) and pe.get("text")]
            if names:
                field_text = ", ".join(names)

        stipend_amount = opp.get("stipendAmount")
        return RawProgramRecord(
            source=self.source_tag,
            title=title,
            institution=institution,
            location=location,
            field_text=field_text,
            description=opp.get("description") or award.get("abstractText") or "",
            deadline_raw=opp.get("applicationDeadline"),
            stipend_raw=f"${stipend_amount}" if stipend_amount else None,
            duration_raw=self._duration_weeks(opp.get("startDate"), opp.get("endDate")),
            requirements_raw=opp.get("eligibility") or NSF_REQUIREMENTS,
            url=link,
            status=ProgramStatus.APPROVED,
        )

    @staticmethod
    def _duration_weeks(start: Optional[str], end: Optional[str]) -> str:
        start_date = _parse_api_date(start)
        end_date = _parse_api_date(end)
        if start_date and end_date:
            weeks = round((end_date - start_date).days / 7)
            if weeks > 0:
                return f"{weeks} weeks"
        return NSF_DURATION


def _parse_api_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).replace(tzinfo=None)
    except ValueError:
        logger.warning(f"Could not parse date: {value}")
        return None
