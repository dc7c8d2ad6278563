"""Base adapter interface for REU program sources."""

import logging
import time
from abc import ABC, abstractmethod
from typing import List, Optional

import httpx
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)

from ..models import RawProgramRecord, SourceTag

logger = logging.getLogger(__name__)

# Standard timeout for API adapters: 30s connect, 60s read
ADAPTER_TIMEOUT = httpx.Timeout(connect=30.0, read=60.0, write=30.0, pool=30.0)


class RateLimitedError(Exception):
    """Source answered 429; carries the Retry-After hint for rescheduling."""

    def __init__(self, source: str, retry_after: Optional[str] = None):
        self.source = source
        self.retry_after = retry_after
        super().__init__(f"Rate limit exceeded for {source}. Retry after {retry_after} seconds")


class BaseAdapter(ABC):
    """Abstract base class for program source adapters."""

    @property
    @abstractmethod
    def source_tag(self) -> SourceTag:
        """Source identifier attached to every record the adapter emits."""

    @abstractmethod
    async def fetch_programs(self) -> List[RawProgramRecord]:
        """Fetch raw program records from the source."""

    async def logged_fetch(self) -> List[RawProgramRecord]:
        """Fetch with a structured completion log; errors are logged and re-raised.

        The orchestrator uses this so a failing source is reported as rejected
        rather than as an empty success.
        """
        start = time.monotonic()
        try:
            results = await self.fetch_programs()
        except Exception as exc:
            duration_ms = (time.monotonic() - start) * 1000
            logger.error(
                "fetch_complete source=%s result=failure error=%s duration_ms=%.0f",
                self.source_tag.value,
                exc,
                duration_ms,
            )
            raise
        duration_ms = (time.monotonic() - start) * 1000
        logger.info(
            "fetch_complete source=%s result=success count=%d duration_ms=%.0f",
            self.source_tag.value,
            len(results),
            duration_ms,
        )
        return results


def adapter_retry():
    """Retry decorator for API calls: 3 attempts, backoff 2s then 4s, capped at 10s."""
    return retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=2, min=2, max=10),
        retry=retry_if_exception_type((httpx.HTTPError, httpx.TimeoutException)),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
