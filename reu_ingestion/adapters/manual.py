"""Manual program list - curated records kept in a JSON file."""

import json
import logging
from pathlib import Path
from typing import List, Optional, Union

from .base import BaseAdapter
from ..models import RawProgramRecord, SourceTag

logger = logging.getLogger(__name__)


class ManualAdapter(BaseAdapter):
    """Loads hand-curated programs.

    The file holds a JSON list of objects using RawProgramRecord keys
    (``title``, ``institution``, ``field_text``, ``deadline_raw``...).
    No file configured means no manual programs.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(path) if path else None

    @property
    def source_tag(self) -> SourceTag:
        return SourceTag.MANUAL

    async def fetch_programs(self) -> List[RawProgramRecord]:
        if self.path is None:
            logger.info("No manual programs file configured")
            return []

        with open(self.path) as f:
            entries = json.load(f)
        if not isinstance(entries, list):
            raise ValueError(f"Manual programs file must contain a JSON list: {self.path}")

        records = []
        for entry in entries:
            entry = {**entry, "source": self.source_tag}
            records.append(RawProgramRecord(**entry))
        logger.info("Loaded %d manual programs from %s", len(records), self.path)
        return records
