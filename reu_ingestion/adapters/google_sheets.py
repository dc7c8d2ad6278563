"""Google Sheets adapter - REU workbook read through the Sheets v4 API."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple
from urllib.parse import quote

import httpx
from google.auth.transport.requests import Request
from google.oauth2 import service_account

from .base import ADAPTER_TIMEOUT, BaseAdapter
from ..models import ProgramStatus, RawProgramRecord, SourceTag
from ..normalizer.pipeline import clean_stipend, derive_title, is_placeholder_title

logger = logging.getLogger(__name__)

SHEETS_API_URL = "https://sheets.googleapis.com/v4/spreadsheets"
SHEETS_SCOPE = "https://www.googleapis.com/auth/spreadsheets.readonly"

HEADER_SCAN_ROWS = 10
HEADER_SCAN_COLS = 10
HEADER_MARKERS = ("REU", "Program", "Institution", "Deadline")
FALLBACK_HEADER_ROW = 1
MAX_DATA_ROWS = 300
SUMMER_DEADLINE_HEADER = "SORTED IN BY Application Deadline for Summer 2025"
SHEETS_REQUIREMENTS = "Please check the program website for specific eligibility requirements."


def default_fallback_programs() -> List[RawProgramRecord]:
    """Records returned when the workbook cannot be authenticated or read."""
    return [
        RawProgramRecord(
            source=SourceTag.GOOGLE_SHEETS,
            title="REU in Computer Science",
            institution="Example University",
            description="This is a fallback entry since Google Sheets authentication failed.",
            location="Remote",
            field_text="Computer Science",
            deadline_raw="February 15, 2024",
            stipend_raw="$6,000",
            duration_raw="10 weeks",
            url="https://example.edu/reu",
        )
    ]


def service_account_token(credentials_file: str) -> str:
    """Exchange service-account credentials for an OAuth access token (blocking)."""
    credentials = service_account.Credentials.from_service_account_file(
        credentials_file, scopes=[SHEETS_SCOPE]
    )
    credentials.refresh(Request())
    return credentials.token


class SheetGrid:
    """Value grid of one worksheet, addressed by zero-based (row, col)."""

    def __init__(self, values: Sequence[Sequence], row_count: Optional[int] = None):
        self.values = values
        self.row_count = row_count if row_count is not None else len(values)

    def cell(self, row: int, col: int) -> str:
        if row < 0 or col < 0 or row >= len(self.values):
            return ""
        cells = self.values[row]
        if col >= len(cells) or cells[col] is None:
            return ""
        return str(cells[col]).strip()

    def row(self, row: int) -> List[str]:
        if row < 0 or row >= len(self.values):
            return []
        return [self.cell(row, col) for col in range(len(self.values[row]))]


@dataclass
class ColumnMap:
    program_name: int
    institution: int
    location: int
    field: int
    deadline: int
    description: int
    website: int
    stipend: int


def find_header_row(grid: SheetGrid) -> Tuple[int, List[str]]:
    """Locate the header row by marker text in the top-left corner of the sheet."""
    for row in range(HEADER_SCAN_ROWS):
        scanned = [grid.cell(row, col) for col in range(HEADER_SCAN_COLS)]
        if any(marker in value for value in scanned if value for marker in HEADER_MARKERS):
            logger.info("Found header row at index %d", row)
            return row, grid.row(row)
    logger.warning("Couldn't find a header row. Using row %d as header.", FALLBACK_HEADER_ROW)
    return FALLBACK_HEADER_ROW, grid.row(FALLBACK_HEADER_ROW)


def find_column(headers: Sequence[str], needles: Sequence[str], fallback: int) -> int:
    """Index of the first header containing any needle, else the fallback index."""
    for index, header in enumerate(headers):
        if header and any(needle in header for needle in needles):
            return index
    return fallback


def find_deadline_column(headers: Sequence[str], fallback: int = 4) -> int:
    """Deadline column: versioned exact label, then loose Summer 2025 match, then generic."""
    for index, header in enumerate(headers):
        if header and SUMMER_DEADLINE_HEADER in header:
            return index
    for index, header in enumerate(headers):
        if header and "Summer 2025" in header and "Deadline" in header:
            return index
    column = find_column(headers, ("Deadline", "Application Deadline", "Due Date"), -1)
    if column == -1:
        logger.info("No deadline column found, using default column index %d", fallback)
        return fallback
    return column


def resolve_columns(headers: Sequence[str]) -> ColumnMap:
    """Map column roles to indexes, each role degrading to its own fixed index."""
    program_name = find_column(headers, ("REU Site Name",), -1)
    if program_name == -1:
        program_name = find_column(headers, ("Program", "Title", "Site Name"), 9)
    institution = find_column(headers, ("Host institution", "Institution"), 12)
    return ColumnMap(
        program_name=program_name,
        institution=institution,
        location=find_column(headers, ("Location",), institution),
        field=find_column(headers, ("Field",), 10),
        deadline=find_deadline_column(headers),
        description=find_column(headers, ("Description",), 11),
        website=find_column(headers, ("Website",), 1),
        stipend=find_column(headers, ("Stipend",), 5),
    )


class GoogleSheetsAdapter(BaseAdapter):
    """Adapter for the community-maintained REU spreadsheet.

    Never raises from fetch_programs: authentication or structural failures
    return the fallback list instead.
    """

    def __init__(
        self,
        spreadsheet_id: str,
        credentials_file: Optional[str] = None,
        token_provider: Optional[Callable[[], str]] = None,
        fallback_programs: Optional[List[RawProgramRecord]] = None,
        max_rows: int = MAX_DATA_ROWS,
    ):
        """Initialize adapter.

        Args:
            spreadsheet_id: Workbook id (env: GOOGLE_SHEETS_ID)
            credentials_file: Service-account JSON path (env: GOOGLE_SERVICE_ACCOUNT_FILE)
            token_provider: Callable returning an access token; overrides credentials_file
            fallback_programs: Records returned on failure
            max_rows: Maximum data rows read below the header
        """
        self.spreadsheet_id = spreadsheet_id
        self.credentials_file = credentials_file
        self.token_provider = token_provider
        self.fallback_programs = fallback_programs
        self.max_rows = max_rows

    @property
    def source_tag(self) -> SourceTag:
        return SourceTag.GOOGLE_SHEETS

    async def fetch_programs(self) -> List[RawProgramRecord]:
        logger.info("Fetching programs from %s", self.source_tag.value)
        try:
            token = await self._access_token()
            grid = await self._load_grid(token)
            programs = self.parse_grid(grid)
        except Exception as e:
            logger.error(f"[{self.source_tag.value}] Error scraping Google Sheets: {e}")
            return self._fallback()
        logger.info(f"Scraped {len(programs)} programs from Google Sheets")
        return programs

    def _fallback(self) -> List[RawProgramRecord]:
        logger.warning("Using fallback data for Google Sheets adapter")
        if self.fallback_programs is not None:
            return list(self.fallback_programs)
        return default_fallback_programs()

    async def _access_token(self) -> str:
        if self.token_provider is not None:
            return await asyncio.to_thread(self.token_provider)
        if not self.credentials_file:
            raise ValueError("Google Sheets credentials not configured")
        return await asyncio.to_thread(service_account_token, self.credentials_file)

    async def _load_grid(self, token: str) -> SheetGrid:
        """Load document metadata, then the first worksheet's value grid."""
        headers = {"Authorization": f"Bearer {token}", "Accept": "application/json"}
        base_url = f"{SHEETS_API_URL}/{self.spreadsheet_id}"
        async with httpx.AsyncClient(timeout=ADAPTER_TIMEOUT, headers=headers) as client:
            meta_response = await client.get(
                base_url, params={"fields": "properties.title,sheets.properties"}
            )
            meta_response.raise_for_status()
            meta = meta_response.json()

            sheets = meta.get("sheets") or []
            if not sheets:
                raise ValueError("Spreadsheet has no worksheets")
            sheet = sheets[0].get("properties") or {}
            sheet_title = sheet.get("title", "Sheet1")
            row_count = (sheet.get("gridProperties") or {}).get("rowCount")
            logger.info(
                "Loaded document: %s sheet=%s rows=%s",
                (meta.get("properties") or {}).get("title"), sheet_title, row_count,
            )

            values_response = await client.get(
                f"{base_url}/values/{quote(a1_sheet_range(sheet_title), safe='')}"
            )
            values_response.raise_for_status()
            values = values_response.json().get("values") or []

        return SheetGrid(values, row_count)

    def parse_grid(self, grid: SheetGrid) -> List[RawProgramRecord]:
        """Turn a loaded worksheet into raw program records."""
        header_row, headers = find_header_row(grid)
        columns = resolve_columns(headers)
        logger.debug("Resolved spreadsheet columns: %s", columns)

        programs = []
        last_row = min(grid.row_count, header_row + self.max_rows)
        for row in range(header_row + 1, last_row):
            try:
                record = self._row_to_record(grid, row, columns)
            except Exception as e:
                logger.error(f"Error processing row {row}: {e}")
                continue
            if record:
                programs.append(record)
        return programs

    def _row_to_record(self, grid: SheetGrid, row: int, columns: ColumnMap) -> Optional[RawProgramRecord]:
        title = grid.cell(row, columns.program_name)
        if not title:
            return None

        institution = grid.cell(row, columns.institution)
        field = grid.cell(row, columns.field) or "STEM"
        if is_placeholder_title(title):
            title = derive_title(institution, field)

        website = grid.cell(row, columns.website)
        return RawProgramRecord(
            source=self.source_tag,
            title=title,
            institution=institution,
            location=grid.cell(row, columns.location) or "United States",
            field_text=field,
            description=grid.cell(row, columns.description),
            deadline_raw=grid.cell(row, columns.deadline) or None,
            stipend_raw=clean_stipend(grid.cell(row, columns.stipend)),
            duration_raw="10 weeks",
            requirements_raw=SHEETS_REQUIREMENTS,
            url=website,
            status=ProgramStatus.ACTIVE,
        )


def a1_sheet_range(title: str) -> str:
    """A1-notation range for a whole sheet, quoting names with spaces or quotes."""
    return "'" + title.replace("'", "''") + "'"
