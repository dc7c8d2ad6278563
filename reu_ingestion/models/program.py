"""Program records - raw extractor output, normalized and stored shapes."""

from datetime import date, datetime
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, Field, field_validator


class SourceTag(str, Enum):
    """Closed set of sources a program record can come from."""

    NSF = "NSF"
    GOOGLE_SHEETS = "GoogleSheets"
    PATHWAYS_TO_SCIENCE = "PathwaysToScience"
    ETAP = "ETAP"
    MANUAL = "Manual"


class ProgramStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    ACTIVE = "active"


class RawProgramRecord(BaseModel):
    """Extractor output before normalization.

    Shape is loose on purpose: titles may be placeholders, deadlines come in
    whatever format the source uses, and field text is unstructured.
    """

    source: SourceTag = Field(..., description="Source the record was scraped from")
    title: Optional[str] = Field(None, description="Program title, may be placeholder text")
    institution: Optional[str] = Field(None, description="Host institution")
    location: Optional[str] = Field(None, description="City/state or free text")
    field_text: Union[str, List[str]] = Field(default_factory=list, description="Unstructured field/keyword text")
    description: str = Field(default="", description="Description, may contain boilerplate")
    deadline_raw: Optional[Union[datetime, date, str]] = Field(None, description="Deadline as the source gives it")
    stipend_raw: Optional[str] = Field(None, description="Stipend text")
    duration_raw: Optional[str] = Field(None, description="Duration text")
    requirements_raw: Optional[str] = Field(None, description="Eligibility text")
    url: Optional[str] = Field(None, description="Program or application URL")
    status: Optional[ProgramStatus] = Field(None, description="Status the source assigns, if any")

    @property
    def is_usable(self) -> bool:
        """False for records the web extractor emits without title/institution."""
        return bool(self.title and self.title.strip() and self.institution and self.institution.strip())


class NormalizedProgram(BaseModel):
    """Canonical program shape handed to the reconciling upsert."""

    title: str = Field(..., min_length=1)
    institution: str = Field(..., min_length=1)
    location: str = Field(default="Unknown Location")
    fields: List[str] = Field(..., min_length=1, description="Canonical discipline tags")
    description: str = Field(default="")
    deadline: str = Field(default="unknown", description="YYYY-MM-DD, 'unknown' or a per-source notice")
    stipend: str = Field(default="")
    duration: str = Field(default="10 weeks")
    requirements: str = Field(default="Please check the program website for specific eligibility requirements.")
    link: str = Field(default="")
    source: SourceTag
    status: ProgramStatus = Field(default=ProgramStatus.ACTIVE)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator("title", "institution")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    def match_key(self) -> str:
        """Case-insensitive (title, institution) identity used for matching."""
        return f"{self.title.lower()}|{self.institution.lower()}"

    class Config:
        json_schema_extra = {
            "example": {
                "title": "REU Site: Molecular Biology at Tufts",
                "institution": "Tufts University",
                "location": "Medford, MA",
                "fields": ["Biology", "Chemistry"],
                "description": "Ten weeks of mentored research in molecular biology.",
                "deadline": "2025-02-15",
                "stipend": "$6,000",
                "duration": "10 weeks",
                "requirements": "U.S. citizenship or permanent residency typically required.",
                "link": "https://example.edu/reu",
                "source": "NSF",
                "status": "approved",
            }
        }


class StoredProgram(NormalizedProgram):
    """A NormalizedProgram as persisted, with its store identifier."""

    id: str = Field(..., description="Store identifier")

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value) -> str:
        return str(value)
