"""Pytest configuration and fixtures."""

import pytest

from reu_ingestion.database import InMemoryProgramStore
from reu_ingestion.models import NormalizedProgram, RawProgramRecord, SourceTag


@pytest.fixture
def sample_nsf_response():
    """Sample NSF opportunity search response."""
    return {
        "response": {
            "body": [
                {
                    "award": {
                        "awardTitle": "REU Site: Molecular Biology at Tufts",
                        "institutionName": "Tufts University",
                        "awardeeCity": "Medford",
                        "awardeeStateCode": "MA",
                        "abstractText": "Ten weeks of mentored research in molecular biology.",
                        "directorate": "BIO",
                        "programElement": "Biological Sciences, Chemistry",
                    },
                    "opportunity": {
                        "url": "https://tufts.edu/reu",
                        "endDate": "2025-02-15",
                    },
                    "researchTopics": "molecular biology; biochem",
                },
                {
                    "award": {
                        "awardTitle": "REU Site: Missing Link",
                        "institutionName": "Nowhere College",
                    },
                    "opportunity": {},
                },
            ]
        }
    }


@pytest.fixture
def sample_etap_response():
    """Sample ETAP-shaped opportunity search response."""
    return {
        "response": {
            "body": [
                {
                    "award": {
                        "awardTitle": "REU Site: Coastal Oceanography",
                        "institutionName": "Coastal State University",
                        "institutionAddress": {"city": "Wilmington", "stateCode": "NC"},
                        "programElement": [{"text": "Oceanography"}, {"text": "Marine Science"}],
                    },
                    "opportunity": {
                        "url": "https://coastal.edu/reu",
                        "description": "Field work on the Carolina coast.",
                        "applicationDeadline": "2025-02-01",
                        "startDate": "2025-06-01",
                        "endDate": "2025-08-10",
                        "stipendAmount": 6000,
                        "eligibility": "Rising juniors and seniors.",
                    },
                }
            ]
        }
    }


@pytest.fixture
def pathways_listing_html():
    """Listing page with two program blocks."""
    return """
    <html><body>
      <div class="progigert"><a href="/programs/view.aspx?progid=101">Ocean Chemistry REU</a></div>
      <div class="progigert"><a href="programs/view.aspx?progid=102">Robotics REU</a></div>
    </body></html>
    """


@pytest.fixture
def pathways_detail_html():
    """Detail page with every section the parser reads."""
    return """
    <html><body>
      <h1>REU Site: Ocean Chemistry</h1>
      <div class="col-sm-7 text-left">
        <div><b>Participating Institution(s):</b>
          <a href="/inst/1"><span style="font-size:9pt">Coastal State University</span></a></div>
        <div><b>Description:</b> Ten weeks of research on ocean chemistry. Contact reu@coastal.edu or (555) 123-4567.<br></div>
        <div><b>Application Deadline:</b> 02/15/2025<br></div>
        <div>Keywords:</div><span>Oceanography, Chemistry</span>
        <div><b>Academic Disciplines:</b> Earth Science, Chemistry<br></div>
        <div class="well"><a target="_blank" href="https://coastal.edu/reu">Apply</a></div>
      </div>
    </body></html>
    """


@pytest.fixture
def sample_sheet_values():
    """Worksheet values: a banner row, the header row, three data rows."""
    return [
        ["Updated weekly"],
        [
            "Website", "REU Site Name", "Host institution", "Location",
            "SORTED IN BY Application Deadline for Summer 2025", "Stipend", "Field", "Description",
        ],
        [
            "https://a.edu/reu", "Ocean REU", "A University", "Boston, MA",
            "February 1, 2025", "$6,000", "Oceanography", "Summer program on the harbor.",
        ],
        ["https://b.edu", "This is a 100% online REU", "Tufts", "", "", "TBD", "Biology", ""],
        ["", "", "C College"],
    ]


@pytest.fixture
def make_raw():
    def _make(**overrides) -> RawProgramRecord:
        values = {
            "source": SourceTag.NSF,
            "title": "REU Site: Molecular Biology",
            "institution": "Tufts University",
            "field_text": ["Biology"],
        }
        values.update(overrides)
        return RawProgramRecord(**values)
    return _make


@pytest.fixture
def make_program():
    def _make(title="X", institution="Y", **overrides) -> NormalizedProgram:
        values = {
            "title": title,
            "institution": institution,
            "fields": ["Biology"],
            "source": SourceTag.NSF,
        }
        values.update(overrides)
        return NormalizedProgram(**values)
    return _make


@pytest.fixture
def memory_store():
    return InMemoryProgramStore()
