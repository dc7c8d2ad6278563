"""Configuration management for the REU ingestion pipeline."""

from typing import Optional
from pydantic_settings import BaseSettings


REQUIRED_VARS = [
    "SUPABASE_URL",
    "SUPABASE_KEY",
]


class Config(BaseSettings):
    """Application configuration from environment variables."""

    # Required
    supabase_url: str
    supabase_key: str
    supabase_table: str = "programs"

    # NSF / ETAP award API
    nsf_api_url: str = "https://etap.nsf.gov/api/edge/awards/public/opportunities/search"
    nsf_api_token: str = ""
    nsf_user_id: str = ""
    nsf_search_term: str = "REU"
    nsf_default_deadline: str = "2024-02-15"

    # Google Sheets
    google_sheets_id: str = ""
    google_service_account_file: Optional[str] = None

    # Pathways to Science
    pathways_search_url: str = (
        "https://www.pathwaystoscience.org/programs.aspx?u=Undergrads_Undergraduate+Students&sm=&sd=&sy="
        "&dd=SummerResearch_Summer+Research+Opportunity&submit=y"
        "&dhub=SummerResearch_Summer+Research+Opportunity&all=all"
    )
    pathways_batch_size: int = 20
    pathways_concurrency: int = 10
    pathways_request_delay: float = 1.0
    pathways_timeout: float = 30.0

    # Manual entries
    manual_programs_file: Optional[str] = None

    # Normalization / upsert
    field_default_tag: str = "N/A"
    default_deadline_year: int = 2025
    upsert_batch_size: int = 100

    # Optional
    polling_interval_minutes: int = 1440
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "case_sensitive": False}


def validate_config() -> Config:
    """Load and validate configuration from environment.

    Raises ValueError with descriptive message listing ALL missing
    required variables (not just the first one).
    """
    try:
        return Config()  # type: ignore[call-arg]
    except Exception as exc:
        missing = []
        err_str = str(exc)
        for var in REQUIRED_VARS:
            if var.lower() in err_str.lower():
                missing.append(var)
        if missing:
            names = ", ".join(missing)
            raise ValueError(
                f"Missing required environment variable(s): {names}. "
                "Please set them in your .env file or environment."
            ) from exc
        raise


def load_config() -> Config:
    """Load configuration from environment (startup entry point)."""
    return validate_config()
