"""Field, date and record normalization shared by all extractors."""

from .dates import PATHWAYS_DEADLINE_NOTICE, UNKNOWN_DEADLINE, parse_deadline
from .fields import FieldStandardizer, standardize_fields
from .pipeline import ProgramNormalizer, derive_title, is_placeholder_title

__all__ = [
    "FieldStandardizer",
    "PATHWAYS_DEADLINE_NOTICE",
    "ProgramNormalizer",
    "UNKNOWN_DEADLINE",
    "derive_title",
    "is_placeholder_title",
    "parse_deadline",
    "standardize_fields",
]
