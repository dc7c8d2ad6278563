"""Source adapters for REU program listings."""

from .base import BaseAdapter, RateLimitedError
from .google_sheets import GoogleSheetsAdapter
from .manual import ManualAdapter
from .nsf import EtapAdapter, NsfAdapter
from .pathways import PathwaysAdapter

__all__ = [
    "BaseAdapter",
    "EtapAdapter",
    "GoogleSheetsAdapter",
    "ManualAdapter",
    "NsfAdapter",
    "PathwaysAdapter",
    "RateLimitedError",
]
