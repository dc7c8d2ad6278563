"""Orchestration of extractor runs."""

from .runner import DEFAULT_SOURCES, ScrapeOrchestrator

__all__ = ["DEFAULT_SOURCES", "ScrapeOrchestrator"]
