"""Reconciling upsert of normalized programs into the program store."""

from .upsert import MatchIndex, ProgramReconciler, dedupe_incoming

__all__ = ["MatchIndex", "ProgramReconciler", "dedupe_incoming"]
