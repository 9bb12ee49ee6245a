"""Data models for the crawl engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

Phase = Literal["ingest", "refresh", "prune"]


@dataclass
class PhaseReport:
    """Summary of a single phase run."""

    phase: Phase
    languages_seen: int = 0
    languages_skipped: int = 0  # already complete in the current cycle
    languages_completed: int = 0
    repos_saved: int = 0
    repos_deleted: int = 0
    rate_limited: bool = False
    cycle_reset: bool = False
    errors: list[str] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return self.repos_saved + self.repos_deleted
