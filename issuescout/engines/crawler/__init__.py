"""Crawl engine — ingest / refresh / prune phases over the tracked languages."""

from issuescout.engines.crawler.engine import CrawlEngine
from issuescout.engines.crawler.mapping import TemporalDataError
from issuescout.engines.crawler.models import Phase, PhaseReport

__all__ = [
    "CrawlEngine",
    "Phase",
    "PhaseReport",
    "TemporalDataError",
]
