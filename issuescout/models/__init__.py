"""SQLAlchemy ORM models — one file per table."""

from issuescout.models.issue import Issue
from issuescout.models.job import Job
from issuescout.models.language import Language
from issuescout.models.repo import Repo

__all__ = [
    "Issue",
    "Job",
    "Language",
    "Repo",
]
