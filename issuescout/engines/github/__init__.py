"""GitHub engine — upstream API access without DB access."""

from issuescout.engines.github.client import GitHubClient
from issuescout.engines.github.models import FailureKind, FetchResult, IssueHandle, RepoHandle

__all__ = [
    "FailureKind",
    "FetchResult",
    "GitHubClient",
    "IssueHandle",
    "RepoHandle",
]
