"""Ingest gates and normalisation of upstream payloads into store fields.

Pure functions: no network, no DB.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from issuescout.engines.github.models import IssueHandle, RepoHandle


class TemporalDataError(Exception):
    """Raised when a required timestamp cannot be read from an upstream payload."""


def parse_timestamp(data: dict[str, Any], key: str, *, required: bool = True) -> datetime | None:
    """Parse an ISO-8601 timestamp (``Z`` suffix allowed) from *data[key]*.

    Raises :class:`TemporalDataError` when the value is malformed, or
    missing while *required*.
    """
    raw = data.get(key)
    if raw is None:
        if required:
            raise TemporalDataError(f"missing {key!r} in upstream payload")
        return None
    try:
        return datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
    except ValueError as exc:
        raise TemporalDataError(f"unreadable {key!r}: {raw!r}") from exc


def is_active_repo(repo: RepoHandle) -> bool:
    return not repo.is_archived and not repo.is_disabled


def is_main_language(shares: dict[str, int], language: str) -> bool:
    """True when *language* holds the largest byte share (ties count)."""
    if not shares:
        return False
    wanted = language.lower()
    tracked = next((size for name, size in shares.items() if name.lower() == wanted), None)
    if tracked is None:
        return False
    return tracked >= max(shares.values())


def is_qualifying_issue(issue: IssueHandle) -> bool:
    """Open, unlocked, and not a pull request."""
    return not issue.is_locked and not issue.is_pull_request and not issue.is_closed


def repo_fields(repo: RepoHandle) -> dict[str, Any]:
    """Store fields for a repository (everything except language/bookkeeping)."""
    data = repo.data
    return {
        "repo_id": repo.id,
        "is_public": repo.is_public,
        "is_archived": repo.is_archived,
        "is_template": repo.is_template,
        "is_disabled": repo.is_disabled,
        "name": repo.name,
        "full_name": repo.full_name,
        "description": data.get("description"),
        "html_url": data.get("html_url") or f"https://github.com/{repo.full_name}",
        "url": data.get("url") or f"https://api.github.com/repos/{repo.full_name}",
        "forks_count": int(data.get("forks_count") or 0),
        "stargazers_count": int(data.get("stargazers_count") or 0),
        "watchers_count": int(data.get("watchers_count") or 0),
        "pushed_at": parse_timestamp(data, "pushed_at", required=False),
        "created_at": parse_timestamp(data, "created_at"),
        "updated_at": parse_timestamp(data, "updated_at"),
    }


def issue_fields(issue: IssueHandle) -> dict[str, Any]:
    data = issue.data
    return {
        "issue_id": issue.id,
        "number": issue.number,
        "title": data.get("title") or "",
        "html_url": data.get("html_url") or "",
        "url": data.get("url") or "",
        "is_locked": issue.is_locked,
        "comments_count": int(data.get("comments") or 0),
        "created_at": parse_timestamp(data, "created_at"),
        "updated_at": parse_timestamp(data, "updated_at"),
        "closed_at": parse_timestamp(data, "closed_at", required=False),
    }



def refreshed_issue_fields(stored: Any, issue: IssueHandle) -> dict[str, Any]:
    """Fresh mutable fields for a stored issue. Identity (id, number) stays the stored one."""
    fields = issue_fields(issue)
    fields["issue_id"] = stored.issue_id
    fields["number"] = stored.number
    return fields


def stored_issue_fields(issue: Any) -> dict[str, Any]:
    """Fields of an already-stored issue, for carrying it over unchanged."""
    return {
        "issue_id": issue.issue_id,
        "number": issue.number,
        "title": issue.title,
        "html_url": issue.html_url,
        "url": issue.url,
        "is_locked": issue.is_locked,
        "comments_count": issue.comments_count,
        "created_at": issue.created_at,
        "updated_at": issue.updated_at,
        "closed_at": issue.closed_at,
    }
