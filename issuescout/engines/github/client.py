"""Async GitHub API client that reports rate limits instead of waiting them out."""

from __future__ import annotations

import os
import re
import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import httpx
import structlog

from issuescout.core.settings import env_int
from issuescout.engines.github.models import FailureKind, FetchResult, IssueHandle, RepoHandle

log = structlog.get_logger("issuescout.github")

T = TypeVar("T")

_NEXT_LINK_RE = re.compile(r'<([^>]+)>;\s*rel="next"')

_DEFAULT_SEARCH_QUALIFIERS = "archived:false is:public"


class RateLimitError(Exception):
    """Raised internally when the GitHub quota is exhausted."""

    def __init__(self, retry_after: int) -> None:
        self.retry_after = retry_after
        super().__init__(f"rate limit exceeded, resets in {retry_after}s")


class GitHubClient:
    """Thin async wrapper around the GitHub REST API.

    Domain methods never raise for upstream conditions; they return a
    :class:`FetchResult` whose ``failure`` is one of ``rate_limited``,
    ``not_found``, ``gone``, ``data_unavailable`` or ``transient``.
    """

    def __init__(
        self,
        token: str | None = None,
        *,
        search_max_pages: int | None = None,
        issue_max_pages: int | None = None,
        search_qualifiers: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        resolved_token = token or os.environ.get("GITHUB_TOKEN")
        headers: dict[str, str] = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if resolved_token:
            headers["Authorization"] = f"token {resolved_token}"
        self._client = httpx.AsyncClient(
            base_url="https://api.github.com",
            headers=headers,
            timeout=30.0,
            follow_redirects=True,
            transport=transport,
        )
        self.search_max_pages = search_max_pages or env_int("ISSUESCOUT_SEARCH_MAX_PAGES", 3)
        self.issue_max_pages = issue_max_pages or env_int("ISSUESCOUT_ISSUE_MAX_PAGES", 1)
        self.search_qualifiers = (
            search_qualifiers
            if search_qualifiers is not None
            else os.environ.get("ISSUESCOUT_SEARCH_QUALIFIERS", _DEFAULT_SEARCH_QUALIFIERS)
        )

    # ── lifecycle ──────────────────────────────────────────────────────────

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> GitHubClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    # ── domain calls ──────────────────────────────────────────────────────

    async def search_repos_by_language(self, language: str) -> FetchResult[list[RepoHandle]]:
        """GET /search/repositories for one language, most recently updated first."""
        query = f'language:"{language}"'
        if self.search_qualifiers:
            query = f"{query} {self.search_qualifiers}"
        params = {"q": query, "sort": "updated", "order": "desc"}

        async def _call() -> list[RepoHandle]:
            items = await self._get_paginated(
                "/search/repositories", params, max_pages=self.search_max_pages
            )
            return [RepoHandle(item) for item in items]

        return await self._guarded(f"search {language}", _call, default="transient")

    async def get_repo_languages(self, repo: RepoHandle) -> FetchResult[dict[str, int]]:
        """GET /repos/{owner}/{repo}/languages — bytes of code per language."""

        async def _call() -> dict[str, int]:
            response = await self._get(f"/repos/{repo.full_name}/languages")
            return {name: int(size) for name, size in response.json().items()}

        return await self._guarded(
            f"languages {repo.full_name}", _call, default="data_unavailable"
        )

    async def list_issues(self, repo: RepoHandle) -> FetchResult[list[IssueHandle]]:
        """GET /repos/{owner}/{repo}/issues?state=open (includes pull requests)."""

        async def _call() -> list[IssueHandle]:
            items = await self._get_paginated(
                f"/repos/{repo.full_name}/issues",
                {"state": "open"},
                max_pages=self.issue_max_pages,
            )
            return [IssueHandle(item) for item in items]

        return await self._guarded(f"issues {repo.full_name}", _call, default="transient")

    async def get_repo_by_id(self, repo_id: int) -> FetchResult[RepoHandle]:
        """GET /repositories/{id} — survives renames and ownership transfers."""

        async def _call() -> RepoHandle:
            response = await self._get(f"/repositories/{repo_id}")
            return RepoHandle(response.json())

        return await self._guarded(
            f"repo {repo_id}",
            _call,
            default="transient",
            status_map={404: "not_found", 451: "not_found"},
        )

    async def get_issue(self, repo: RepoHandle, number: int) -> FetchResult[IssueHandle]:
        """GET /repos/{owner}/{repo}/issues/{number}."""

        async def _call() -> IssueHandle:
            response = await self._get(f"/repos/{repo.full_name}/issues/{number}")
            return IssueHandle(response.json())

        return await self._guarded(
            f"issue {repo.full_name}#{number}",
            _call,
            default="transient",
            status_map={404: "gone", 410: "gone"},
        )

    # ── internal ───────────────────────────────────────────────────────────

    async def _guarded(
        self,
        what: str,
        call: Callable[[], Awaitable[T]],
        *,
        default: FailureKind,
        status_map: dict[int, FailureKind] | None = None,
    ) -> FetchResult[T]:
        """Run *call* and fold every upstream failure into a FetchResult."""
        try:
            return FetchResult.success(await call())
        except RateLimitError as exc:
            return FetchResult.fail("rate_limited", f"{what}: {exc}")
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            kind = (status_map or {}).get(status, default)
            return FetchResult.fail(kind, f"{what}: HTTP {status}")
        except httpx.TransportError as exc:
            log.warning("github.transport_error", call=what, error=type(exc).__name__)
            return FetchResult.fail(default, f"{what}: {type(exc).__name__}: {exc}")
        except (ValueError, KeyError) as exc:
            return FetchResult.fail(default, f"{what}: malformed response: {exc}")

    async def _get(self, url: str, params: dict[str, Any] | None = None) -> httpx.Response:
        """Single GET. Raises :class:`RateLimitError` or ``HTTPStatusError``."""
        response = await self._client.get(url, params=params)
        if response.status_code in (403, 429) and self._is_rate_limited(response):
            wait = self._get_rate_limit_wait(response)
            log.warning("github.rate_limit", url=url, reset_in=wait)
            raise RateLimitError(wait)
        response.raise_for_status()
        return response

    async def _get_paginated(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        *,
        max_pages: int,
    ) -> list[dict[str, Any]]:
        """Collect items from a paginated endpoint following ``Link`` headers.

        Search responses wrap their results in ``items``; list endpoints
        return a bare JSON array.
        """
        url: str | None = path
        params = dict(params or {})
        params.setdefault("per_page", 100)
        items: list[dict[str, Any]] = []
        page = 0

        while url and page < max_pages:
            response = await self._get(url, params if page == 0 else None)
            data = response.json()
            if isinstance(data, dict) and "items" in data:
                items.extend(data["items"])
            elif isinstance(data, list):
                items.extend(data)
            else:
                raise ValueError(f"unexpected payload from {path}: expected a list or an items page")
            url = self._parse_next_link(response.headers.get("Link", ""))
            page += 1

        return items

    @staticmethod
    def _is_rate_limited(response: httpx.Response) -> bool:
        """Check if a 403/429 response is due to rate limiting."""
        if response.status_code == 429:
            return True
        remaining = response.headers.get("X-RateLimit-Remaining")
        if remaining is not None:
            try:
                if int(remaining) == 0:
                    return True
            except (ValueError, TypeError):
                pass
        # GitHub also uses Retry-After for secondary rate limits
        if "Retry-After" in response.headers:
            return True
        try:
            message = str(response.json().get("message", "")).lower()
        except (ValueError, AttributeError):
            return False
        return "rate limit" in message

    @staticmethod
    def _get_rate_limit_wait(response: httpx.Response) -> int:
        """Seconds until the quota resets, from rate-limit headers."""
        retry_after = response.headers.get("Retry-After")
        if retry_after is not None:
            try:
                return max(int(retry_after), 1)
            except (ValueError, TypeError):
                pass
        reset_ts = response.headers.get("X-RateLimit-Reset")
        if reset_ts is not None:
            try:
                return max(int(reset_ts) - int(time.time()), 1)
            except (ValueError, TypeError):
                pass
        return 60

    @staticmethod
    def _parse_next_link(link_header: str) -> str | None:
        """Extract the ``next`` URL from a GitHub ``Link`` header."""
        match = _NEXT_LINK_RE.search(link_header)
        return match.group(1) if match else None
