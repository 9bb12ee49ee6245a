"""RepoService — repository and issue persistence for the crawl phases."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from issuescout.core.settings import env_int
from issuescout.dao.issue_dao import IssueDAO
from issuescout.dao.repo_dao import RepoDAO
from issuescout.models.issue import Issue
from issuescout.models.language import Language
from issuescout.models.repo import MUTABLE_FIELDS, Repo
from issuescout.services import NotFoundError


def _replace_issues(repo: Repo, issues: list[dict[str, Any]]) -> None:
    """Assign a new issue mapping to *repo*.

    Rows already stored are updated in place; anything missing from
    *issues* is orphaned and deleted on flush.
    """
    current = repo.issues
    replacement: dict[int, Issue] = {}
    for fields in issues:
        existing = current.get(fields["issue_id"])
        if existing is None:
            replacement[fields["issue_id"]] = Issue(**fields)
            continue
        for key, val in fields.items():
            if key != "issue_id":
                setattr(existing, key, val)
        replacement[existing.issue_id] = existing
    repo.issues = replacement


class RepoService:
    """Stateless service over the repos/issues tables."""

    def __init__(self, repo_dao: RepoDAO, issue_dao: IssueDAO) -> None:
        self._repo_dao = repo_dao
        self._issue_dao = issue_dao

    # ── read ──────────────────────────────────────────────────────────────

    async def get(self, session: AsyncSession, repo_id: int) -> Repo | None:
        return await self._repo_dao.get_by_id(session, repo_id)

    async def get_or_raise(self, session: AsyncSession, repo_id: int) -> Repo:
        repo = await self._repo_dao.get_by_id(session, repo_id)
        if repo is None:
            raise NotFoundError(f"repo {repo_id} not found")
        return repo

    async def list_by_language(
        self,
        session: AsyncSession,
        language: Language,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Repo]:
        return await self._repo_dao.list_by_language(session, language.id, limit, offset)

    async def list_pending_refresh(
        self,
        session: AsyncSession,
        language: Language,
        cutoff_minutes: int | None = None,
    ) -> list[Repo]:
        """Repos of *language* not refreshed within the cutoff window.

        The window defaults to ``ISSUESCOUT_REFRESH_CUTOFF_MINUTES`` (120).
        """
        if cutoff_minutes is None:
            cutoff_minutes = env_int("ISSUESCOUT_REFRESH_CUTOFF_MINUTES", 120)
        cutoff = datetime.now(timezone.utc) - timedelta(minutes=cutoff_minutes)
        return await self._repo_dao.list_refreshed_before(session, language.id, cutoff)

    async def list_pending_prune(
        self,
        session: AsyncSession,
        language: Language,
        max_age_days: int | None = None,
    ) -> list[Repo]:
        """Repos with no retained issues or not refreshed for too long.

        The age limit defaults to ``ISSUESCOUT_PRUNE_MAX_AGE_DAYS`` (14).
        """
        if max_age_days is None:
            max_age_days = env_int("ISSUESCOUT_PRUNE_MAX_AGE_DAYS", 14)
        stale_before = datetime.now(timezone.utc) - timedelta(days=max_age_days)
        return await self._repo_dao.list_prunable(session, language.id, stale_before)

    async def list_open_issues(self, session: AsyncSession, repo: Repo) -> list[Issue]:
        return await self._issue_dao.list_open_by_repo(session, repo.repo_id)

    # ── write ─────────────────────────────────────────────────────────────

    async def upsert(
        self,
        session: AsyncSession,
        language: Language,
        fields: dict[str, Any],
        issues: list[dict[str, Any]],
    ) -> Repo:
        """Insert or overwrite a repo by upstream id and replace its issues."""
        now = datetime.now(timezone.utc)
        repo = await self._repo_dao.get_by_id(session, fields["repo_id"])
        if repo is None:
            repo = Repo(**fields, language_id=language.id, refreshed_at=now)
            session.add(repo)
        else:
            for key in MUTABLE_FIELDS:
                setattr(repo, key, fields[key])
            repo.language_id = language.id
            repo.refreshed_at = now
        _replace_issues(repo, issues)
        await session.flush()
        return repo

    async def save_refreshed(
        self,
        session: AsyncSession,
        repo: Repo,
        fields: dict[str, Any],
        issues: list[dict[str, Any]],
    ) -> Repo:
        """Overwrite mutable attributes and replace the retained issue set."""
        for key in MUTABLE_FIELDS:
            setattr(repo, key, fields[key])
        repo.refreshed_at = datetime.now(timezone.utc)
        _replace_issues(repo, issues)
        await session.flush()
        return repo

    async def delete(self, session: AsyncSession, repo: Repo) -> None:
        """Delete a repo together with all of its issues."""
        await self._repo_dao.delete(session, repo)
