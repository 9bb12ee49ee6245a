"""CrawlEngine — the ingest, refresh and prune phases.

Ingest and refresh walk the tracked languages in order and checkpoint each
finished language through the JobService, so a run cut short by the upstream
rate limit resumes at the first unfinished language on the next trigger.
A rate limit anywhere aborts the whole run: no completion mark for the
language in progress and no cycle reset. Each repository write runs in its
own transaction, so work done before an abort is kept.
"""

from __future__ import annotations

import structlog
from structlog.contextvars import bound_contextvars
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from issuescout.engines.crawler.mapping import (
    is_active_repo,
    is_main_language,
    is_qualifying_issue,
    issue_fields,
    refreshed_issue_fields,
    repo_fields,
    stored_issue_fields,
)
from issuescout.engines.crawler.models import PhaseReport
from issuescout.engines.github.client import GitHubClient
from issuescout.engines.github.models import FetchResult, RepoHandle
from issuescout.models.language import Language
from issuescout.services.job_service import JobService
from issuescout.services.language_service import LanguageService
from issuescout.services.repo_service import RepoService

log = structlog.get_logger("issuescout.engine")


class CrawlEngine:
    """Drives the three crawl phases against GitHub and the local store."""

    def __init__(
        self,
        language_service: LanguageService,
        job_service: JobService,
        repo_service: RepoService,
        client: GitHubClient,
    ) -> None:
        self._languages = language_service
        self._jobs = job_service
        self._repos = repo_service
        self._client = client

    # ── ingest ────────────────────────────────────────────────────────────

    async def ingest(self, session_factory: async_sessionmaker[AsyncSession]) -> PhaseReport:
        """Discover repositories per language and store the qualifying ones."""
        report = PhaseReport(phase="ingest")
        for language in await self._pending_languages(session_factory, report):
            with bound_contextvars(phase=report.phase, language=language.name):
                log.info("ingest.language_started")
                completed = await self._ingest_language(session_factory, language, report)
            if report.rate_limited:
                break
            if completed:
                await self._mark_complete(session_factory, language, report)

        await self._finish_cycle(session_factory, report)
        return report

    async def _ingest_language(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        language: Language,
        report: PhaseReport,
    ) -> bool:
        """Process every search candidate. Returns False if the language must stay pending."""
        search = await self._client.search_repos_by_language(language.name)
        if not search.ok:
            if search.rate_limited:
                self._abort(report, search)
            else:
                log.error("ingest.search_failed", language=language.name, detail=search.detail)
                report.errors.append(search.detail)
            return False

        for candidate in search.value or []:
            await self._ingest_candidate(session_factory, language, candidate, report)
            if report.rate_limited:
                return False
        return True

    async def _ingest_candidate(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        language: Language,
        candidate: RepoHandle,
        report: PhaseReport,
    ) -> None:
        if not is_active_repo(candidate):
            return

        shares = await self._client.get_repo_languages(candidate)
        if not shares.ok:
            if shares.rate_limited:
                self._abort(report, shares)
            else:
                log.error("ingest.languages_unavailable", repo=candidate.full_name, detail=shares.detail)
                report.errors.append(shares.detail)
            return
        if not is_main_language(shares.value or {}, language.name):
            return

        issues = await self._client.list_issues(candidate)
        if not issues.ok:
            if issues.rate_limited:
                self._abort(report, issues)
            else:
                log.error("ingest.issues_unavailable", repo=candidate.full_name, detail=issues.detail)
                report.errors.append(issues.detail)
            return

        qualifying = [issue_fields(i) for i in issues.value or [] if is_qualifying_issue(i)]
        if not qualifying:
            return

        fields = repo_fields(candidate)
        async with session_factory() as session:
            async with session.begin():
                await self._repos.upsert(session, language, fields, qualifying)
        report.repos_saved += 1
        log.debug("ingest.repo_saved", repo=candidate.full_name, issues=len(qualifying))

    # ── refresh ───────────────────────────────────────────────────────────

    async def refresh(self, session_factory: async_sessionmaker[AsyncSession]) -> PhaseReport:
        """Re-check stored repositories and their open issues against GitHub."""
        report = PhaseReport(phase="refresh")
        for language in await self._pending_languages(session_factory, report):
            with bound_contextvars(phase=report.phase, language=language.name):
                log.info("refresh.language_started")
                async with session_factory() as session:
                    pending = await self._repos.list_pending_refresh(session, language)
                repo_ids = [repo.repo_id for repo in pending]

                for repo_id in repo_ids:
                    await self._refresh_repo(session_factory, language, repo_id, report)
                    if report.rate_limited:
                        break
            if report.rate_limited:
                break
            await self._mark_complete(session_factory, language, report)

        await self._finish_cycle(session_factory, report)
        return report

    async def _refresh_repo(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        language: Language,
        repo_id: int,
        report: PhaseReport,
    ) -> None:
        async with session_factory() as session:
            async with session.begin():
                repo = await self._repos.get(session, repo_id)
                if repo is None:
                    return

                current = await self._client.get_repo_by_id(repo_id)
                if not current.ok:
                    if current.rate_limited:
                        self._abort(report, current)
                    elif current.failure == "not_found":
                        await self._delete(session, repo, report, reason="not_found")
                    else:
                        log.error("refresh.repo_unavailable", repo=repo.full_name, detail=current.detail)
                        report.errors.append(current.detail)
                    return

                handle = current.value
                if not is_active_repo(handle):
                    await self._delete(session, repo, report, reason="inactive")
                    return

                shares = await self._client.get_repo_languages(handle)
                if not shares.ok:
                    if shares.rate_limited:
                        self._abort(report, shares)
                    else:
                        log.error("refresh.languages_unavailable", repo=repo.full_name, detail=shares.detail)
                        report.errors.append(shares.detail)
                    return
                if not is_main_language(shares.value or {}, language.name):
                    await self._delete(session, repo, report, reason="language_changed")
                    return

                fields = repo_fields(handle)
                retained: list[dict] = []
                for stored in await self._repos.list_open_issues(session, repo):
                    fetched = await self._client.get_issue(handle, stored.number)
                    if fetched.rate_limited:
                        self._abort(report, fetched)
                        return
                    if fetched.failure == "gone" or (fetched.ok and fetched.value.id != stored.issue_id):
                        log.info("refresh.issue_gone", repo=repo.full_name, number=stored.number)
                        continue
                    if not fetched.ok:
                        # Transient failure: carry the stored issue over unchanged.
                        log.warning(
                            "refresh.issue_unavailable",
                            repo=repo.full_name,
                            number=stored.number,
                            detail=fetched.detail,
                        )
                        retained.append(stored_issue_fields(stored))
                        continue
                    issue = fetched.value
                    if issue.is_locked or issue.is_closed:
                        continue
                    retained.append(refreshed_issue_fields(stored, issue))

                await self._repos.save_refreshed(session, repo, fields, retained)
                report.repos_saved += 1

    # ── prune ─────────────────────────────────────────────────────────────

    async def prune(self, session_factory: async_sessionmaker[AsyncSession]) -> PhaseReport:
        """Delete stale repositories. Local only, so no checkpoints."""
        report = PhaseReport(phase="prune")
        async with session_factory() as session:
            languages = await self._languages.list_all(session)

        for language in languages:
            report.languages_seen += 1
            try:
                with bound_contextvars(phase=report.phase, language=language.name):
                    async with session_factory() as session:
                        async with session.begin():
                            stale = await self._repos.list_pending_prune(session, language)
                            for repo in stale:
                                await self._repos.delete(session, repo)
            except SQLAlchemyError as exc:
                log.exception("prune.language_failed", language=language.name)
                report.errors.append(f"prune {language.name}: {exc}")
                continue
            report.repos_deleted += len(stale)
            report.languages_completed += 1
            if stale:
                log.info("prune.deleted", language=language.name, count=len(stale))
        return report

    # ── shared ────────────────────────────────────────────────────────────

    async def _pending_languages(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        report: PhaseReport,
    ) -> list[Language]:
        """Tracked languages not yet completed in the current cycle of the phase."""
        async with session_factory() as session:
            languages = await self._languages.list_all(session)
            report.languages_seen = len(languages)
            pending = []
            for language in languages:
                if await self._jobs.is_complete(session, report.phase, language):
                    report.languages_skipped += 1
                else:
                    pending.append(language)
        return pending

    async def _mark_complete(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        language: Language,
        report: PhaseReport,
    ) -> None:
        async with session_factory() as session:
            async with session.begin():
                await self._jobs.mark_complete(session, report.phase, language)
        report.languages_completed += 1
        log.info(f"{report.phase}.language_completed", language=language.name)

    async def _finish_cycle(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        report: PhaseReport,
    ) -> None:
        """Reset the phase's checkpoints once a run got through without a rate limit."""
        if report.rate_limited or report.languages_seen == 0:
            return
        async with session_factory() as session:
            async with session.begin():
                await self._jobs.reset_all(session, report.phase)
        report.cycle_reset = True
        log.info(f"{report.phase}.cycle_complete", languages=report.languages_seen)

    async def _delete(self, session: AsyncSession, repo, report: PhaseReport, *, reason: str) -> None:
        await self._repos.delete(session, repo)
        report.repos_deleted += 1
        log.info("refresh.repo_deleted", repo=repo.full_name, reason=reason)

    @staticmethod
    def _abort(report: PhaseReport, result: FetchResult) -> None:
        report.rate_limited = True
        log.info("crawl.rate_limited", phase=report.phase, detail=result.detail)
