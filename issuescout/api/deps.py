"""Dependency injection — session, engine, and service singletons."""

from __future__ import annotations

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from issuescout.core.database import create_engine, create_session_factory
from issuescout.dao.issue_dao import IssueDAO
from issuescout.dao.job_dao import JobDAO
from issuescout.dao.language_dao import LanguageDAO
from issuescout.dao.repo_dao import RepoDAO
from issuescout.engines.crawler.engine import CrawlEngine
from issuescout.engines.github.client import GitHubClient
from issuescout.scheduler import Scheduler
from issuescout.services.job_service import JobService
from issuescout.services.language_service import LanguageService
from issuescout.services.repo_service import RepoService

# ---------------------------------------------------------------------------
# DAO singletons
# ---------------------------------------------------------------------------
_language_dao = LanguageDAO()
_job_dao = JobDAO()
_repo_dao = RepoDAO()
_issue_dao = IssueDAO()

# ---------------------------------------------------------------------------
# Service singletons
# ---------------------------------------------------------------------------
_language_service = LanguageService(_language_dao, _repo_dao)
_job_service = JobService(_job_dao)
_repo_service = RepoService(_repo_dao, _issue_dao)

# ---------------------------------------------------------------------------
# Engine / session factory / scheduler (initialised by app lifespan)
# ---------------------------------------------------------------------------
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None
_scheduler: Scheduler | None = None


def init_session_factory(database_url: str | None = None) -> async_sessionmaker[AsyncSession]:
    """Create the async engine and session factory. Called once at startup."""
    global _engine, _session_factory  # noqa: PLW0603
    _engine = create_engine(database_url)
    _session_factory = create_session_factory(_engine)
    return _session_factory


def get_db_engine() -> AsyncEngine:
    if _engine is None:
        raise RuntimeError("call init_session_factory() first")
    return _engine


async def dispose_engine() -> None:
    """Dispose the async engine, closing all pooled connections."""
    global _engine  # noqa: PLW0603
    if _engine is not None:
        await _engine.dispose()
        _engine = None


def set_scheduler(scheduler: Scheduler | None) -> None:
    global _scheduler  # noqa: PLW0603
    _scheduler = scheduler


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield a per-request session with automatic commit/rollback."""
    if _session_factory is None:
        raise RuntimeError("call init_session_factory() before handling requests")
    async with _session_factory() as session:
        async with session.begin():
            yield session


# ---------------------------------------------------------------------------
# Service getters (for Depends())
# ---------------------------------------------------------------------------


def get_language_service() -> LanguageService:
    return _language_service


def get_job_service() -> JobService:
    return _job_service


def get_repo_service() -> RepoService:
    return _repo_service


def get_scheduler() -> Scheduler | None:
    return _scheduler


def build_crawl_engine(client: GitHubClient) -> CrawlEngine:
    return CrawlEngine(_language_service, _job_service, _repo_service, client)
