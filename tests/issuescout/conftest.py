"""Shared fixtures for issuescout tests.

Store and engine tests run against an in-memory SQLite database
(``sqlite+aiosqlite``), so no external service is needed.
"""

from __future__ import annotations

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import issuescout.models  # noqa: F401
from fakes import FakeGitHub
from issuescout.core.database import Base
from issuescout.dao.issue_dao import IssueDAO
from issuescout.dao.job_dao import JobDAO
from issuescout.dao.language_dao import LanguageDAO
from issuescout.dao.repo_dao import RepoDAO
from issuescout.engines.crawler.engine import CrawlEngine
from issuescout.services.job_service import JobService
from issuescout.services.language_service import LanguageService
from issuescout.services.repo_service import RepoService


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def session_factory():
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def language_service() -> LanguageService:
    return LanguageService(LanguageDAO(), RepoDAO())


@pytest.fixture
def job_service() -> JobService:
    return JobService(JobDAO())


@pytest.fixture
def repo_service() -> RepoService:
    return RepoService(RepoDAO(), IssueDAO())


@pytest.fixture
def github() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture
def crawl_engine(language_service, job_service, repo_service, github) -> CrawlEngine:
    return CrawlEngine(language_service, job_service, repo_service, github)


@pytest.fixture
def add_languages(session_factory, language_service):
    """Register tracked languages in order; returns the Language rows."""

    async def _add(*names: str):
        created = []
        async with session_factory() as session:
            async with session.begin():
                for name in names:
                    created.append(await language_service.add(session, name))
        return created

    return _add
