"""Tests for the API layer.

Services are mocked to isolate the routers from the database.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

from issuescout.models.issue import Issue
from issuescout.models.job import Job
from issuescout.models.language import Language
from issuescout.models.repo import Repo
from issuescout.scheduler import PhaseLoop, Scheduler
from issuescout.services import ConflictError, NotFoundError

NOW = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


def _repo() -> Repo:
    issue = Issue(
        issue_id=501,
        number=7,
        title="Panic on empty input",
        html_url="https://github.com/acme/widget/issues/7",
        url="https://api.github.com/repos/acme/widget/issues/7",
        is_locked=False,
        comments_count=2,
        created_at=NOW,
        updated_at=NOW,
    )
    return Repo(
        repo_id=42,
        language_id=1,
        name="widget",
        full_name="acme/widget",
        description="A widget",
        html_url="https://github.com/acme/widget",
        url="https://api.github.com/repos/acme/widget",
        forks_count=1,
        stargazers_count=99,
        watchers_count=99,
        pushed_at=NOW,
        created_at=NOW,
        updated_at=NOW,
        refreshed_at=NOW,
        issues={501: issue},
    )


@pytest.fixture
def app():
    """Create a test app without the lifespan (no real DB, no scheduler)."""
    from fastapi import FastAPI

    from issuescout.api import deps
    from issuescout.api.errors import register_error_handlers
    from issuescout.api.routers import jobs, languages, phases

    mock_session = AsyncMock()

    application = FastAPI()
    register_error_handlers(application)
    application.include_router(languages.router, prefix="/api/v1/languages")
    application.include_router(jobs.router, prefix="/api/v1/jobs")
    application.include_router(phases.router, prefix="/api/v1/phases")

    async def _mock_session():
        yield mock_session

    application.dependency_overrides[deps.get_session] = _mock_session
    application.dependency_overrides[deps.get_scheduler] = lambda: None
    return application


@pytest.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


class TestLanguagesRouter:
    async def test_list(self, app, client):
        from issuescout.api import deps

        svc = AsyncMock()
        svc.list_with_counts = AsyncMock(
            return_value=[{"id": 1, "name": "Go", "repo_count": 12}]
        )
        app.dependency_overrides[deps.get_language_service] = lambda: svc

        resp = await client.get("/api/v1/languages/")

        assert resp.status_code == 200
        assert resp.json() == [{"id": 1, "name": "Go", "repo_count": 12}]

    async def test_add(self, app, client):
        from issuescout.api import deps

        svc = AsyncMock()
        svc.add = AsyncMock(return_value=Language(id=3, name="Zig"))
        app.dependency_overrides[deps.get_language_service] = lambda: svc

        resp = await client.post("/api/v1/languages/", json={"name": "Zig"})

        assert resp.status_code == 201
        assert resp.json() == {"id": 3, "name": "Zig", "repo_count": 0}

    async def test_add_conflict(self, app, client):
        from issuescout.api import deps

        svc = AsyncMock()
        svc.add = AsyncMock(side_effect=ConflictError("language 'Go' is already tracked"))
        app.dependency_overrides[deps.get_language_service] = lambda: svc

        resp = await client.post("/api/v1/languages/", json={"name": "Go"})

        assert resp.status_code == 409
        assert resp.json()["detail"] == "language 'Go' is already tracked"

    async def test_add_empty_name(self, client):
        resp = await client.post("/api/v1/languages/", json={"name": ""})
        assert resp.status_code == 422

    async def test_repos(self, app, client):
        from issuescout.api import deps

        language_svc = AsyncMock()
        language_svc.get_by_name = AsyncMock(return_value=Language(id=1, name="Go"))
        repo_svc = AsyncMock()
        repo_svc.list_by_language = AsyncMock(return_value=[_repo()])
        app.dependency_overrides[deps.get_language_service] = lambda: language_svc
        app.dependency_overrides[deps.get_repo_service] = lambda: repo_svc

        resp = await client.get("/api/v1/languages/go/repos", params={"limit": 10})

        assert resp.status_code == 200
        (repo,) = resp.json()
        assert repo["full_name"] == "acme/widget"
        assert [i["number"] for i in repo["issues"]] == [7]
        _, kwargs = repo_svc.list_by_language.call_args
        assert kwargs == {"limit": 10, "offset": 0}

    async def test_repos_unknown_language(self, app, client):
        from issuescout.api import deps

        svc = AsyncMock()
        svc.get_by_name = AsyncMock(side_effect=NotFoundError("language 'Cobol' is not tracked"))
        app.dependency_overrides[deps.get_language_service] = lambda: svc

        resp = await client.get("/api/v1/languages/Cobol/repos")

        assert resp.status_code == 404


class TestJobsRouter:
    async def test_list(self, app, client):
        from issuescout.api import deps

        svc = AsyncMock()
        svc.list_all = AsyncMock(
            return_value=[
                Job(phase="ingest", language_id=1, completed_at=NOW),
                Job(phase="refresh", language_id=1, completed_at=None),
            ]
        )
        app.dependency_overrides[deps.get_job_service] = lambda: svc

        resp = await client.get("/api/v1/jobs/")

        assert resp.status_code == 200
        data = resp.json()
        assert [j["phase"] for j in data] == ["ingest", "refresh"]
        assert data[0]["completed_at"] is not None
        assert data[1]["completed_at"] is None


class TestPhasesRouter:
    @staticmethod
    def _scheduler() -> Scheduler:
        return Scheduler([PhaseLoop(name, AsyncMock(return_value=0), 100) for name in ("ingest", "prune")])

    async def test_trigger(self, app, client):
        from issuescout.api import deps

        scheduler = self._scheduler()
        app.dependency_overrides[deps.get_scheduler] = lambda: scheduler

        resp = await client.post("/api/v1/phases/ingest/run")

        assert resp.status_code == 202
        assert resp.json() == {"phase": "ingest", "triggered": True}
        assert scheduler.get("ingest").trigger.is_set()
        assert not scheduler.get("prune").trigger.is_set()

    async def test_unknown_phase(self, app, client):
        from issuescout.api import deps

        scheduler = self._scheduler()
        app.dependency_overrides[deps.get_scheduler] = lambda: scheduler

        resp = await client.post("/api/v1/phases/compact/run")

        assert resp.status_code == 404

    async def test_already_running(self, app, client):
        from issuescout.api import deps

        release = asyncio.Event()

        async def slow() -> int:
            await release.wait()
            return 0

        loop = PhaseLoop("refresh", slow, 100)
        app.dependency_overrides[deps.get_scheduler] = lambda: Scheduler([loop])
        task = asyncio.create_task(loop.run_once())
        try:
            while not loop.running:
                await asyncio.sleep(0.01)

            resp = await client.post("/api/v1/phases/refresh/run")

            assert resp.status_code == 409
            assert not loop.trigger.is_set()
        finally:
            release.set()
            await task

    async def test_no_scheduler(self, client):
        resp = await client.post("/api/v1/phases/ingest/run")
        assert resp.status_code == 409
