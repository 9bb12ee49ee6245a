"""JobService — per (phase, language) cycle checkpoints."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from issuescout.dao.job_dao import JobDAO
from issuescout.models.job import Job
from issuescout.models.language import Language


class JobService:
    """Records which languages finished the current cycle of a phase.

    A missing row and a row with ``completed_at`` NULL both mean "pending".
    Rows are created lazily on the first completion and cleared, never
    deleted, when a cycle ends.
    """

    def __init__(self, job_dao: JobDAO) -> None:
        self._job_dao = job_dao

    async def get(self, session: AsyncSession, phase: str, language: Language) -> Job | None:
        return await self._job_dao.get(session, phase, language.id)

    async def is_complete(self, session: AsyncSession, phase: str, language: Language) -> bool:
        job = await self._job_dao.get(session, phase, language.id)
        return job is not None and job.completed_at is not None

    async def mark_complete(
        self,
        session: AsyncSession,
        phase: str,
        language: Language,
        completed_at: datetime | None = None,
    ) -> Job:
        return await self._job_dao.mark_complete(
            session,
            phase,
            language.id,
            completed_at or datetime.now(timezone.utc),
        )

    async def reset_all(self, session: AsyncSession, phase: str) -> int:
        """Start a new cycle for *phase*."""
        return await self._job_dao.reset_phase(session, phase)

    async def list_all(self, session: AsyncSession) -> list[Job]:
        return await self._job_dao.list_all(session)
