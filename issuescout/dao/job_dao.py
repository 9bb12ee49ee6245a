"""JobDAO — jobs table operations (cycle checkpoints)."""

from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from issuescout.dao.base import BaseDAO
from issuescout.models.job import Job


class JobDAO(BaseDAO[Job]):
    model = Job

    async def get(self, session: AsyncSession, phase: str, language_id: int) -> Job | None:
        return await session.get(Job, (phase, language_id))

    async def mark_complete(
        self,
        session: AsyncSession,
        phase: str,
        language_id: int,
        completed_at: datetime,
    ) -> Job:
        """Set completed_at, creating the row on first completion."""
        job = await session.get(Job, (phase, language_id))
        if job is None:
            job = Job(phase=phase, language_id=language_id, completed_at=completed_at)
            session.add(job)
        else:
            job.completed_at = completed_at
        await session.flush()
        return job

    async def reset_phase(self, session: AsyncSession, phase: str) -> int:
        """Clear completed_at for every job of *phase*. Returns rows touched."""
        stmt = (
            update(Job)
            .where(Job.phase == phase, Job.completed_at.is_not(None))
            .values(completed_at=None)
            .execution_options(synchronize_session="fetch")
        )
        result = await session.execute(stmt)
        return result.rowcount or 0

    async def list_all(self, session: AsyncSession) -> list[Job]:
        result = await session.execute(select(Job).order_by(Job.phase, Job.language_id))
        return list(result.scalars().all())
