"""RepoDAO — repos table operations."""

from datetime import datetime

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from issuescout.dao.base import BaseDAO
from issuescout.models.issue import Issue
from issuescout.models.repo import Repo


class RepoDAO(BaseDAO[Repo]):
    model = Repo

    async def list_by_language(
        self,
        session: AsyncSession,
        language_id: int,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Repo]:
        """Repos filed under a language, most starred first (API)."""
        stmt = (
            select(Repo)
            .where(Repo.language_id == language_id)
            .order_by(Repo.stargazers_count.desc(), Repo.repo_id)
            .limit(limit)
            .offset(offset)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    async def list_refreshed_before(
        self,
        session: AsyncSession,
        language_id: int,
        cutoff: datetime,
    ) -> list[Repo]:
        """Repos of a language not refreshed since *cutoff*, oldest first."""
        stmt = (
            select(Repo)
            .where(Repo.language_id == language_id, Repo.refreshed_at < cutoff)
            .order_by(Repo.refreshed_at, Repo.repo_id)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    async def list_prunable(
        self,
        session: AsyncSession,
        language_id: int,
        stale_before: datetime,
    ) -> list[Repo]:
        """Repos with no retained issues or not refreshed since *stale_before*."""
        has_issue = select(Issue.issue_id).where(Issue.repo_id == Repo.repo_id).exists()
        stmt = (
            select(Repo)
            .where(
                Repo.language_id == language_id,
                or_(~has_issue, Repo.refreshed_at < stale_before),
            )
            .order_by(Repo.repo_id)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    async def count_by_language(self, session: AsyncSession) -> dict[int, int]:
        stmt = select(Repo.language_id, func.count().label("cnt")).group_by(Repo.language_id)
        result = await session.execute(stmt)
        return {row.language_id: row.cnt for row in result}
