"""IssueDAO — issues table operations."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from issuescout.dao.base import BaseDAO
from issuescout.models.issue import Issue


class IssueDAO(BaseDAO[Issue]):
    model = Issue

    async def list_open_by_repo(self, session: AsyncSession, repo_id: int) -> list[Issue]:
        """Stored issues of a repo that were open at the last write."""
        stmt = (
            select(Issue)
            .where(Issue.repo_id == repo_id, Issue.closed_at.is_(None))
            .order_by(Issue.number)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())
