"""LanguageDAO — languages table operations."""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from issuescout.dao.base import BaseDAO
from issuescout.models.language import Language


class LanguageDAO(BaseDAO[Language]):
    model = Language

    async def list_all(self, session: AsyncSession) -> list[Language]:
        """Return every tracked language in registration order."""
        result = await session.execute(select(Language).order_by(Language.id))
        return list(result.scalars().all())

    async def get_by_name(self, session: AsyncSession, name: str) -> Language | None:
        """Case-insensitive lookup by linguist name."""
        stmt = select(Language).where(func.lower(Language.name) == name.strip().lower())
        result = await session.execute(stmt)
        return result.scalars().first()
