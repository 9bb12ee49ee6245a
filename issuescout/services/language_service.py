"""LanguageService — the set of tracked languages."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from issuescout.dao.language_dao import LanguageDAO
from issuescout.dao.repo_dao import RepoDAO
from issuescout.models.language import Language
from issuescout.services import ConflictError, NotFoundError, ValidationError


class LanguageService:
    """Stateless service for tracked-language registration and lookup."""

    def __init__(self, language_dao: LanguageDAO, repo_dao: RepoDAO) -> None:
        self._language_dao = language_dao
        self._repo_dao = repo_dao

    async def list_all(self, session: AsyncSession) -> list[Language]:
        """Tracked languages in the order crawl phases visit them."""
        return await self._language_dao.list_all(session)

    async def get_by_name(self, session: AsyncSession, name: str) -> Language:
        """Raises :class:`NotFoundError` if the language is not tracked."""
        language = await self._language_dao.get_by_name(session, name)
        if language is None:
            raise NotFoundError(f"language {name!r} is not tracked")
        return language

    async def add(self, session: AsyncSession, name: str) -> Language:
        """Start tracking *name*.

        Raises :class:`ValidationError` for a blank name and
        :class:`ConflictError` if the language is already tracked.
        """
        name = name.strip()
        if not name:
            raise ValidationError("language name must not be empty")
        if await self._language_dao.get_by_name(session, name) is not None:
            raise ConflictError(f"language {name!r} is already tracked")
        return await self._language_dao.create(session, name=name)

    async def list_with_counts(self, session: AsyncSession) -> list[dict]:
        """Languages with the number of repos currently stored under each."""
        languages = await self._language_dao.list_all(session)
        counts = await self._repo_dao.count_by_language(session)
        return [
            {"id": lang.id, "name": lang.name, "repo_count": counts.get(lang.id, 0)}
            for lang in languages
        ]
