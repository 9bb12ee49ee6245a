"""Languages router."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from issuescout.api.deps import get_language_service, get_repo_service, get_session
from issuescout.api.schemas.language import LanguageCreate, LanguageItem
from issuescout.api.schemas.repo import IssueItem, RepoItem
from issuescout.services.language_service import LanguageService
from issuescout.services.repo_service import RepoService

router = APIRouter()


@router.get("/", response_model=list[LanguageItem])
async def list_languages(
    session: AsyncSession = Depends(get_session),
    svc: LanguageService = Depends(get_language_service),
) -> list[LanguageItem]:
    rows = await svc.list_with_counts(session)
    return [LanguageItem(**row) for row in rows]


@router.post("/", response_model=LanguageItem, status_code=201)
async def add_language(
    body: LanguageCreate,
    session: AsyncSession = Depends(get_session),
    svc: LanguageService = Depends(get_language_service),
) -> LanguageItem:
    language = await svc.add(session, body.name)
    return LanguageItem(id=language.id, name=language.name)


@router.get("/{name}/repos", response_model=list[RepoItem])
async def list_language_repos(
    name: str,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    session: AsyncSession = Depends(get_session),
    language_svc: LanguageService = Depends(get_language_service),
    repo_svc: RepoService = Depends(get_repo_service),
) -> list[RepoItem]:
    language = await language_svc.get_by_name(session, name)
    repos = await repo_svc.list_by_language(session, language, limit=limit, offset=offset)
    return [
        RepoItem(
            **{k: getattr(repo, k) for k in RepoItem.model_fields if k != "issues"},
            issues=[IssueItem.model_validate(issue) for issue in repo.issues.values()],
        )
        for repo in repos
    ]
