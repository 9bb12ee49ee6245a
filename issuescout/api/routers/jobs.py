"""Job checkpoints router."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from issuescout.api.deps import get_job_service, get_session
from issuescout.api.schemas.job import JobItem
from issuescout.services.job_service import JobService

router = APIRouter()


@router.get("/", response_model=list[JobItem])
async def list_jobs(
    session: AsyncSession = Depends(get_session),
    svc: JobService = Depends(get_job_service),
) -> list[JobItem]:
    return [JobItem.model_validate(job) for job in await svc.list_all(session)]
