"""Phases router — wake a scheduler loop ahead of its timer."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from issuescout.api.deps import get_scheduler
from issuescout.api.schemas.job import PhaseTriggerResponse
from issuescout.scheduler import Scheduler
from issuescout.services import ConflictError, NotFoundError

router = APIRouter()


@router.post("/{phase}/run", response_model=PhaseTriggerResponse, status_code=202)
async def run_phase(
    phase: str,
    scheduler: Scheduler | None = Depends(get_scheduler),
) -> PhaseTriggerResponse:
    if scheduler is None:
        raise ConflictError("scheduler is not running")
    loop = scheduler.get(phase)
    if loop is None:
        raise NotFoundError(f"unknown phase {phase!r}")
    if loop.running:
        raise ConflictError(f"phase {phase!r} is already running")
    return PhaseTriggerResponse(phase=phase, triggered=scheduler.trigger(phase))
