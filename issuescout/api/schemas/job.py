"""Job checkpoint / phase schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class JobItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    phase: str
    language_id: int
    completed_at: datetime | None


class PhaseTriggerResponse(BaseModel):
    phase: str
    triggered: bool
