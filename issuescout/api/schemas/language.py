"""Language schemas."""

from __future__ import annotations

from pydantic import BaseModel, Field


class LanguageCreate(BaseModel):
    name: str = Field(min_length=1, max_length=64)


class LanguageItem(BaseModel):
    id: int
    name: str
    repo_count: int = 0
