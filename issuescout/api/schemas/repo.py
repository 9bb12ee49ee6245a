"""Repo / Issue schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class IssueItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    issue_id: int
    number: int
    title: str
    html_url: str
    comments_count: int
    created_at: datetime
    updated_at: datetime


class RepoItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    repo_id: int
    full_name: str
    description: str | None
    html_url: str
    stargazers_count: int
    forks_count: int
    pushed_at: datetime | None
    refreshed_at: datetime
    issues: list[IssueItem]
