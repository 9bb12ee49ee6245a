"""Data models for the GitHub engine — upstream handles and the fetch result type."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, Literal, TypeVar

T = TypeVar("T")

FailureKind = Literal["rate_limited", "not_found", "gone", "data_unavailable", "transient"]


@dataclass(frozen=True)
class FetchResult(Generic[T]):
    """Outcome of one upstream call: either ``value`` or a ``failure`` kind.

    Callers branch on ``failure`` instead of catching exceptions.
    """

    value: T | None = None
    failure: FailureKind | None = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.failure is None

    @property
    def rate_limited(self) -> bool:
        return self.failure == "rate_limited"

    @classmethod
    def success(cls, value: T) -> FetchResult[T]:
        return cls(value=value)

    @classmethod
    def fail(cls, kind: FailureKind, detail: str = "") -> FetchResult[T]:
        return cls(failure=kind, detail=detail)


@dataclass(frozen=True)
class RepoHandle:
    """A repository as returned by the GitHub REST API.

    A pure data structure with no DB dependencies. Timestamp fields are
    kept as raw strings; parsing happens during normalisation.
    """

    data: dict[str, Any] = field(repr=False)

    @property
    def id(self) -> int:
        return self.data["id"]

    @property
    def full_name(self) -> str:
        return self.data["full_name"]

    @property
    def name(self) -> str:
        return self.data.get("name") or self.full_name.split("/", 1)[-1]

    @property
    def is_archived(self) -> bool:
        return bool(self.data.get("archived", False))

    @property
    def is_disabled(self) -> bool:
        return bool(self.data.get("disabled", False))

    @property
    def is_template(self) -> bool:
        return bool(self.data.get("is_template", False))

    @property
    def is_public(self) -> bool:
        visibility = self.data.get("visibility")
        if visibility is not None:
            return visibility == "public"
        return not self.data.get("private", False)

    def __repr__(self) -> str:
        return f"RepoHandle(id={self.data.get('id')!r}, full_name={self.data.get('full_name')!r})"


@dataclass(frozen=True)
class IssueHandle:
    """An issue (or pull request) as returned by the GitHub REST API."""

    data: dict[str, Any] = field(repr=False)

    @property
    def id(self) -> int:
        return self.data["id"]

    @property
    def number(self) -> int:
        return self.data["number"]

    @property
    def is_locked(self) -> bool:
        return bool(self.data.get("locked", False))

    @property
    def is_pull_request(self) -> bool:
        # The issues endpoint returns PRs too; they carry a pull_request key.
        return "pull_request" in self.data

    @property
    def is_closed(self) -> bool:
        return self.data.get("state") == "closed" or self.data.get("closed_at") is not None

    def __repr__(self) -> str:
        return f"IssueHandle(id={self.data.get('id')!r}, number={self.data.get('number')!r})"
