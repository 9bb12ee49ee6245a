"""repos table."""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import BigInteger, Boolean, DateTime, ForeignKey, Index, Integer, Text, func
from sqlalchemy.orm import Mapped, attribute_keyed_dict, mapped_column, relationship

from issuescout.core.database import Base

if TYPE_CHECKING:
    from issuescout.models.issue import Issue
    from issuescout.models.language import Language

# Columns copied from upstream on ingest and overwritten on refresh.
MUTABLE_FIELDS = (
    "is_public",
    "is_archived",
    "is_template",
    "is_disabled",
    "name",
    "full_name",
    "description",
    "html_url",
    "url",
    "forks_count",
    "stargazers_count",
    "watchers_count",
    "pushed_at",
    "created_at",
    "updated_at",
)


class Repo(Base):
    __tablename__ = "repos"

    repo_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    language_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("languages.id", ondelete="CASCADE"),
        nullable=False,
    )

    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_template: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_disabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    full_name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    html_url: Mapped[str] = mapped_column(Text, nullable=False)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    forks_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    stargazers_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    watchers_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # upstream timestamps
    pushed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # local bookkeeping
    first_seen_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    refreshed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    language: Mapped["Language"] = relationship(lazy="joined")
    issues: Mapped[dict[int, "Issue"]] = relationship(
        back_populates="repo",
        collection_class=attribute_keyed_dict("issue_id"),
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="Issue.number",
    )

    __table_args__ = (
        Index("idx_repos_language_refreshed", "language_id", "refreshed_at"),
    )

    def __repr__(self) -> str:
        return f"Repo(repo_id={self.repo_id!r}, full_name={self.full_name!r})"
