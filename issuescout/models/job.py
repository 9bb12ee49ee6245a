"""jobs table — per (phase, language) cycle checkpoints."""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Enum, ForeignKey, Index, Integer
from sqlalchemy.orm import Mapped, mapped_column

from issuescout.core.database import Base, TimestampMixin

job_phase_enum = Enum(
    "ingest",
    "refresh",
    name="job_phase",
    native_enum=False,
    length=16,
)


class Job(TimestampMixin, Base):
    __tablename__ = "jobs"

    phase: Mapped[str] = mapped_column(job_phase_enum, primary_key=True)
    language_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("languages.id", ondelete="CASCADE"),
        primary_key=True,
    )
    # NULL means the language is still pending in the current cycle.
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    __table_args__ = (Index("idx_jobs_phase", "phase"),)
