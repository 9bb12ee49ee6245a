"""languages table."""

from sqlalchemy import Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from issuescout.core.database import Base, TimestampMixin


class Language(TimestampMixin, Base):
    __tablename__ = "languages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Linguist name as reported by the platform, e.g. "Go", "C++".
    name: Mapped[str] = mapped_column(Text, unique=True, nullable=False)

    def __repr__(self) -> str:
        return f"Language(id={self.id!r}, name={self.name!r})"
