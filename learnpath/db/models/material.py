from sqlalchemy import JSON, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from learnpath.db.base import Base


class Material(Base):
    __tablename__ = "materials"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    pages: Mapped[list | None] = mapped_column(JSON, nullable=True)  # [{"page_number": 1, "content": "..."}]
