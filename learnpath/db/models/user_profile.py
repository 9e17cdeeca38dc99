from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from learnpath.db.base import Base


class UserProfile(Base):
    __tablename__ = "user_profiles"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    # "<material_id>_<page_number>" -> {score, answered_at, selected_answer, is_correct}
    quiz_scores: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
