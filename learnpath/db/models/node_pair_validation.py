## Durable cache of path validation verdicts, keyed by canonical title pair
import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, String, Text, UniqueConstraint, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from learnpath.db.base import Base


class NodePairValidation(Base):
    __tablename__ = "node_pair_validations"
    __table_args__ = (UniqueConstraint("source_name", "target_name", name="uq_node_pair"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    source_name: Mapped[str] = mapped_column(String(200), nullable=False)
    target_name: Mapped[str] = mapped_column(String(200), nullable=False)

    is_valid: Mapped[bool] = mapped_column(Boolean, nullable=False)
    validation_reason: Mapped[str] = mapped_column(Text, nullable=False, default="")
    recommendation: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
