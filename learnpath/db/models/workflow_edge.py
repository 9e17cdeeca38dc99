import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Text, UniqueConstraint, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from learnpath.db.base import Base
from learnpath.db.models.learning_node import LearningNode


class WorkflowEdge(Base):
    __tablename__ = "workflow_edges"
    __table_args__ = (
        UniqueConstraint("workflow_id", "source_node_id", "target_node_id", name="uq_workflow_edge"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    workflow_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("workflows.id", ondelete="CASCADE"), index=True)
    source_node_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("learning_nodes.id", ondelete="CASCADE"))
    target_node_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("learning_nodes.id", ondelete="CASCADE"))

    validation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    source_node: Mapped[LearningNode] = relationship(foreign_keys=[source_node_id], lazy="joined")
    target_node: Mapped[LearningNode] = relationship(foreign_keys=[target_node_id], lazy="joined")
