# learnpath/nodes/routes.py
import logging
import uuid

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from learnpath.agents.duplicates import check_duplicate_node
from learnpath.agents.llm.base import LLMClient
from learnpath.db.models.learning_node import LearningNode
from learnpath.db.models.topic import Topic
from learnpath.deps import get_db, get_llm
from learnpath.responses import fail, ok
from learnpath.workflows.service import node_view

logger = logging.getLogger(__name__)
router = APIRouter()

DEFAULT_NODE_COLOR = "#6366f1"


class CreateNodeRequest(BaseModel):
    topic_id: int | None = None
    title: str | None = None
    description: str | None = None
    color: str | None = None
    icon: str | None = None
    user_id: str | None = None


@router.get("/nodes/{topic_id}")
def list_nodes(topic_id: int, db: Session = Depends(get_db)):
    try:
        nodes = (
            db.query(LearningNode)
            .filter(LearningNode.topic_id == topic_id)
            .order_by(LearningNode.usage_count.desc(), LearningNode.created_at.asc())
            .all()
        )
        return ok(data=[node_view(n) for n in nodes])
    except Exception:
        logger.exception("Fetch nodes error")
        return fail("Failed to fetch nodes")


@router.post("/nodes")
def create_node(
    body: CreateNodeRequest,
    db: Session = Depends(get_db),
    llm: LLMClient = Depends(get_llm),
):
    title = (body.title or "").strip()
    if not body.topic_id or not title:
        return fail("topic_id and title are required", status_code=400)

    try:
        if not db.query(Topic).filter(Topic.id == body.topic_id).first():
            return fail("Topic not found", status_code=404)

        existing = (
            db.query(LearningNode)
            .filter(LearningNode.topic_id == body.topic_id)
            .all()
        )
        if existing:
            candidates = [
                {"id": n.id, "title": n.title, "description": n.description}
                for n in existing
            ]
            duplicate = check_duplicate_node(title, candidates, llm=llm)
            if duplicate.is_duplicate:
                logger.info("Rejected duplicate node %r in topic %s", title, body.topic_id)
                return fail(
                    duplicate.reason,
                    status_code=200,
                    isDuplicate=True,
                    reason=duplicate.reason,
                    similarNode=duplicate.similar_node.model_dump() if duplicate.similar_node else None,
                )

        node = LearningNode(
            topic_id=body.topic_id,
            title=title,
            description=body.description or None,
            color=body.color or DEFAULT_NODE_COLOR,
            created_by=body.user_id or None,
        )
        if body.icon:
            node.icon = body.icon
        db.add(node)
        db.commit()
        db.refresh(node)
        return ok(data=node_view(node))
    except Exception:
        logger.exception("Create node error")
        db.rollback()
        return fail("Failed to create node")


@router.patch("/nodes/{node_id}/increment-usage")
def increment_usage(node_id: uuid.UUID, db: Session = Depends(get_db)):
    try:
        updated = (
            db.query(LearningNode)
            .filter(LearningNode.id == node_id)
            .update({LearningNode.usage_count: LearningNode.usage_count + 1})
        )
        if not updated:
            return fail("Node not found", status_code=404)
        db.commit()
        return ok()
    except Exception:
        logger.exception("Increment usage error")
        db.rollback()
        return fail("Failed to increment usage")
