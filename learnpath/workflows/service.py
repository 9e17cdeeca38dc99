# learnpath/workflows/service.py
import logging
import uuid
from typing import Iterable

from pydantic import BaseModel
from sqlalchemy.orm import Session

from learnpath.db.models.learning_node import LearningNode
from learnpath.db.models.topic import Topic
from learnpath.db.models.workflow import Workflow
from learnpath.db.models.workflow_edge import WorkflowEdge
from learnpath.validation.service import find_cached_verdict

logger = logging.getLogger(__name__)


class EdgeIn(BaseModel):
    source_node_id: uuid.UUID
    target_node_id: uuid.UUID
    validation_reason: str | None = None


# -------------------------
# Views
# -------------------------
def node_view(n: LearningNode) -> dict:
    return {
        "id": n.id,
        "topic_id": n.topic_id,
        "title": n.title,
        "description": n.description,
        "icon": n.icon,
        "color": n.color,
        "usage_count": n.usage_count,
        "created_by": n.created_by,
        "created_at": n.created_at,
    }


def workflow_view(wf: Workflow, topic: Topic | None = None) -> dict:
    return {
        "id": wf.id,
        "user_id": wf.user_id,
        "topic_id": wf.topic_id,
        "title": wf.title,
        "description": wf.description,
        "is_public": wf.is_public,
        "is_draft": wf.is_draft,
        "star_count": wf.star_count,
        "node_positions": wf.node_positions or {},
        "created_at": wf.created_at,
        "updated_at": wf.updated_at,
        "topics": {"id": topic.id, "title": topic.title} if topic else None,
    }


def edge_view(e: WorkflowEdge) -> dict:
    return {
        "id": e.id,
        "workflow_id": e.workflow_id,
        "source_node_id": e.source_node_id,
        "target_node_id": e.target_node_id,
        "validation_reason": e.validation_reason,
        "created_at": e.created_at,
        "source_node": node_view(e.source_node) if e.source_node else None,
        "target_node": node_view(e.target_node) if e.target_node else None,
    }


def topics_by_id(db: Session, topic_ids: Iterable[int]) -> dict[int, Topic]:
    ids = set(topic_ids)
    if not ids:
        return {}
    return {t.id: t for t in db.query(Topic).filter(Topic.id.in_(ids)).all()}


def workflow_views(db: Session, workflows: list[Workflow]) -> list[dict]:
    topics = topics_by_id(db, (wf.topic_id for wf in workflows))
    return [workflow_view(wf, topics.get(wf.topic_id)) for wf in workflows]


# -------------------------
# Edges
# -------------------------
def load_edges(db: Session, workflow_id: uuid.UUID) -> list[WorkflowEdge]:
    return (
        db.query(WorkflowEdge)
        .filter(WorkflowEdge.workflow_id == workflow_id)
        .order_by(WorkflowEdge.created_at.asc())
        .all()
    )


def enrich_edges(db: Session, edges: list[WorkflowEdge]) -> list[dict]:
    """Attach the durable validation verdict (by node titles) to each edge."""
    enriched = []
    for edge in edges:
        view = edge_view(edge)
        if edge.source_node and edge.target_node:
            verdict = find_cached_verdict(db, edge.source_node.title, edge.target_node.title)
            if verdict is not None:
                view["is_valid"] = verdict.is_valid
                view["validation_reason"] = verdict.reason
                view["recommendation"] = verdict.recommendation
        enriched.append(view)
    return enriched


def missing_node_ids(db: Session, edges: list[EdgeIn]) -> set[uuid.UUID]:
    wanted = {e.source_node_id for e in edges} | {e.target_node_id for e in edges}
    if not wanted:
        return set()
    found = {
        row[0]
        for row in db.query(LearningNode.id).filter(LearningNode.id.in_(wanted)).all()
    }
    return wanted - found


def _bump_usage(db: Session, node_ids: set[uuid.UUID], delta: int) -> None:
    (
        db.query(LearningNode)
        .filter(LearningNode.id.in_(node_ids))
        .update({LearningNode.usage_count: LearningNode.usage_count + delta},
        synchronize_session=False)
    )


def add_edges(db: Session, workflow_id: uuid.UUID, edges: list[EdgeIn]) -> list[WorkflowEdge]:
    """Insert edges (duplicates within the batch collapse) and count node usage."""
    created = []
    seen: set[tuple[uuid.UUID, uuid.UUID]] = set()
    for e in edges:
        pair = (e.source_node_id, e.target_node_id)
        if pair in seen:
            continue
        seen.add(pair)
        edge = WorkflowEdge(
            workflow_id=workflow_id,
            source_node_id=e.source_node_id,
            target_node_id=e.target_node_id,
            validation_reason=e.validation_reason or None,
        )
        db.add(edge)
        _bump_usage(db, {e.source_node_id, e.target_node_id}, +1)
        created.append(edge)
    db.flush()
    return created


def clear_edges(db: Session, workflow_id: uuid.UUID) -> int:
    edges = db.query(WorkflowEdge).filter(WorkflowEdge.workflow_id == workflow_id).all()
    for edge in edges:
        _bump_usage(db, {edge.source_node_id, edge.target_node_id}, -1)
        db.delete(edge)
    db.flush()
    return len(edges)


def workflow_nodes(db: Session, workflow_id: uuid.UUID) -> list[dict]:
    """Unique nodes reachable through the workflow's edges, in edge order."""
    nodes: dict[uuid.UUID, dict] = {}
    for edge in load_edges(db, workflow_id):
        for node in (edge.source_node, edge.target_node):
            if node is not None and node.id not in nodes:
                nodes[node.id] = {
                    "id": str(node.id),
                    "title": node.title,
                    "description": node.description,
                }
    return list(nodes.values())
