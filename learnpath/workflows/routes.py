# learnpath/workflows/routes.py
import logging
import uuid

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from learnpath.agents.llm.base import LLMClient
from learnpath.agents.topic_converter import extract_nodes_from_topic
from learnpath.auth.deps import get_current_user_id, get_optional_user_id, require_user_id
from learnpath.db.models.learning_node import LearningNode
from learnpath.db.models.topic import Topic
from learnpath.db.models.workflow import Workflow
from learnpath.db.models.workflow_star import WorkflowStar
from learnpath.deps import get_db, get_llm
from learnpath.responses import fail, ok
from learnpath.validation.service import ensure_pair_validated
from learnpath.workflows.service import (
    EdgeIn,
    add_edges,
    clear_edges,
    enrich_edges,
    load_edges,
    missing_node_ids,
    workflow_view,
    workflow_views,
)

logger = logging.getLogger(__name__)
router = APIRouter()


class CreateWorkflowRequest(BaseModel):
    user_id: str | None = None
    topic_id: int | None = None
    title: str | None = None
    description: str | None = None
    is_public: bool = False
    is_draft: bool = False
    node_positions: dict | None = None
    edges: list[EdgeIn] = []


class UpdateWorkflowRequest(BaseModel):
    user_id: str | None = None
    title: str | None = None
    description: str | None = None
    is_public: bool | None = None
    is_draft: bool | None = None
    node_positions: dict | None = None
    edges: list[EdgeIn] | None = None


class ActorRequest(BaseModel):
    user_id: str | None = None


def _owned_workflow(db: Session, workflow_id: uuid.UUID, user_id: str):
    """(workflow, None) when the caller owns it, else (None, error response)."""
    wf = db.query(Workflow).filter(Workflow.id == workflow_id).first()
    if not wf:
        return None, fail("Workflow not found", status_code=404)
    if wf.user_id != user_id:
        return None, fail("Not authorized to modify this workflow", status_code=403)
    return wf, None


def _detail(db: Session, wf: Workflow) -> dict:
    topic = db.query(Topic).filter(Topic.id == wf.topic_id).first()
    return {**workflow_view(wf, topic), "edges": enrich_edges(db, load_edges(db, wf.id))}


# -------------------------
# Listing
# -------------------------
@router.get("/workflows")
def list_public_workflows(topic_id: int | None = None, db: Session = Depends(get_db)):
    try:
        q = db.query(Workflow).filter(Workflow.is_public.is_(True), Workflow.is_draft.is_(False))
        if topic_id is not None:
            q = q.filter(Workflow.topic_id == topic_id)
        workflows = workflow_views(db, q.order_by(Workflow.star_count.desc()).all())

        grouped: dict[str, list[dict]] = {}
        for wf in workflows:
            name = wf["topics"]["title"] if wf["topics"] else "Unknown"
            grouped.setdefault(name, []).append(wf)

        return ok(data=workflows, grouped=grouped)
    except Exception:
        logger.exception("Fetch workflows error")
        return fail("Failed to fetch workflows")


@router.get("/workflows/mine")
def list_my_workflows(user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    try:
        rows = (
            db.query(Workflow)
            .filter(Workflow.user_id == user_id, Workflow.is_draft.is_(False))
            .order_by(Workflow.updated_at.desc())
            .all()
        )
        return ok(data=workflow_views(db, rows))
    except Exception:
        logger.exception("Fetch my workflows error")
        return fail("Failed to fetch workflows")


@router.get("/workflows/drafts")
def list_drafts(user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    try:
        rows = (
            db.query(Workflow)
            .filter(Workflow.user_id == user_id, Workflow.is_draft.is_(True))
            .order_by(Workflow.updated_at.desc())
            .all()
        )
        return ok(data=workflow_views(db, rows))
    except Exception:
        logger.exception("Fetch drafts error")
        return fail("Failed to fetch drafts")


@router.get("/workflows/{workflow_id}")
def get_workflow(
    workflow_id: uuid.UUID,
    user_id: str | None = Depends(get_optional_user_id),
    db: Session = Depends(get_db),
):
    try:
        wf = db.query(Workflow).filter(Workflow.id == workflow_id).first()
        if not wf:
            return fail("Workflow not found", status_code=404)

        has_starred = False
        if user_id:
            has_starred = (
                db.query(WorkflowStar)
                .filter(WorkflowStar.workflow_id == wf.id, WorkflowStar.user_id == user_id)
                .first()
                is not None
            )
        return ok(data=_detail(db, wf), hasStarred=has_starred, isOwner=user_id == wf.user_id)
    except Exception:
        logger.exception("Fetch workflow error")
        return fail("Failed to fetch workflow")


# -------------------------
# Create / update / delete
# -------------------------
@router.post("/workflows")
def create_workflow(
    body: CreateWorkflowRequest,
    header_user: str | None = Depends(get_optional_user_id),
    db: Session = Depends(get_db),
):
    user_id = require_user_id(header_user, body.user_id)
    title = (body.title or "").strip()
    if not body.topic_id or not title:
        return fail("topic_id and title are required", status_code=400)

    try:
        if not db.query(Topic).filter(Topic.id == body.topic_id).first():
            return fail("Topic not found", status_code=404)
        missing = missing_node_ids(db, body.edges)
        if missing:
            return fail("Edges reference unknown nodes", status_code=400,
                missingNodeIds=sorted(str(m) for m in missing))

        wf = Workflow(
            user_id=user_id,
            topic_id=body.topic_id,
            title=title,
            description=body.description or None,
            is_public=body.is_public,
            is_draft=body.is_draft,
            node_positions=body.node_positions or {},
        )
        db.add(wf)
        db.flush()
        add_edges(db, wf.id, body.edges)
        db.commit()
        db.refresh(wf)
        logger.info("Created workflow %s with %d edges", wf.id, len(body.edges))
        return ok(status_code=201, data=_detail(db, wf))
    except Exception:
        logger.exception("Create workflow error")
        db.rollback()
        return fail("Failed to create workflow")


@router.put("/workflows/{workflow_id}")
def update_workflow(
    workflow_id: uuid.UUID,
    body: UpdateWorkflowRequest,
    header_user: str | None = Depends(get_optional_user_id),
    db: Session = Depends(get_db),
):
    user_id = require_user_id(header_user, body.user_id)
    try:
        wf, error = _owned_workflow(db, workflow_id, user_id)
        if error:
            return error

        changes = body.model_dump(exclude_unset=True, exclude={"user_id", "edges"})
        if "title" in changes:
            title = (changes["title"] or "").strip()
            if not title:
                return fail("title cannot be empty", status_code=400)
            changes["title"] = title
        for field in ("is_public", "is_draft", "node_positions"):
            if field in changes and changes[field] is None:
                del changes[field]

        if body.edges is not None:
            missing = missing_node_ids(db, body.edges)
            if missing:
                return fail("Edges reference unknown nodes", status_code=400,
                    missingNodeIds=sorted(str(m) for m in missing))

        for field, value in changes.items():
            setattr(wf, field, value)

        if body.edges is not None:
            clear_edges(db, wf.id)
            add_edges(db, wf.id, body.edges)

        db.commit()
        db.refresh(wf)
        return ok(data=_detail(db, wf))
    except Exception:
        logger.exception("Update workflow error")
        db.rollback()
        return fail("Failed to update workflow")


@router.delete("/workflows/{workflow_id}")
def delete_workflow(
    workflow_id: uuid.UUID,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    try:
        wf, error = _owned_workflow(db, workflow_id, user_id)
        if error:
            return error

        clear_edges(db, wf.id)
        db.query(WorkflowStar).filter(WorkflowStar.workflow_id == wf.id).delete(synchronize_session=False)
        (
            db.query(Topic)
            .filter(Topic.converted_workflow_id == wf.id)
            .update({Topic.is_converted: False, Topic.converted_workflow_id: None},
            synchronize_session=False)
        )
        db.delete(wf)
        db.commit()
        logger.info("Deleted workflow %s", workflow_id)
        return ok()
    except Exception:
        logger.exception("Delete workflow error")
        db.rollback()
        return fail("Failed to delete workflow")


# -------------------------
# Stars and forks
# -------------------------
@router.post("/workflows/{workflow_id}/star")
def star_workflow(
    workflow_id: uuid.UUID,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    try:
        wf = db.query(Workflow).filter(Workflow.id == workflow_id).first()
        if not wf:
            return fail("Workflow not found", status_code=404)
        if wf.user_id == user_id:
            return fail("Cannot star your own workflow", status_code=400)
        existing = (
            db.query(WorkflowStar)
            .filter(WorkflowStar.workflow_id == wf.id, WorkflowStar.user_id == user_id)
            .first()
        )
        if existing:
            return fail("Already starred", status_code=400)

        db.add(WorkflowStar(workflow_id=wf.id, user_id=user_id))
        wf.star_count = (wf.star_count or 0) + 1
        db.commit()
        return ok(starCount=wf.star_count)
    except Exception:
        logger.exception("Star workflow error")
        db.rollback()
        return fail("Failed to star workflow")


@router.delete("/workflows/{workflow_id}/star")
def unstar_workflow(
    workflow_id: uuid.UUID,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    try:
        wf = db.query(Workflow).filter(Workflow.id == workflow_id).first()
        if not wf:
            return fail("Workflow not found", status_code=404)
        deleted = (
            db.query(WorkflowStar)
            .filter(WorkflowStar.workflow_id == wf.id, WorkflowStar.user_id == user_id)
            .delete(synchronize_session=False)
        )
        if deleted:
            wf.star_count = max(0, (wf.star_count or 0) - 1)
        db.commit()
        return ok(starCount=wf.star_count)
    except Exception:
        logger.exception("Unstar workflow error")
        db.rollback()
        return fail("Failed to unstar workflow")


@router.post("/workflows/{workflow_id}/fork")
def fork_workflow(
    workflow_id: uuid.UUID,
    body: ActorRequest | None = None,
    header_user: str | None = Depends(get_optional_user_id),
    db: Session = Depends(get_db),
):
    user_id = require_user_id(header_user, body.user_id if body else None)
    try:
        original = db.query(Workflow).filter(Workflow.id == workflow_id).first()
        if not original:
            return fail("Workflow not found", status_code=404)

        fork = Workflow(
            user_id=user_id,
            topic_id=original.topic_id,
            title=f"{original.title} (Forked)",
            description=original.description,
            is_public=False,
            is_draft=False,
            node_positions=dict(original.node_positions or {}),
        )
        db.add(fork)
        db.flush()
        add_edges(
            db,
            fork.id,
            [
                EdgeIn(
                    source_node_id=e.source_node_id,
                    target_node_id=e.target_node_id,
                    validation_reason=e.validation_reason,
                )
                for e in load_edges(db, original.id)
            ],
        )
        db.commit()
        db.refresh(fork)
        logger.info("Forked workflow %s into %s for %s", original.id, fork.id, user_id)
        return ok(status_code=201, data=_detail(db, fork))
    except Exception:
        logger.exception("Fork workflow error")
        db.rollback()
        return fail("Failed to fork workflow")


# -------------------------
# Topic conversion
# -------------------------
@router.post("/topics/{topic_id}/convert-to-workflow")
def convert_topic(
    topic_id: int,
    body: ActorRequest | None = None,
    header_user: str | None = Depends(get_optional_user_id),
    db: Session = Depends(get_db),
    llm: LLMClient = Depends(get_llm),
):
    user_id = require_user_id(header_user, body.user_id if body else None)
    try:
        topic = db.query(Topic).filter(Topic.id == topic_id).first()
        if not topic:
            return fail("Topic not found", status_code=404)

        if topic.is_converted and topic.converted_workflow_id:
            existing = db.query(Workflow).filter(Workflow.id == topic.converted_workflow_id).first()
            if existing:
                logger.info("Sending cached converted workflow %s", existing.id)
                return ok(fromCache=True, data=_detail(db, existing))

        conversion = extract_nodes_from_topic(topic.title, topic.description, llm=llm)

        # must run before staging: the warm-up commits or rolls back the session
        for e in conversion.edges:
            source, target = conversion.nodes[e.from_], conversion.nodes[e.to]
            ensure_pair_validated(db, source.title, target.title, llm=llm)

        nodes = [
            LearningNode(
                topic_id=topic.id,
                title=n.title,
                description=n.description,
                icon=n.icon,
                color=n.color,
                created_by=user_id,
            )
            for n in conversion.nodes
        ]
        db.add_all(nodes)
        db.flush()

        wf = Workflow(
            user_id=user_id,
            topic_id=topic.id,
            title=f"Learning Path: {topic.title}",
            description=conversion.summary,
            is_public=False,
            node_positions={str(n.id): {"x": 250, "y": i * 150 + 100} for i, n in enumerate(nodes)},
        )
        db.add(wf)
        db.flush()

        add_edges(
            db,
            wf.id,
            [EdgeIn(source_node_id=nodes[e.from_].id, target_node_id=nodes[e.to].id) for e in conversion.edges],
        )

        topic.is_converted = True
        topic.converted_workflow_id = wf.id
        db.commit()
        db.refresh(wf)
        logger.info("Converted topic %s into workflow %s (%d nodes)", topic.id, wf.id, len(nodes))
        return ok(fromCache=False, data=_detail(db, wf), summary=conversion.summary)
    except Exception:
        logger.exception("Convert topic error")
        db.rollback()
        return fail("Failed to convert topic to workflow")
