# learnpath/learning_paths/routes.py
import logging
import uuid

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from learnpath.agents.llm.base import LLMClient
from learnpath.db.models.user_learning_path import UserLearningPath
from learnpath.deps import get_db, get_llm
from learnpath.responses import fail, ok
from learnpath.validation.service import ValidationSource, resolve_validation

logger = logging.getLogger(__name__)
router = APIRouter()


class ValidatePathRequest(BaseModel):
    from_node: str | None = None
    to_node: str | None = None
    user_id: str | None = None
    # reserved for linking the verdict to concrete nodes
    source_node_id: str | None = None
    target_node_id: str | None = None


_SOURCE_FLAGS = {
    ValidationSource.DATABASE: "fromDatabase",
    ValidationSource.CACHE: "fromCache",
}


def _record_history(db: Session, user_id: str, from_node: str, to_node: str, reason: str) -> bool:
    try:
        db.add(
            UserLearningPath(
                user_id=user_id,
                from_node=from_node,
                to_node=to_node,
                is_valid=True,
                validation_reason=reason,
            )
        )
        db.commit()
    except Exception:
        logger.exception("Could not record learning path for user %s", user_id)
        db.rollback()
        return False
    return True


@router.post("/validate-path")
def validate_path(
    body: ValidatePathRequest,
    db: Session = Depends(get_db),
    llm: LLMClient = Depends(get_llm),
):
    from_node = (body.from_node or "").strip()
    to_node = (body.to_node or "").strip()
    if not from_node or not to_node:
        return fail("from_node and to_node are required", status_code=400)

    try:
        resolved = resolve_validation(db, from_node, to_node, llm=llm)
        result = resolved.result

        recorded = False
        if body.user_id and result.is_valid:
            recorded = _record_history(db, body.user_id, from_node, to_node, result.reason)

        payload = {
            "isValid": result.is_valid,
            "reason": result.reason,
            "recommendation": result.recommendation,
        }
        flag = _SOURCE_FLAGS.get(resolved.source)
        if flag:
            payload[flag] = True
        else:
            # persisted: the verdict reached the durable table
            payload["persisted"] = resolved.saved
        if result.is_valid:
            # saved: the path landed in the caller's history
            payload["saved"] = recorded
        return ok(**payload)
    except Exception:
        logger.exception("Validation error")
        return fail("Failed to validate learning path")


@router.get("/learning-paths/{user_id}")
def list_learning_paths(user_id: str, db: Session = Depends(get_db)):
    try:
        rows = (
            db.query(UserLearningPath)
            .filter(UserLearningPath.user_id == user_id)
            .order_by(UserLearningPath.created_at.desc())
            .all()
        )
        data = [
            {
                "id": r.id,
                "user_id": r.user_id,
                "from_node": r.from_node,
                "to_node": r.to_node,
                "is_valid": r.is_valid,
                "validation_reason": r.validation_reason,
                "created_at": r.created_at,
            }
            for r in rows
        ]
        return ok(data=data)
    except Exception:
        logger.exception("Fetch learning paths error")
        return fail("Failed to fetch learning paths")


@router.delete("/learning-paths/{path_id}")
def delete_learning_path(path_id: uuid.UUID, db: Session = Depends(get_db)):
    try:
        row = db.query(UserLearningPath).filter(UserLearningPath.id == path_id).first()
        if not row:
            return fail("Learning path not found", status_code=404)
        db.delete(row)
        db.commit()
        return ok()
    except Exception:
        logger.exception("Delete learning path error")
        db.rollback()
        return fail("Failed to delete learning path")
