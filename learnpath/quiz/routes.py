# learnpath/quiz/routes.py
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from learnpath.agents.llm.base import LLMClient
from learnpath.agents.quiz_writer import generate_quiz_from_content
from learnpath.db.models.material import Material
from learnpath.db.models.material_page_quiz import MaterialPageQuiz
from learnpath.db.models.user_profile import UserProfile
from learnpath.deps import get_db, get_llm
from learnpath.responses import fail, ok

logger = logging.getLogger(__name__)
router = APIRouter()


class SubmitQuizRequest(BaseModel):
    material_id: int | None = None
    page_number: int | None = None
    user_id: str | None = None
    selected_answer: int | None = None


def score_key(material_id: int, page_number: int) -> str:
    return f"{material_id}_{page_number}"


def page_content(material: Material, page_number: int) -> str:
    pages = material.pages or []
    if pages and len(pages) >= page_number:
        for page in pages:
            if isinstance(page, dict) and page.get("page_number") == page_number:
                if page.get("content"):
                    return page["content"]
                break
        fallback = pages[page_number - 1] if page_number >= 1 else None
        return (fallback or {}).get("content") or ""
    if page_number == 1 and material.content:
        return material.content
    return ""


def _save_quiz(db: Session, material_id: int, page_number: int, quiz) -> int:
    try:
        row = MaterialPageQuiz(
            material_id=material_id,
            page_number=page_number,
            question=quiz.question,
            options=list(quiz.options),
            correct_answer=quiz.correct_answer,
        )
        db.add(row)
        db.commit()
        logger.info("Quiz saved to DB with id %s", row.id)
        return row.id
    except Exception:
        logger.exception("Error saving quiz for material %s page %s", material_id, page_number)
        db.rollback()
        return 0


@router.get("/quiz/{material_id}/{page_number}")
def get_quiz(
    material_id: int,
    page_number: int,
    db: Session = Depends(get_db),
    llm: LLMClient = Depends(get_llm),
):
    try:
        existing = (
            db.query(MaterialPageQuiz)
            .filter(MaterialPageQuiz.material_id == material_id,
            MaterialPageQuiz.page_number == page_number)
            .first()
        )
        if existing:
            logger.info("Quiz found in DB for material %s page %s", material_id, page_number)
            return ok(
                quiz={"id": existing.id, "question": existing.question, "options": existing.options},
                fromDatabase=True,
            )

        material = db.query(Material).filter(Material.id == material_id).first()
        if not material:
            return fail("Material not found", status_code=404)
        content = page_content(material, page_number)
        if not content:
            return fail("Page content not found", status_code=404)

        logger.info("Generating quiz for material %s page %s", material_id, page_number)
        quiz = generate_quiz_from_content(content, page_number, llm=llm)
        quiz_id = _save_quiz(db, material_id, page_number, quiz)
        return ok(
            quiz={"id": quiz_id, "question": quiz.question, "options": quiz.options},
            generated=True,
        )
    except Exception:
        logger.exception("Get quiz error")
        return fail("Failed to get quiz")


@router.post("/quiz/submit")
def submit_quiz(body: SubmitQuizRequest, db: Session = Depends(get_db)):
    if not body.material_id or not body.page_number or not body.user_id or body.selected_answer is None:
        return fail("Missing required fields", status_code=400)

    try:
        quiz = (
            db.query(MaterialPageQuiz)
            .filter(MaterialPageQuiz.material_id == body.material_id,
            MaterialPageQuiz.page_number == body.page_number)
            .first()
        )
        if not quiz:
            return fail("Quiz not found", status_code=404)

        is_correct = quiz.correct_answer == body.selected_answer
        profile = db.query(UserProfile).filter(UserProfile.user_id == body.user_id).first()
        if not profile:
            profile = UserProfile(user_id=body.user_id, quiz_scores={})
            db.add(profile)

        # reassign so the JSON column is flagged dirty
        profile.quiz_scores = {
            **(profile.quiz_scores or {}),
            score_key(body.material_id, body.page_number): {
                "score": 1 if is_correct else 0,
                "answered_at": datetime.now(timezone.utc).isoformat(),
                "selected_answer": body.selected_answer,
                "is_correct": is_correct,
            },
        }
        db.commit()
        logger.info("Quiz score saved for user %s material %s page %s correct=%s",
            body.user_id, body.material_id, body.page_number, is_correct)
        return ok(
            is_correct=is_correct,
            correct_answer=quiz.correct_answer,
            selected_answer=body.selected_answer,
        )
    except Exception:
        logger.exception("Submit quiz error")
        db.rollback()
        return fail("Failed to submit quiz")


@router.get("/quiz/score/{user_id}/{material_id}/{page_number}")
def get_quiz_score(user_id: str, material_id: int, page_number: int, db: Session = Depends(get_db)):
    try:
        profile = db.query(UserProfile).filter(UserProfile.user_id == user_id).first()
        score = (profile.quiz_scores or {}).get(score_key(material_id, page_number)) if profile else None
        if score:
            return ok(answered=True, score=score)
        return ok(answered=False)
    except Exception:
        logger.exception("Get quiz score error")
        return fail("Failed to get quiz score")
