"""HTTP tests for per-page quizzes and recorded scores."""
import json

import pytest

from learnpath.db.models.material import Material
from learnpath.db.models.material_page_quiz import MaterialPageQuiz
from learnpath.db.models.user_profile import UserProfile
from learnpath.quiz.routes import page_content


@pytest.fixture
def material(db):
    material = Material(
        title="Python basics",
        content="<p>Fallback content</p>",
        pages=[
            {"page_number": 1, "content": "<h2>Variables</h2><p>A variable holds a value.</p>"},
            {"page_number": 2, "content": "Functions group statements."},
        ],
    )
    db.add(material)
    db.commit()
    db.refresh(material)
    return material


def test_page_content_lookup():
    material = Material(title="m", content="whole text", pages=[{"page_number": 2, "content": "second"},
        {"content": "unnumbered"}])
    assert page_content(material, 2) == "second"
    assert page_content(material, 1) == "second", "falls back to the list position"
    assert page_content(material, 3) == ""
    assert page_content(Material(title="m", content="whole text", pages=None), 1) == "whole text"
    assert page_content(Material(title="m", content="whole text", pages=None), 2) == ""


def test_quiz_is_generated_once_then_served_from_database(client, material, llm, db):
    url = f"/api/quiz/{material.id}/1"

    first = client.get(url).json()
    second = client.get(url).json()

    assert first["generated"] is True
    assert first["quiz"]["question"] == "What does a variable hold?"
    assert "correct_answer" not in first["quiz"]
    assert second["fromDatabase"] is True
    assert second["quiz"]["id"] == first["quiz"]["id"]
    assert llm.count("quiz") == 1
    assert "<h2>" not in llm.calls[0]["user"]
    assert db.query(MaterialPageQuiz).count() == 1


def test_quiz_falls_back_to_default_question(client, material, llm):
    llm.replies["quiz"] = json.dumps({"question": "Q", "options": ["a", "b"], "correct_answer": 0})

    quiz = client.get(f"/api/quiz/{material.id}/2").json()["quiz"]

    assert quiz["question"] == "What did you learn from page 2 of this material?"
    assert len(quiz["options"]) == 4


def test_quiz_missing_material_or_page(client, material):
    assert client.get("/api/quiz/999/1").status_code == 404
    response = client.get(f"/api/quiz/{material.id}/7")
    assert response.status_code == 404
    assert response.json()["error"] == "Page content not found"
    assert client.get(f"/api/quiz/{material.id}/first").status_code == 400


def test_submit_records_score_on_new_profile(client, material, db):
    client.get(f"/api/quiz/{material.id}/1")

    result = client.post(
        "/api/quiz/submit",
        json={"material_id": material.id, "page_number": 1, "user_id": "u-1", "selected_answer": 0},
    ).json()

    assert result == {"success": True, "is_correct": True, "correct_answer": 0, "selected_answer": 0}
    db.expire_all()
    scores = db.get(UserProfile, "u-1").quiz_scores
    assert scores[f"{material.id}_1"]["score"] == 1


def test_submit_keeps_other_scores(client, material, db):
    db.add(UserProfile(user_id="u-2", quiz_scores={"99_1": {"score": 1}}))
    db.commit()
    client.get(f"/api/quiz/{material.id}/1")

    result = client.post(
        "/api/quiz/submit",
        json={"material_id": material.id, "page_number": 1, "user_id": "u-2", "selected_answer": 3},
    ).json()

    assert result["is_correct"] is False
    score = client.get(f"/api/quiz/score/u-2/{material.id}/1").json()
    assert score["answered"] is True
    assert score["score"]["selected_answer"] == 3
    db.expire_all()
    assert set(db.get(UserProfile, "u-2").quiz_scores) == {"99_1", f"{material.id}_1"}


def test_submit_validation(client, material):
    assert client.post("/api/quiz/submit", json={"material_id": material.id, "page_number": 1,
        "user_id": "u-1"}).status_code == 400
    response = client.post("/api/quiz/submit", json={"material_id": material.id, "page_number": 2,
        "user_id": "u-1", "selected_answer": 1})
    assert response.status_code == 404


def test_score_for_unanswered_page(client):
    assert client.get("/api/quiz/score/nobody/1/1").json() == {"success": True, "answered": False}
