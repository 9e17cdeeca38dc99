"""HTTP tests for path validation, history and nodes."""
import json
import uuid

from learnpath.db.models.learning_node import LearningNode
from learnpath.db.models.topic import Topic
from learnpath.db.models.user_learning_path import UserLearningPath


def _topic(db, title="Web Development") -> Topic:
    topic = Topic(title=title, description="Build websites")
    db.add(topic)
    db.commit()
    db.refresh(topic)
    return topic


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


# -------------------------
# /validate-path
# -------------------------
def test_validate_path_reports_where_the_verdict_came_from(client, llm):
    body = {"from_node": "HTML", "to_node": "CSS"}

    first = client.post("/api/validate-path", json=body).json()
    second = client.post("/api/validate-path", json=body).json()

    assert first["success"] is True
    assert first["isValid"] is True
    assert first["persisted"] is True
    assert first["saved"] is False
    assert "fromDatabase" not in first
    assert second["fromDatabase"] is True
    assert llm.count("validate") == 1


def test_validate_path_requires_both_titles(client, llm):
    response = client.post("/api/validate-path", json={"from_node": "HTML", "to_node": "   "})

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "from_node and to_node are required"}
    assert llm.calls == []


def test_validate_path_rejects_malformed_body(client):
    response = client.post("/api/validate-path", json={"from_node": ["HTML"], "to_node": "CSS"})
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_valid_path_is_recorded_for_the_user(client, db):
    data = client.post(
        "/api/validate-path", json={"from_node": "HTML", "to_node": "CSS", "user_id": "u-1"}
    ).json()

    assert data["saved"] is True

    rows = db.query(UserLearningPath).filter(UserLearningPath.user_id == "u-1").all()
    assert [(r.from_node, r.to_node) for r in rows] == [("HTML", "CSS")]


def test_invalid_path_is_not_recorded(client, db, llm):
    llm.replies["validate"] = json.dumps({"isValid": False, "reason": "Backwards"})

    data = client.post(
        "/api/validate-path", json={"from_node": "CSS", "to_node": "HTML", "user_id": "u-1"}
    ).json()

    assert data["isValid"] is False
    assert "saved" not in data
    assert db.query(UserLearningPath).count() == 0


def test_learning_path_history_and_delete(client, db):
    client.post("/api/validate-path", json={"from_node": "HTML", "to_node": "CSS", "user_id": "u-2"})

    listed = client.get("/api/learning-paths/u-2").json()
    assert len(listed["data"]) == 1
    path_id = listed["data"][0]["id"]

    assert client.delete(f"/api/learning-paths/{path_id}").json() == {"success": True}
    assert client.get("/api/learning-paths/u-2").json()["data"] == []
    assert client.delete(f"/api/learning-paths/{uuid.uuid4()}").status_code == 404


# -------------------------
# /nodes
# -------------------------
def test_first_node_skips_duplicate_check(client, db, llm):
    topic = _topic(db)

    response = client.post("/api/nodes", json={"topic_id": topic.id, "title": "JavaScript", "user_id": "u-1"})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["title"] == "JavaScript"
    assert data["color"] == "#6366f1"
    assert llm.count("duplicate") == 0


def test_spelling_variant_is_rejected_as_duplicate(client, db):
    topic = _topic(db)
    client.post("/api/nodes", json={"topic_id": topic.id, "title": "JavaScript"})

    data = client.post("/api/nodes", json={"topic_id": topic.id, "title": "Javascript"}).json()

    assert data["success"] is False
    assert data["isDuplicate"] is True
    assert data["similarNode"]["title"] == "JavaScript"
    assert db.query(LearningNode).count() == 1


def test_distinct_node_is_created_after_model_check(client, db, llm):
    topic = _topic(db)
    client.post("/api/nodes", json={"topic_id": topic.id, "title": "JavaScript"})

    data = client.post("/api/nodes", json={"topic_id": topic.id, "title": "React"}).json()

    assert data["success"] is True
    assert llm.count("duplicate") == 1
    assert db.query(LearningNode).count() == 2


def test_create_node_validation(client, db):
    assert client.post("/api/nodes", json={"title": "React"}).status_code == 400
    assert client.post("/api/nodes", json={"topic_id": 999, "title": "React"}).status_code == 404


def test_nodes_are_listed_by_usage(client, db):
    topic = _topic(db)
    first = client.post("/api/nodes", json={"topic_id": topic.id, "title": "HTML"}).json()["data"]
    second = client.post("/api/nodes", json={"topic_id": topic.id, "title": "CSS"}).json()["data"]

    client.patch(f"/api/nodes/{second['id']}/increment-usage")
    client.patch(f"/api/nodes/{second['id']}/increment-usage")
    client.patch(f"/api/nodes/{first['id']}/increment-usage")

    listed = client.get(f"/api/nodes/{topic.id}").json()["data"]
    assert [(n["title"], n["usage_count"]) for n in listed] == [("CSS", 2), ("HTML", 1)]
    assert client.patch(f"/api/nodes/{uuid.uuid4()}/increment-usage").status_code == 404
