from __future__ import annotations

from sqlalchemy.exc import OperationalError

from skillhire.models.quiz import QuizQuestion
from skillhire.routers import quizzes


def _skill_payload(skill) -> dict:
    return {"id": skill.id, "name": skill.name, "proficiency": 3}


def _correct_answers(db, quiz_id: str) -> dict[str, str]:
    db.expire_all()
    rows = db.query(QuizQuestion).filter(QuizQuestion.quiz_id == quiz_id).all()
    return {q.id: q.correct_answer for q in rows}


def test_generate_requires_bearer_token(client) -> None:
    r = client.post("/api/quizzes/generate", json={"skills": []})
    assert r.status_code == 401

    r = client.post("/api/quizzes/generate", json={"skills": []}, headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401


def test_generate_rejects_empty_skill_list(client, make_profile, auth_headers) -> None:
    user = make_profile()
    r = client.post("/api/quizzes/generate", json={"skills": []}, headers=auth_headers(user.id))
    assert r.status_code == 400
    assert r.json() == {"error": "Skills array is required"}


def test_generate_rejects_malformed_body(client, make_profile, auth_headers) -> None:
    user = make_profile()
    headers = auth_headers(user.id)

    r = client.post("/api/quizzes/generate", content=b"{not json", headers=headers)
    assert r.status_code == 400
    assert "error" in r.json()

    r = client.post("/api/quizzes/generate", json={"skills": [{"id": "", "name": "SQL"}]}, headers=headers)
    assert r.status_code == 400
    assert r.json()["error"].startswith("Invalid request")


def test_generate_rejects_unknown_skill_and_bad_counts(client, make_profile, make_skill, auth_headers) -> None:
    user = make_profile()
    skill = make_skill("SQL")
    headers = auth_headers(user.id)

    r = client.post(
        "/api/quizzes/generate",
        json={"skills": [{"id": "ghost", "name": "Ghost", "proficiency": 3}]},
        headers=headers,
    )
    assert r.status_code == 400
    assert "Unknown skill" in r.json()["error"]

    r = client.post(
        "/api/quizzes/generate",
        json={"skills": [_skill_payload(skill)], "questionsPerSkill": 50},
        headers=headers,
    )
    assert r.status_code == 400

    r = client.post("/api/quizzes/generate", json={"skills": [{**_skill_payload(skill), "proficiency": 7}]}, headers=headers)
    assert r.status_code == 400


def test_generate_take_and_submit_practice_quiz(client, db, make_profile, make_skill, auth_headers) -> None:
    user = make_profile()
    sql = make_skill("SQL")
    docker = make_skill("Docker")
    headers = auth_headers(user.id)

    r = client.post(
        "/api/quizzes/generate",
        json={"skills": [_skill_payload(sql), _skill_payload(docker)], "questionsPerSkill": 3},
        headers=headers,
    )
    assert r.status_code == 200
    body = r.json()
    quiz_id = body["quizId"]
    assert body["pending"] is False
    assert [d["skill_name"] for d in body["data"]] == ["SQL", "Docker"]
    assert all(d["count"] == 3 for d in body["data"])

    r = client.get(f"/api/quizzes/{quiz_id}/questions", headers=headers)
    assert r.status_code == 200
    taker = r.json()
    assert taker["ready"] is True
    assert taker["status"] == "in_progress"
    assert len(taker["questions"]) == 6
    assert all("correct_answer" not in q for q in taker["questions"])

    # Details hide the key until the quiz is completed.
    r = client.get(f"/api/quizzes/{quiz_id}/details", headers=headers)
    assert all(q["correct_answer"] is None for q in r.json()["questions"])

    answers = _correct_answers(db, quiz_id)
    partial = dict(list(answers.items())[:5])
    r = client.post(f"/api/quizzes/{quiz_id}/submit", json={"answers": partial}, headers=headers)
    assert r.status_code == 400
    assert "unanswered" in r.json()["detail"]

    r = client.post(f"/api/quizzes/{quiz_id}/submit", json={"answers": answers}, headers=headers)
    assert r.status_code == 200
    assert r.json() == {
        "quiz_id": quiz_id,
        "score": 100,
        "correct": 6,
        "total": 6,
        "application_updated": False,
    }

    r = client.post(f"/api/quizzes/{quiz_id}/submit", json={"answers": answers}, headers=headers)
    assert r.status_code == 409

    r = client.get(f"/api/quizzes/{quiz_id}/details", headers=headers)
    details = r.json()
    assert details["score"] == 100
    assert details["score_label"] == "Excellent"
    assert all(q["answer"] == q["correct_answer"] and q["is_correct"] for q in details["questions"])

    r = client.get("/api/quizzes", params={"practice": "true"}, headers=headers)
    assert [q["id"] for q in r.json()] == [quiz_id]
    assert r.json()[0]["question_count"] == 6
    r = client.get("/api/quizzes", params={"practice": "false"}, headers=headers)
    assert r.json() == []


def test_background_generation_returns_pending_quiz(client, make_profile, make_skill, auth_headers) -> None:
    user = make_profile()
    skill = make_skill("Git")
    headers = auth_headers(user.id)

    r = client.post(
        "/api/quizzes/generate",
        json={"skills": [_skill_payload(skill)], "questionsPerSkill": 2, "background": True},
        headers=headers,
    )
    assert r.status_code == 200
    body = r.json()
    assert body["pending"] is True
    assert body["data"] == []

    # TestClient runs background tasks before returning the response.
    r = client.get(f"/api/quizzes/{body['quizId']}/questions", headers=headers)
    assert r.json()["ready"] is True
    assert len(r.json()["questions"]) == 2


def test_empty_quiz_reports_not_ready(client, make_profile, auth_headers) -> None:
    from skillhire.database import SessionLocal
    from skillhire.services.quiz_assembly import create_pending_quiz

    user = make_profile()
    with SessionLocal() as session:
        quiz_id = create_pending_quiz(session, employee_id=user.id).id

    r = client.get(f"/api/quizzes/{quiz_id}/questions", headers=auth_headers(user.id))
    assert r.status_code == 200
    assert r.json() == {"quiz_id": quiz_id, "status": "pending", "ready": False, "questions": []}


def test_other_users_cannot_see_or_submit_quiz(client, db, make_profile, make_skill, auth_headers) -> None:
    owner = make_profile()
    stranger = make_profile()
    skill = make_skill("SQL")

    r = client.post(
        "/api/quizzes/generate",
        json={"skills": [_skill_payload(skill)], "questionsPerSkill": 1},
        headers=auth_headers(owner.id),
    )
    quiz_id = r.json()["quizId"]

    assert client.get(f"/api/quizzes/{quiz_id}", headers=auth_headers(stranger.id)).status_code == 404
    r = client.post(
        f"/api/quizzes/{quiz_id}/submit",
        json={"answers": _correct_answers(db, quiz_id)},
        headers=auth_headers(stranger.id),
    )
    assert r.status_code == 403

    r = client.post(
        "/api/quizzes/generate",
        json={"skills": [_skill_payload(skill)], "quizId": quiz_id},
        headers=auth_headers(stranger.id),
    )
    assert r.status_code == 404
    assert r.json() == {"error": "Quiz not found"}


def test_regenerating_completed_quiz_conflicts(client, db, make_profile, make_skill, auth_headers) -> None:
    user = make_profile()
    skill = make_skill("SQL")
    headers = auth_headers(user.id)

    r = client.post(
        "/api/quizzes/generate", json={"skills": [_skill_payload(skill)], "questionsPerSkill": 1}, headers=headers
    )
    quiz_id = r.json()["quizId"]
    client.post(f"/api/quizzes/{quiz_id}/submit", json={"answers": _correct_answers(db, quiz_id)}, headers=headers)

    r = client.post(
        "/api/quizzes/generate", json={"skills": [_skill_payload(skill)], "quizId": quiz_id}, headers=headers
    )
    assert r.status_code == 409
    assert "completed" in r.json()["error"]


def test_generate_reports_database_failure_as_error_body(client, make_profile, make_skill, auth_headers, monkeypatch) -> None:
    user = make_profile()
    skill = make_skill("SQL")

    def broken_assembly(*args, **kwargs):
        raise OperationalError("INSERT INTO quiz_questions", {}, Exception("database is locked"))

    monkeypatch.setattr(quizzes, "assemble_quiz", broken_assembly)
    r = client.post("/api/quizzes/generate", json={"skills": [_skill_payload(skill)]}, headers=auth_headers(user.id))
    assert r.status_code == 500
    assert r.json() == {"error": "Failed to generate quiz"}
