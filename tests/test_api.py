"""Endpoints HTTP con TestClient"""

from exceptions import ExternalServiceError
from gamification import local_today
from insights import get_completion_service
from models import LearningLesson, MindfulnessExercise, WellnessChallenge
import main

from conftest import FakeCompletionService


def _start_focus(client, headers, session_type="focus", planned=25):
    response = client.post("/sessions/focus", headers=headers, json={
        "session_type": session_type,
        "planned_duration_minutes": planned
    })
    assert response.status_code == 200
    return response.json()


# ─────────────────────────────────────────────────────────────────────────────
# Health check / auth
# ─────────────────────────────────────────────────────────────────────────────

def test_health_check(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_register_and_login(client, auth_headers):
    me = client.get("/users/me", headers=auth_headers)
    assert me.status_code == 200
    assert me.json()["email"] == "ana@example.com"
    assert me.json()["level"] == 1

    login = client.post("/auth/login", json={"email": "ana@example.com", "password": "secreto123"})
    assert login.status_code == 200
    assert login.json()["access_token"]


def test_register_duplicate_email(client, auth_headers):
    response = client.post("/auth/register", json={"email": "ana@example.com", "password": "otra123"})
    assert response.status_code == 409


def test_login_wrong_password(client, auth_headers):
    response = client.post("/auth/login", json={"email": "ana@example.com", "password": "mala-clave"})
    assert response.status_code == 401


def test_requires_token(client):
    assert client.get("/users/stats").status_code in (401, 403)
    bad = client.get("/users/stats", headers={"Authorization": "Bearer no-es-un-jwt"})
    assert bad.status_code == 401


def test_update_profile(client, auth_headers):
    response = client.patch("/users/me", headers=auth_headers, json={"name": "Ana M.", "focus_goal_minutes": 90})
    assert response.status_code == 200
    assert response.json()["name"] == "Ana M."
    assert response.json()["focus_goal_minutes"] == 90
    assert response.json()["total_sessions_completed"] == 0


def test_register_creates_default_health_habits(client, auth_headers):
    habits = client.get("/health/habits", headers=auth_headers).json()
    assert {h["habit_type"] for h in habits} == {"water", "sleep", "workout", "mood"}

    response = client.put("/health/habits/water", headers=auth_headers, json={"target_value": 10, "unit": "glasses"})
    assert response.status_code == 200
    assert response.json()["target_value"] == 10


# ─────────────────────────────────────────────────────────────────────────────
# Foco, stats y recompensas
# ─────────────────────────────────────────────────────────────────────────────

def test_focus_session_flow(client, auth_headers, seeded):
    session = _start_focus(client, auth_headers)

    response = client.put(f"/sessions/focus/{session['id']}/complete", headers=auth_headers, json={
        "actual_duration_minutes": 25,
        "mood_after": "focused",
        "focus_rating": 4
    })

    assert response.status_code == 200
    body = response.json()
    assert body["is_completed"] is True
    assert body["actual_duration_minutes"] == 25
    assert [r["code"] for r in body["new_rewards"]] == ["first_focus"]

    stats = client.get("/users/stats", headers=auth_headers).json()
    assert stats["user"]["total_sessions_completed"] == 1
    assert stats["user"]["total_focus_minutes"] == 25
    assert stats["user"]["current_streak"] == 1
    assert stats["user"]["experience_points"] == 10
    assert len(stats["recent_sessions"]) == 1
    assert [r["code"] for r in stats["earned_rewards"]] == ["first_focus"]
    assert stats["next_reward"]["code"] == "first_lesson"
    assert stats["next_reward_progress_pct"] == 0.0


def test_break_session_grants_nothing(client, auth_headers, seeded):
    session = _start_focus(client, auth_headers, session_type="short_break", planned=5)

    body = client.put(f"/sessions/focus/{session['id']}/complete", headers=auth_headers,
                      json={"actual_duration_minutes": 5}).json()

    assert body["new_rewards"] == []
    me = client.get("/users/me", headers=auth_headers).json()
    assert me["total_sessions_completed"] == 0
    assert me["total_focus_minutes"] == 0


def test_completing_twice_returns_422(client, auth_headers):
    session = _start_focus(client, auth_headers)
    url = f"/sessions/focus/{session['id']}/complete"
    client.put(url, headers=auth_headers, json={"actual_duration_minutes": 25})

    response = client.put(url, headers=auth_headers, json={"actual_duration_minutes": 25})

    assert response.status_code == 422
    assert response.json()["type"] == "ValidationError"


def test_unknown_session_returns_404(client, auth_headers):
    response = client.put("/sessions/focus/999/complete", headers=auth_headers, json={"actual_duration_minutes": 25})
    assert response.status_code == 404
    assert response.json()["type"] == "NotFoundError"


def test_rewards_catalog_marks_earned(client, auth_headers, seeded):
    session = _start_focus(client, auth_headers)
    client.put(f"/sessions/focus/{session['id']}/complete", headers=auth_headers, json={"actual_duration_minutes": 25})

    catalog = {r["code"]: r for r in client.get("/rewards", headers=auth_headers).json()}

    assert catalog["first_focus"]["earned"] is True
    assert catalog["first_focus"]["earned_at"] is not None
    assert catalog["sessions_5"]["earned"] is False


def test_level_endpoint(client, auth_headers):
    body = client.get("/gamification/level", headers=auth_headers).json()
    assert body == {"level": 1, "experience_points": 0, "xp_in_level": 0, "xp_next_level": 1000, "xp_progress": 0.0}


# ─────────────────────────────────────────────────────────────────────────────
# Aprendizaje y mindfulness
# ─────────────────────────────────────────────────────────────────────────────

def test_lesson_completion(client, auth_headers, seeded):
    lesson_id = seeded.query(LearningLesson).filter_by(title="La técnica Pomodoro").one().id

    response = client.post(f"/learning/lessons/{lesson_id}/complete", headers=auth_headers, json={"rating": 5})

    assert response.status_code == 200
    body = response.json()
    assert body["xp_earned"] == 25
    assert [r["code"] for r in body["new_rewards"]] == ["first_lesson"]

    level = client.get("/gamification/level", headers=auth_headers).json()
    assert level["experience_points"] == 35

    personalized = client.get("/learning/lessons/personalized", headers=auth_headers).json()
    assert len(personalized) == 5
    assert lesson_id not in {lesson["id"] for lesson in personalized}


def test_lesson_completion_without_body(client, auth_headers, seeded):
    lesson_id = seeded.query(LearningLesson).first().id
    response = client.post(f"/learning/lessons/{lesson_id}/complete", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["xp_earned"] == 25


def test_lessons_listing(client, auth_headers, seeded):
    categories = client.get("/learning/categories", headers=auth_headers).json()
    assert len(categories) == 3

    category_id = categories[0]["id"]
    lessons = client.get(f"/learning/lessons?category_id={category_id}", headers=auth_headers).json()
    assert lessons
    assert all(lesson["category_id"] == category_id for lesson in lessons)
    assert all(lesson["category_name"] == categories[0]["name"] for lesson in lessons)


def test_mindfulness_completion(client, auth_headers, seeded):
    exercise_id = seeded.query(MindfulnessExercise).first().id

    response = client.post("/mindfulness/complete", headers=auth_headers, json={
        "exercise_id": exercise_id,
        "duration_minutes": 10,
        "mood_before": 4,
        "mood_after": 7,
        "stress_level_before": 8,
        "stress_level_after": 3
    })

    assert response.status_code == 200
    assert response.json()["xp_earned"] == 20
    assert response.json()["new_rewards"] == []


def test_mindfulness_rejects_out_of_range_mood(client, auth_headers, seeded):
    exercise_id = seeded.query(MindfulnessExercise).first().id
    response = client.post("/mindfulness/complete", headers=auth_headers, json={
        "exercise_id": exercise_id,
        "duration_minutes": 10,
        "mood_before": 11,
        "mood_after": 7,
        "stress_level_before": 8,
        "stress_level_after": 3
    })
    assert response.status_code == 422


# ─────────────────────────────────────────────────────────────────────────────
# Salud y desafíos
# ─────────────────────────────────────────────────────────────────────────────

def test_health_log_completes_daily_challenge(client, auth_headers, seeded):
    daily_water = seeded.query(WellnessChallenge).filter_by(code="daily_water").one()
    today = local_today().isoformat()

    response = client.post("/health/log", headers=auth_headers, json={
        "habit_type": "water", "value": 8, "unit": "glasses", "logged_date": today
    })

    assert response.status_code == 200
    body = response.json()
    assert body["completed_challenges"] == [daily_water.id]
    assert body["xp_earned"] == 20
    assert body["log"]["value"] == 8

    challenges = {c["id"]: c for c in client.get("/wellness/challenges", headers=auth_headers).json()}
    water = challenges[daily_water.id]
    assert water["is_completed"] is True
    assert water["progress_percentage"] == 100.0

    logs = client.get("/health/logs", headers=auth_headers).json()
    assert len(logs["today"]) == 1
    assert len(logs["week"]) == 1


def test_health_log_without_date_is_logged_today(client, auth_headers):
    response = client.post("/health/log", headers=auth_headers, json={
        "habit_type": "sleep", "value": 7, "unit": "hours"
    })

    assert response.status_code == 200
    assert response.json()["log"]["logged_date"] == local_today().isoformat()

    logs = client.get("/health/logs", headers=auth_headers).json()
    assert len(logs["today"]) == 1


def test_health_log_rejects_unknown_habit(client, auth_headers):
    response = client.post("/health/log", headers=auth_headers, json={
        "habit_type": "steps", "value": 1000, "unit": "steps", "logged_date": local_today().isoformat()
    })
    assert response.status_code == 422


def test_join_challenge(client, auth_headers, seeded):
    challenge_id = seeded.query(WellnessChallenge).filter_by(code="weekly_meals").one().id

    response = client.post(f"/wellness/challenges/{challenge_id}/join", headers=auth_headers)
    assert response.status_code == 200
    assert client.post("/wellness/challenges/999/join", headers=auth_headers).status_code == 404


# ─────────────────────────────────────────────────────────────────────────────
# Estudio
# ─────────────────────────────────────────────────────────────────────────────

def test_study_session_lifecycle(client, auth_headers):
    material = client.post("/study/materials", headers=auth_headers, json={
        "title": "Apuntes de biología", "total_pages": 40
    }).json()
    session = client.post("/study/sessions", headers=auth_headers, json={
        "material_id": material["id"], "session_name": "Tema 1",
        "start_page": 1, "end_page": 10, "planned_duration_minutes": 45
    }).json()
    assert session["started_at"] is None

    started = client.put(f"/study/sessions/{session['id']}/start", headers=auth_headers).json()
    assert started["started_at"] is not None

    completed = client.put(f"/study/sessions/{session['id']}/complete", headers=auth_headers, json={
        "actual_duration_minutes": 50, "comprehension_rating": 4
    })
    assert completed.status_code == 200
    assert completed.json()["is_completed"] is True

    again = client.put(f"/study/sessions/{session['id']}/complete", headers=auth_headers, json={
        "actual_duration_minutes": 50
    })
    assert again.status_code == 422
    assert len(client.get("/study/sessions", headers=auth_headers).json()) == 1


def test_study_session_needs_own_material(client, auth_headers):
    response = client.post("/study/sessions", headers=auth_headers, json={
        "material_id": 999, "session_name": "Tema 1", "planned_duration_minutes": 30
    })
    assert response.status_code == 404


# ─────────────────────────────────────────────────────────────────────────────
# IA
# ─────────────────────────────────────────────────────────────────────────────

def test_generate_insight(client, auth_headers, completion_service):
    response = client.post("/ai/generate-insight", headers=auth_headers, json={
        "insight_type": "motivation_tip", "user_context": {"mood": "cansada"}
    })

    assert response.status_code == 200
    assert response.json()["insight"] == completion_service.answer
    insights = client.get("/ai/insights", headers=auth_headers).json()
    assert [i["id"] for i in insights] == [response.json()["insight_id"]]
    assert insights[0]["confidence_score"] == 0.8


def test_generate_insight_failure_returns_502(client, auth_headers):
    failing = FakeCompletionService(error=ExternalServiceError("sin conexión"))
    main.app.dependency_overrides[get_completion_service] = lambda: failing

    response = client.post("/ai/generate-insight", headers=auth_headers, json={
        "insight_type": "motivation_tip", "user_context": {}
    })

    assert response.status_code == 502
    assert response.json()["type"] == "ExternalServiceError"
    assert client.get("/ai/insights", headers=auth_headers).json() == []


def test_generate_insight_rejects_unknown_type(client, auth_headers):
    response = client.post("/ai/generate-insight", headers=auth_headers, json={
        "insight_type": "horoscope", "user_context": {}
    })
    assert response.status_code == 422
