"""Fixtures comunes: BD SQLite en memoria, usuario, catálogos y cliente HTTP"""
import os

# Antes de importar la app: BD en memoria, sin scheduler y sin clave de IA
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENABLE_SCHEDULER"] = "false"
os.environ["OPENAI_API_KEY"] = ""
os.environ.setdefault("SECRET_KEY", "healthup-test-secret")

from datetime import datetime

import pytest
from fastapi.testclient import TestClient

import main
from database import Base, engine, SessionLocal
from insights import CompletionService, get_completion_service
from models import User, Reward, WellnessChallenge, FocusSession
from seeds import seed_all


class FakeCompletionService(CompletionService):
    """Servicio de IA de mentira: devuelve un texto fijo o lanza el error indicado"""

    def __init__(self, answer="Empieza el día con una sesión de 25 minutos.", error=None):
        self.answer = answer
        self.error = error
        self.calls = []

    def generate(self, system_prompt, user_prompt, max_tokens, temperature):
        self.calls.append({
            "system_prompt": system_prompt,
            "user_prompt": user_prompt,
            "max_tokens": max_tokens,
            "temperature": temperature,
        })
        if self.error is not None:
            raise self.error
        return self.answer


# ============================================================================
# Base de datos
# ============================================================================

@pytest.fixture(autouse=True)
def reset_db():
    """Esquema limpio en cada test"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def user(db):
    user = User(email="ana@example.com", password_hash="x", name="Ana")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def other_user(db):
    user = User(email="luis@example.com", password_hash="x", name="Luis")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def seeded(db):
    seed_all(db)
    return db


@pytest.fixture
def make_reward(db):
    def _make(code, condition_type, condition_value, points_value=10):
        reward = Reward(
            code=code,
            name=code,
            description=f"Recompensa {code}",
            condition_type=condition_type,
            condition_value=condition_value,
            points_value=points_value
        )
        db.add(reward)
        db.commit()
        db.refresh(reward)
        return reward
    return _make


@pytest.fixture
def make_challenge(db):
    def _make(target_unit, target_value, challenge_type="daily", points_reward=50, **kwargs):
        challenge = WellnessChallenge(
            title=f"Desafío {target_unit}",
            description="Desafío de prueba",
            challenge_type=challenge_type,
            target_value=target_value,
            target_unit=target_unit,
            points_reward=points_reward,
            **kwargs
        )
        db.add(challenge)
        db.commit()
        db.refresh(challenge)
        return challenge
    return _make


@pytest.fixture
def make_focus_session(db):
    def _make(user, session_type="focus", planned=25):
        session = FocusSession(
            user_id=user.id,
            session_type=session_type,
            planned_duration_minutes=planned,
            started_at=datetime.utcnow()
        )
        db.add(session)
        db.commit()
        db.refresh(session)
        return session
    return _make


# ============================================================================
# API
# ============================================================================

@pytest.fixture
def completion_service():
    return FakeCompletionService()


@pytest.fixture
def client(completion_service):
    main.app.dependency_overrides[get_completion_service] = lambda: completion_service
    yield TestClient(main.app)
    main.app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(client):
    response = client.post("/auth/register", json={
        "email": "ana@example.com",
        "password": "secreto123",
        "name": "Ana"
    })
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['access_token']}"}
