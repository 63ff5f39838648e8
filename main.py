"""
=============================================================================
MAIN.PY — La API de HealthUp
=============================================================================
Este archivo define TODOS los endpoints de la API REST.

Organización por secciones:
  1. AUTH         → Registro, login, perfil
  2. FOCUS        → Sesiones Pomodoro (empezar, completar, listar)
  3. STATS        → Panel principal y nivel
  4. LEARNING     → Categorías, lecciones, completar lección
  5. MINDFULNESS  → Ejercicios y sesiones
  6. HEALTH       → Objetivos y registros de hábitos
  7. CHALLENGES   → Desafíos de bienestar
  8. REWARDS      → Catálogo de recompensas
  9. STUDY        → Materiales y sesiones de estudio
  10. AI          → Consejos generados por IA

La lógica de puntos, recompensas y desafíos vive en gamification.py.
Aquí solo se valida la entrada, se llama a la lógica y se da forma a la respuesta.
"""

import logging
import traceback
from datetime import datetime, timedelta
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Depends, HTTPException, status, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from sqlalchemy import func, select

import config
from database import get_db, init_db, SessionLocal
from models import *
from schemas import *
from exceptions import HealthUpError, NotFoundError, ValidationError
from auth import register_user, authenticate_user, create_access_token, get_current_user
from gamification import (
    complete_focus_session, complete_lesson, complete_mindfulness, log_habit,
    get_user_stats, get_level_info, list_challenges, join_challenge, local_today
)
from insights import CompletionService, get_completion_service, generate_insight, list_insights
from seeds import seed_all

# ─────────────────────────────────────────────────────────────────────────────
# LOGGING
# ─────────────────────────────────────────────────────────────────────────────

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s"
)
logger = logging.getLogger("healthup.api")


# ─────────────────────────────────────────────────────────────────────────────
# LIFESPAN (Arranque y apagado)
# ─────────────────────────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Arranque:
      1. Inicializar BD (crear tablas)
      2. Seed de catálogos (recompensas, desafíos, lecciones, ejercicios)
      3. Arrancar el scheduler nocturno (si ENABLE_SCHEDULER)

    Apagado:
      - Parar el scheduler
    """
    logger.info("🚀 Arrancando HealthUp...")

    init_db()
    logger.info("✅ Base de datos inicializada")

    db = SessionLocal()
    try:
        seed_all(db)
    finally:
        db.close()

    if config.ENABLE_SCHEDULER:
        from scheduler import create_scheduler, start_scheduler
        create_scheduler()
        start_scheduler()
    else:
        logger.warning("⚠️ Scheduler desactivado (ENABLE_SCHEDULER=false)")

    logger.info("🎉 HealthUp operativo")

    yield  # ← La aplicación está corriendo

    logger.info("🛑 Apagando HealthUp...")
    if config.ENABLE_SCHEDULER:
        from scheduler import stop_scheduler
        try:
            stop_scheduler()
        except Exception as e:
            logger.error(f"❌ Error parando el scheduler: {e}")
    logger.info("👋 Apagado completo")


# ─────────────────────────────────────────────────────────────────────────────
# APLICACIÓN FASTAPI
# ─────────────────────────────────────────────────────────────────────────────

app = FastAPI(
    title="HealthUp API",
    description="Productividad y bienestar: Pomodoro, hábitos, micro-lecciones, mindfulness y recompensas",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ─────────────────────────────────────────────────────────────────────────────
# ERROR HANDLERS
# ─────────────────────────────────────────────────────────────────────────────
# Errores de la app (NotFound, Validation, ExternalService, Store) → su código HTTP.
# Cualquier otro error → 500 con el error real en el JSON.

@app.exception_handler(HealthUpError)
async def healthup_exception_handler(request: Request, exc: HealthUpError):
    if exc.status_code >= 500:
        logger.error(f"❌ {type(exc).__name__} en {request.url}: {exc.message}")
    else:
        logger.info(f"↩️ {type(exc).__name__} en {request.url}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Captura errores no manejados y devuelve detalles útiles"""
    error_msg = str(exc)
    error_trace = traceback.format_exc()
    logger.error(f"❌ Error no manejado en {request.url}: {error_msg}\n{error_trace}")
    return JSONResponse(
        status_code=500,
        content={
            "detail": error_msg,
            "type": type(exc).__name__,
            "path": str(request.url)
        }
    )


# =============================================================================
# ===================== HEALTH CHECK ==========================================
# =============================================================================

@app.get("/", tags=["Health"])
def health_check():
    """Verifica que la API está viva"""
    return {
        "status": "ok",
        "app": "HealthUp",
        "version": "1.0.0",
        "timestamp": datetime.utcnow().isoformat()
    }


# =============================================================================
# ===================== SECCIÓN 1: AUTH =======================================
# =============================================================================

@app.post("/auth/register", response_model=TokenResponse, tags=["Auth"])
def register(data: UserRegister, db: Session = Depends(get_db)):
    """Crea la cuenta (con objetivos de salud por defecto) y devuelve un token"""
    user = register_user(db, data.email, data.password, data.name)
    token = create_access_token(user.id, user.email)
    logger.info(f"👤 Nuevo usuario registrado: {user.name} ({user.email})")

    return TokenResponse(access_token=token, user_id=user.id, name=user.name)


@app.post("/auth/login", response_model=TokenResponse, tags=["Auth"])
def login(data: UserLogin, db: Session = Depends(get_db)):
    """Inicia sesión con email y contraseña"""
    user = authenticate_user(db, data.email, data.password)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Email o contraseña incorrectos"
        )

    token = create_access_token(user.id, user.email)
    return TokenResponse(access_token=token, user_id=user.id, name=user.name)


@app.get("/users/me", response_model=UserResponse, tags=["Auth"])
def get_me(user: User = Depends(get_current_user)):
    """Devuelve los datos del usuario autenticado"""
    return user


@app.patch("/users/me", response_model=UserResponse, tags=["Auth"])
def update_me(data: UserUpdate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Actualiza nombre, avatar y objetivos. Los contadores no se tocan desde aquí."""
    for field, value in data.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(user, field, value)
    db.commit()
    db.refresh(user)
    return user


# =============================================================================
# ===================== SECCIÓN 2: FOCUS SESSIONS =============================
# =============================================================================

@app.post("/sessions/focus", response_model=FocusSessionResponse, tags=["Focus"])
def start_focus_session(data: FocusSessionStart, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Empieza una sesión (foco o descanso)"""
    session = FocusSession(
        user_id=user.id,
        session_type=data.session_type.value,
        planned_duration_minutes=data.planned_duration_minutes,
        mood_before=data.mood_before,
        started_at=datetime.utcnow()
    )
    db.add(session)
    db.commit()
    db.refresh(session)
    return session


@app.get("/sessions/focus", response_model=list[FocusSessionResponse], tags=["Focus"])
def list_focus_sessions(
    limit: int = Query(default=20, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return db.query(FocusSession).filter(
        FocusSession.user_id == user.id
    ).order_by(FocusSession.started_at.desc(), FocusSession.id.desc()).limit(limit).all()


@app.put("/sessions/focus/{session_id}/complete", response_model=FocusSessionCompleteResponse, tags=["Focus"])
def complete_focus(
    session_id: int,
    data: FocusSessionComplete,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Completa una sesión. Si es de foco suma minutos, sesiones y racha,
    y devuelve las recompensas desbloqueadas en esta misma operación.
    """
    session, new_rewards = complete_focus_session(
        db, user, session_id,
        actual_duration=data.actual_duration_minutes,
        mood_after=data.mood_after,
        focus_rating=data.focus_rating,
        notes=data.notes
    )
    response = FocusSessionCompleteResponse.model_validate(session)
    response.new_rewards = [RewardResponse.model_validate(r) for r in new_rewards]
    return response


# =============================================================================
# ===================== SECCIÓN 3: STATS / NIVEL ==============================
# =============================================================================

@app.get("/users/stats", response_model=UserStatsResponse, tags=["Stats"])
def user_stats(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Contadores, últimas sesiones, recompensas ganadas y la siguiente recompensa"""
    return get_user_stats(db, user)


@app.get("/gamification/level", response_model=LevelInfo, tags=["Stats"])
def level_info(user: User = Depends(get_current_user)):
    return get_level_info(user)


# =============================================================================
# ===================== SECCIÓN 4: LEARNING ===================================
# =============================================================================

@app.get("/learning/categories", response_model=list[LearningCategoryResponse], tags=["Learning"])
def list_categories(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return db.query(LearningCategory).order_by(LearningCategory.name).all()


@app.get("/learning/lessons", response_model=list[LearningLessonResponse], tags=["Learning"])
def list_lessons(
    category_id: Optional[int] = None,
    limit: int = Query(default=20, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    query = db.query(LearningLesson)
    if category_id is not None:
        query = query.filter(LearningLesson.category_id == category_id)
    return query.order_by(LearningLesson.created_at.desc(), LearningLesson.id.desc()).limit(limit).all()


@app.get("/learning/lessons/personalized", response_model=list[LearningLessonResponse], tags=["Learning"])
def personalized_lessons(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """5 lecciones que el usuario aún no ha completado, en orden aleatorio"""
    completed = select(UserLessonProgress.lesson_id).where(
        UserLessonProgress.user_id == user.id,
        UserLessonProgress.is_completed == True
    )
    return db.query(LearningLesson).filter(
        LearningLesson.id.not_in(completed)
    ).order_by(func.random()).limit(5).all()


@app.post("/learning/lessons/{lesson_id}/complete", response_model=CompletionResult, tags=["Learning"])
def complete_lesson_endpoint(
    lesson_id: int,
    data: Optional[LessonComplete] = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    data = data or LessonComplete()
    xp_earned, new_rewards = complete_lesson(db, user, lesson_id, rating=data.rating, notes=data.notes)
    return CompletionResult(
        xp_earned=xp_earned,
        new_rewards=[RewardResponse.model_validate(r) for r in new_rewards]
    )


# =============================================================================
# ===================== SECCIÓN 5: MINDFULNESS ================================
# =============================================================================

@app.get("/mindfulness/exercises", response_model=list[MindfulnessExerciseResponse], tags=["Mindfulness"])
def list_exercises(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return db.query(MindfulnessExercise).order_by(
        MindfulnessExercise.duration_minutes, MindfulnessExercise.id
    ).all()


@app.post("/mindfulness/complete", response_model=CompletionResult, tags=["Mindfulness"])
def complete_mindfulness_endpoint(
    data: MindfulnessComplete,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Registra el ejercicio. 2 XP por minuto, sin recompensas."""
    xp_earned = complete_mindfulness(
        db, user, data.exercise_id,
        duration_minutes=data.duration_minutes,
        mood_before=data.mood_before,
        mood_after=data.mood_after,
        stress_before=data.stress_level_before,
        stress_after=data.stress_level_after,
        notes=data.notes
    )
    return CompletionResult(xp_earned=xp_earned)


# =============================================================================
# ===================== SECCIÓN 6: HEALTH =====================================
# =============================================================================

@app.get("/health/habits", response_model=list[HealthHabitResponse], tags=["Health"])
def list_health_habits(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return db.query(HealthHabit).filter(HealthHabit.user_id == user.id).order_by(HealthHabit.habit_type).all()


@app.put("/health/habits/{habit_type}", response_model=HealthHabitResponse, tags=["Health"])
def set_health_habit(
    habit_type: HabitType,
    data: HealthHabitUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Crea o actualiza el objetivo diario de un hábito"""
    habit = db.query(HealthHabit).filter(
        HealthHabit.user_id == user.id, HealthHabit.habit_type == habit_type.value
    ).first()
    if habit is None:
        habit = HealthHabit(user_id=user.id, habit_type=habit_type.value)
        db.add(habit)
    habit.target_value = data.target_value
    habit.unit = data.unit
    db.commit()
    db.refresh(habit)
    return habit


@app.get("/health/logs", response_model=HealthLogsOverview, tags=["Health"])
def health_logs(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Registros de hoy + los de los últimos 7 días"""
    today = local_today()
    week = db.query(HealthLog).filter(
        HealthLog.user_id == user.id,
        HealthLog.logged_date >= today - timedelta(days=7),
        HealthLog.logged_date <= today
    ).order_by(HealthLog.logged_date.desc(), HealthLog.logged_at.desc()).all()

    return HealthLogsOverview(
        today=[log for log in week if log.logged_date == today],
        week=week
    )


@app.post("/health/log", response_model=HealthLogResult, tags=["Health"])
def create_health_log(data: HealthLogCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Guarda una medición y avanza los desafíos que correspondan"""
    log, completed_ids, xp_earned = log_habit(
        db, user,
        habit_type=data.habit_type.value,
        value=data.value,
        unit=data.unit,
        logged_date=data.logged_date,
        notes=data.notes
    )
    return HealthLogResult(
        log=HealthLogResponse.model_validate(log),
        completed_challenges=completed_ids,
        xp_earned=xp_earned
    )


# =============================================================================
# ===================== SECCIÓN 7: WELLNESS CHALLENGES ========================
# =============================================================================

@app.get("/wellness/challenges", response_model=list[ChallengeResponse], tags=["Challenges"])
def wellness_challenges(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return list_challenges(db, user)


@app.post("/wellness/challenges/{challenge_id}/join", tags=["Challenges"])
def join_wellness_challenge(challenge_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    join_challenge(db, user, challenge_id)
    return {"success": True, "challenge_id": challenge_id}


# =============================================================================
# ===================== SECCIÓN 8: REWARDS ====================================
# =============================================================================

@app.get("/rewards", response_model=list[RewardCatalogItem], tags=["Rewards"])
def rewards_catalog(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Todo el catálogo, marcando las que el usuario ya tiene"""
    earned = {
        ur.reward_id: ur.earned_at
        for ur in db.query(UserReward).filter(UserReward.user_id == user.id).all()
    }
    rewards = db.query(Reward).order_by(Reward.condition_type, Reward.condition_value).all()

    result = []
    for reward in rewards:
        item = RewardCatalogItem.model_validate(reward)
        if reward.id in earned:
            item.earned = True
            item.earned_at = earned[reward.id]
        result.append(item)
    return result


# =============================================================================
# ===================== SECCIÓN 9: STUDY ======================================
# =============================================================================

@app.get("/study/materials", response_model=list[StudyMaterialResponse], tags=["Study"])
def list_study_materials(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return db.query(StudyMaterial).filter(
        StudyMaterial.user_id == user.id
    ).order_by(StudyMaterial.created_at.desc(), StudyMaterial.id.desc()).all()


@app.post("/study/materials", response_model=StudyMaterialResponse, tags=["Study"])
def create_study_material(data: StudyMaterialCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Solo metadatos: el fichero lo guarda el almacenamiento externo"""
    material = StudyMaterial(user_id=user.id, **data.model_dump())
    db.add(material)
    db.commit()
    db.refresh(material)
    logger.info(f"📄 Material de estudio añadido: {material.title} (user: {user.id})")
    return material


@app.get("/study/sessions", response_model=list[StudySessionResponse], tags=["Study"])
def list_study_sessions(
    material_id: Optional[int] = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    query = db.query(StudySession).filter(StudySession.user_id == user.id)
    if material_id is not None:
        query = query.filter(StudySession.material_id == material_id)
    return query.order_by(StudySession.created_at.desc(), StudySession.id.desc()).all()


@app.post("/study/sessions", response_model=StudySessionResponse, tags=["Study"])
def create_study_session(data: StudySessionCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    material = db.query(StudyMaterial).filter(
        StudyMaterial.id == data.material_id, StudyMaterial.user_id == user.id
    ).first()
    if not material:
        raise NotFoundError("Material no encontrado", context={"material_id": data.material_id})
    if data.end_page is not None and data.end_page < data.start_page:
        raise ValidationError("end_page no puede ser menor que start_page")

    session = StudySession(user_id=user.id, **data.model_dump())
    db.add(session)
    db.commit()
    db.refresh(session)
    return session


def _get_study_session(db: Session, user: User, session_id: int) -> StudySession:
    session = db.query(StudySession).filter(
        StudySession.id == session_id, StudySession.user_id == user.id
    ).first()
    if not session:
        raise NotFoundError("Sesión de estudio no encontrada", context={"session_id": session_id})
    return session


@app.put("/study/sessions/{session_id}/start", response_model=StudySessionResponse, tags=["Study"])
def start_study_session(session_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    session = _get_study_session(db, user, session_id)
    if session.is_completed:
        raise ValidationError("La sesión de estudio ya está completada")
    if session.started_at is None:
        session.started_at = datetime.utcnow()
        db.commit()
        db.refresh(session)
    return session


@app.put("/study/sessions/{session_id}/complete", response_model=StudySessionResponse, tags=["Study"])
def complete_study_session(
    session_id: int,
    data: StudySessionComplete,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    session = _get_study_session(db, user, session_id)
    if session.is_completed:
        raise ValidationError("La sesión de estudio ya está completada")

    now = datetime.utcnow()
    session.started_at = session.started_at or now
    session.completed_at = now
    session.is_completed = True
    session.actual_duration_minutes = data.actual_duration_minutes
    session.comprehension_rating = data.comprehension_rating
    if data.end_page is not None:
        session.end_page = data.end_page
    db.commit()
    db.refresh(session)
    return session


# =============================================================================
# ===================== SECCIÓN 10: AI INSIGHTS ===============================
# =============================================================================

@app.get("/ai/insights", response_model=list[InsightResponse], tags=["AI"])
def recent_insights(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Los 3 últimos consejos activos"""
    return list_insights(db, user)


@app.post("/ai/generate-insight", response_model=GeneratedInsight, tags=["AI"])
def create_insight(
    data: InsightRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: CompletionService = Depends(get_completion_service)
):
    """Si la IA falla → 502 y no se guarda nada"""
    insight = generate_insight(db, user, data.insight_type.value, data.user_context, service)
    return GeneratedInsight(insight=insight.insight_data, insight_id=insight.id)
