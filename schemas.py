"""
=============================================================================
SCHEMAS.PY — Esquemas de Validación (Pydantic)
=============================================================================
  - Models (SQLAlchemy) → definen las TABLAS de la BD
  - Schemas (Pydantic) → definen qué DATOS acepta/devuelve la API

Si algo no cumple el esquema → error 422 automático con mensaje claro.

Convención de nombres:
  XxxCreate / XxxComplete → lo que envía el cliente (POST/PUT)
  XxxUpdate → para actualizar algo (PATCH)
  XxxResponse → lo que devuelve la API
"""

from pydantic import BaseModel, Field, EmailStr
from datetime import date, datetime
from typing import Any, Optional

from models import SessionType, HabitType, InsightType


# =============================================================================
# ===================== AUTH / USUARIO ========================================
# =============================================================================

class UserRegister(BaseModel):
    """Datos para registrar un usuario nuevo"""
    email: EmailStr
    password: str = Field(min_length=6, description="Mínimo 6 caracteres")
    name: Optional[str] = Field(default=None, max_length=100)

class UserLogin(BaseModel):
    email: EmailStr
    password: str

class TokenResponse(BaseModel):
    """Respuesta con el token JWT"""
    access_token: str
    token_type: str = "bearer"
    user_id: int
    name: Optional[str]

class UserResponse(BaseModel):
    id: int
    email: str
    name: Optional[str]
    avatar_url: Optional[str] = None
    focus_goal_minutes: int
    learning_goal_lessons: int
    preferred_session_length: int
    total_focus_minutes: int
    total_sessions_completed: int
    total_lessons_completed: int
    current_streak: int
    longest_streak: int
    experience_points: int
    level: int
    created_at: datetime
    model_config = {"from_attributes": True}

class UserUpdate(BaseModel):
    """Campos actualizables del usuario (nombre y objetivos)"""
    name: Optional[str] = Field(default=None, max_length=100)
    avatar_url: Optional[str] = None
    focus_goal_minutes: Optional[int] = Field(default=None, gt=0, le=1440)
    learning_goal_lessons: Optional[int] = Field(default=None, gt=0, le=100)
    preferred_session_length: Optional[int] = Field(default=None, gt=0, le=240)


# =============================================================================
# ===================== FOCUS SESSIONS ========================================
# =============================================================================

class FocusSessionStart(BaseModel):
    session_type: SessionType = SessionType.focus
    planned_duration_minutes: int = Field(gt=0, le=240)
    mood_before: Optional[str] = Field(default=None, max_length=30)

class FocusSessionComplete(BaseModel):
    actual_duration_minutes: int = Field(ge=0, le=240)
    mood_after: Optional[str] = Field(default=None, max_length=30)
    focus_rating: Optional[int] = Field(default=None, ge=1, le=5)
    notes: Optional[str] = None

class FocusSessionResponse(BaseModel):
    id: int
    session_type: str
    planned_duration_minutes: int
    actual_duration_minutes: Optional[int]
    is_completed: bool
    started_at: datetime
    completed_at: Optional[datetime]
    mood_before: Optional[str]
    mood_after: Optional[str]
    focus_rating: Optional[int]
    notes: Optional[str]
    model_config = {"from_attributes": True}


# =============================================================================
# ===================== REWARDS / NIVEL =======================================
# =============================================================================

class RewardResponse(BaseModel):
    id: int
    code: str
    name: str
    description: str
    reward_type: str
    condition_type: str
    condition_value: int
    points_value: int
    icon: Optional[str]
    color: Optional[str]
    rarity: str
    model_config = {"from_attributes": True}

class EarnedRewardResponse(RewardResponse):
    earned_at: datetime

class RewardCatalogItem(RewardResponse):
    earned: bool = False
    earned_at: Optional[datetime] = None

class CompletionResult(BaseModel):
    """Respuesta de las operaciones que dan XP y pueden desbloquear recompensas"""
    success: bool = True
    xp_earned: int = 0
    new_rewards: list[RewardResponse] = []

class FocusSessionCompleteResponse(FocusSessionResponse):
    new_rewards: list[RewardResponse] = []

class LevelInfo(BaseModel):
    level: int
    experience_points: int
    xp_in_level: int
    xp_next_level: int
    xp_progress: float  # porcentaje hacia el siguiente nivel

class UserStatsResponse(BaseModel):
    user: UserResponse
    recent_sessions: list[FocusSessionResponse]
    earned_rewards: list[EarnedRewardResponse]
    next_reward: Optional[RewardResponse]
    next_reward_progress_pct: float


# =============================================================================
# ===================== LEARNING ==============================================
# =============================================================================

class LearningCategoryResponse(BaseModel):
    id: int
    name: str
    description: Optional[str]
    icon: Optional[str]
    color: Optional[str]
    model_config = {"from_attributes": True}

class LearningLessonResponse(BaseModel):
    id: int
    category_id: int
    title: str
    content: str
    lesson_type: str
    difficulty_level: str
    estimated_read_time: Optional[int]
    tags: Optional[str]
    is_ai_generated: bool
    category_name: Optional[str] = None
    category_color: Optional[str] = None
    model_config = {"from_attributes": True}

class LessonComplete(BaseModel):
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    notes: Optional[str] = None


# =============================================================================
# ===================== MINDFULNESS ===========================================
# =============================================================================

class MindfulnessExerciseResponse(BaseModel):
    id: int
    title: str
    description: str
    exercise_type: str
    duration_minutes: int
    difficulty_level: str
    audio_url: Optional[str]
    instructions: Optional[str]
    model_config = {"from_attributes": True}

class MindfulnessComplete(BaseModel):
    exercise_id: int
    duration_minutes: int = Field(gt=0, le=240)
    mood_before: int = Field(ge=1, le=10)
    mood_after: int = Field(ge=1, le=10)
    stress_level_before: int = Field(ge=1, le=10)
    stress_level_after: int = Field(ge=1, le=10)
    notes: Optional[str] = None


# =============================================================================
# ===================== HEALTH ================================================
# =============================================================================

class HealthHabitUpdate(BaseModel):
    target_value: float = Field(gt=0)
    unit: str = Field(min_length=1, max_length=30)

class HealthHabitResponse(BaseModel):
    id: int
    habit_type: str
    target_value: float
    unit: str
    model_config = {"from_attributes": True}

class HealthLogCreate(BaseModel):
    habit_type: HabitType
    value: float = Field(ge=0)
    unit: str = Field(min_length=1, max_length=30)
    notes: Optional[str] = None
    logged_date: Optional[date] = None  # sin fecha → hoy (config.TIMEZONE)

class HealthLogResponse(BaseModel):
    id: int
    habit_type: str
    value: float
    unit: str
    notes: Optional[str]
    logged_date: date
    logged_at: datetime
    model_config = {"from_attributes": True}

class HealthLogsOverview(BaseModel):
    today: list[HealthLogResponse]
    week: list[HealthLogResponse]

class HealthLogResult(BaseModel):
    success: bool = True
    log: HealthLogResponse
    completed_challenges: list[int] = []
    xp_earned: int = 0


# =============================================================================
# ===================== WELLNESS CHALLENGES ===================================
# =============================================================================

class ChallengeResponse(BaseModel):
    """Desafío del catálogo + progreso del usuario"""
    id: int
    title: str
    description: str
    challenge_type: str
    target_value: float
    target_unit: str
    points_reward: int
    start_date: Optional[date]
    end_date: Optional[date]
    is_active: bool
    current_value: float = 0
    is_completed: bool = False
    progress_percentage: float = 0


# =============================================================================
# ===================== STUDY =================================================
# =============================================================================

class StudyMaterialCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    file_path: Optional[str] = None
    file_size: Optional[int] = Field(default=None, ge=0)
    mime_type: Optional[str] = "application/pdf"
    total_pages: Optional[int] = Field(default=None, gt=0)

class StudyMaterialResponse(BaseModel):
    id: int
    title: str
    file_path: Optional[str]
    file_size: Optional[int]
    mime_type: Optional[str]
    total_pages: Optional[int]
    is_processed: bool
    created_at: datetime
    model_config = {"from_attributes": True}

class StudySessionCreate(BaseModel):
    material_id: int
    session_name: str = Field(min_length=1, max_length=200)
    start_page: int = Field(default=1, ge=1)
    end_page: Optional[int] = Field(default=None, ge=1)
    planned_duration_minutes: int = Field(gt=0, le=480)

class StudySessionComplete(BaseModel):
    actual_duration_minutes: int = Field(ge=0, le=480)
    end_page: Optional[int] = Field(default=None, ge=1)
    comprehension_rating: Optional[int] = Field(default=None, ge=1, le=5)

class StudySessionResponse(BaseModel):
    id: int
    material_id: int
    session_name: str
    start_page: int
    end_page: Optional[int]
    planned_duration_minutes: int
    actual_duration_minutes: Optional[int]
    is_completed: bool
    comprehension_rating: Optional[int]
    started_at: Optional[datetime]
    completed_at: Optional[datetime]
    model_config = {"from_attributes": True}


# =============================================================================
# ===================== AI INSIGHTS ===========================================
# =============================================================================

class InsightRequest(BaseModel):
    insight_type: InsightType
    user_context: dict[str, Any] = {}
    # user_context → datos libres: contadores, mood, hora del día...

class InsightResponse(BaseModel):
    id: int
    insight_type: str
    insight_data: str
    confidence_score: float
    is_active: bool
    created_at: datetime
    model_config = {"from_attributes": True}

class GeneratedInsight(BaseModel):
    insight: str
    insight_id: int
