"""
=============================================================================
MODELS.PY — Todos los Modelos (Tablas) de la Base de Datos
=============================================================================
Cada clase aquí = una tabla en la base de datos.
Cada atributo de la clase = una columna en esa tabla.

RELACIONES:
  USER
  ├── focus_sessions[]
  ├── lesson_progress[] ──→ learning_lessons ──→ learning_categories
  ├── user_rewards[] ──→ rewards (catálogo)
  ├── health_habits[]   (objetivos por tipo: agua, sueño...)
  ├── health_logs[]     (mediciones diarias)
  ├── challenge_progress[] ──→ wellness_challenges (catálogo)
  ├── mindfulness_sessions[] ──→ mindfulness_exercises (catálogo)
  ├── study_materials[] ──→ study_sessions[]
  └── ai_insights[]

Catálogos (los define el sistema, se cargan en seeds.py):
  rewards, wellness_challenges, learning_categories, learning_lessons,
  mindfulness_exercises
"""

from datetime import datetime
from sqlalchemy import (
    Column, Integer, String, Boolean, Float, Text, Date,
    DateTime, ForeignKey, UniqueConstraint
)
from sqlalchemy.orm import relationship
from database import Base
import enum


# =============================================================================
# ===================== ENUMS (Tipos predefinidos) ============================
# =============================================================================

class SessionType(str, enum.Enum):
    """Tipo de sesión del temporizador Pomodoro"""
    focus = "focus"              # Trabajo concentrado (la única que cuenta)
    short_break = "short_break"  # Descanso corto
    long_break = "long_break"    # Descanso largo

class ConditionType(str, enum.Enum):
    """Contador del usuario que desbloquea una recompensa"""
    sessions_completed = "sessions_completed"
    lessons_completed = "lessons_completed"
    total_minutes = "total_minutes"
    streak_days = "streak_days"

class RewardType(str, enum.Enum):
    badge = "badge"
    title = "title"
    unlock = "unlock"
    bonus_points = "bonus_points"

class Rarity(str, enum.Enum):
    common = "common"
    rare = "rare"
    epic = "epic"
    legendary = "legendary"

class ChallengeType(str, enum.Enum):
    """Periodo de un desafío (define cuándo se reinicia el progreso)"""
    daily = "daily"          # Se reinicia cada día
    weekly = "weekly"        # Se reinicia cada lunes
    monthly = "monthly"      # Se reinicia el día 1 de cada mes
    milestone = "milestone"  # Nunca se reinicia

class HabitType(str, enum.Enum):
    """Métricas de salud que el usuario puede registrar"""
    sleep = "sleep"
    water = "water"
    nutrition = "nutrition"
    workout = "workout"
    mood = "mood"
    weight = "weight"

class InsightType(str, enum.Enum):
    productivity_pattern = "productivity_pattern"
    learning_preference = "learning_preference"
    motivation_tip = "motivation_tip"
    session_recommendation = "session_recommendation"

class LessonType(str, enum.Enum):
    article = "article"
    tip = "tip"
    quote = "quote"
    exercise = "exercise"

class DifficultyLevel(str, enum.Enum):
    beginner = "beginner"
    intermediate = "intermediate"
    advanced = "advanced"

class ExerciseType(str, enum.Enum):
    breathing = "breathing"
    meditation = "meditation"
    body_scan = "body_scan"
    gratitude = "gratitude"
    visualization = "visualization"


# Cada 1000 XP se sube un nivel
XP_PER_LEVEL = 1000


def level_for_xp(experience_points: int) -> int:
    """Nivel = floor(XP / 1000) + 1. 0 XP → nivel 1, 2500 XP → nivel 3"""
    return (experience_points or 0) // XP_PER_LEVEL + 1


# =============================================================================
# ===================== TABLA 1: USERS ========================================
# =============================================================================

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # ── Datos básicos ──
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(100), nullable=True)
    avatar_url = Column(String(500), nullable=True)

    # ── Objetivos ──
    focus_goal_minutes = Column(Integer, default=120, nullable=False)
    # focus_goal_minutes → minutos de foco que quiere hacer al día
    learning_goal_lessons = Column(Integer, default=3, nullable=False)
    preferred_session_length = Column(Integer, default=25, nullable=False)
    # preferred_session_length → duración de su Pomodoro favorito

    # ── Contadores acumulados ──
    # Solo se modifican con incrementos atómicos (ver gamification.py)
    total_focus_minutes = Column(Integer, default=0, nullable=False)
    total_sessions_completed = Column(Integer, default=0, nullable=False)
    total_lessons_completed = Column(Integer, default=0, nullable=False)
    current_streak = Column(Integer, default=0, nullable=False)
    longest_streak = Column(Integer, default=0, nullable=False)
    last_activity_date = Column(Date, nullable=True)
    # last_activity_date → último día con una sesión de foco completada (para la racha)

    # ── Gamificación ──
    experience_points = Column(Integer, default=0, nullable=False)
    # El nivel NO se guarda: se calcula siempre desde el XP (ver propiedad level)

    # ── Timestamps ──
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # ── Relaciones ──
    focus_sessions = relationship("FocusSession", back_populates="user", cascade="all, delete-orphan")
    lesson_progress = relationship("UserLessonProgress", back_populates="user", cascade="all, delete-orphan")
    user_rewards = relationship("UserReward", back_populates="user", cascade="all, delete-orphan")
    health_habits = relationship("HealthHabit", back_populates="user", cascade="all, delete-orphan")
    health_logs = relationship("HealthLog", back_populates="user", cascade="all, delete-orphan")
    challenge_progress = relationship("UserChallengeProgress", back_populates="user", cascade="all, delete-orphan")
    mindfulness_sessions = relationship("MindfulnessSession", back_populates="user", cascade="all, delete-orphan")
    study_materials = relationship("StudyMaterial", back_populates="user", cascade="all, delete-orphan")
    study_sessions = relationship("StudySession", back_populates="user", cascade="all, delete-orphan")
    ai_insights = relationship("AIInsight", back_populates="user", cascade="all, delete-orphan")

    @property
    def level(self) -> int:
        return level_for_xp(self.experience_points)


# =============================================================================
# ===================== TABLA 2: FOCUS_SESSIONS ===============================
# =============================================================================
# Ciclo de vida: empezada (is_completed=False) → completada

class FocusSession(Base):
    __tablename__ = "focus_sessions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    session_type = Column(String(20), default=SessionType.focus, nullable=False)
    planned_duration_minutes = Column(Integer, nullable=False)
    actual_duration_minutes = Column(Integer, nullable=True)
    is_completed = Column(Boolean, default=False, nullable=False)

    started_at = Column(DateTime, default=datetime.utcnow)
    completed_at = Column(DateTime, nullable=True)

    # ── Valoraciones subjetivas (opcionales) ──
    mood_before = Column(String(30), nullable=True)
    mood_after = Column(String(30), nullable=True)
    focus_rating = Column(Integer, nullable=True)
    # focus_rating → 1 a 5
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", back_populates="focus_sessions")


# =============================================================================
# ===================== TABLA 3: LEARNING_CATEGORIES ==========================
# =============================================================================

class LearningCategory(Base):
    __tablename__ = "learning_categories"

    id = Column(Integer, primary_key=True, autoincrement=True)

    name = Column(String(100), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    icon = Column(String(10), nullable=True)
    color = Column(String(20), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    lessons = relationship("LearningLesson", back_populates="category", cascade="all, delete-orphan")


# =============================================================================
# ===================== TABLA 4: LEARNING_LESSONS =============================
# =============================================================================
# Micro-lecciones: artículos cortos, consejos, citas y ejercicios

class LearningLesson(Base):
    __tablename__ = "learning_lessons"

    id = Column(Integer, primary_key=True, autoincrement=True)
    category_id = Column(Integer, ForeignKey("learning_categories.id"), nullable=False)

    title = Column(String(200), unique=True, nullable=False)
    content = Column(Text, nullable=False)
    lesson_type = Column(String(20), default=LessonType.article, nullable=False)
    difficulty_level = Column(String(20), default=DifficultyLevel.beginner, nullable=False)
    estimated_read_time = Column(Integer, nullable=True)
    # estimated_read_time → minutos
    tags = Column(String(200), nullable=True)
    is_ai_generated = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)

    category = relationship("LearningCategory", back_populates="lessons")

    @property
    def category_name(self):
        return self.category.name if self.category else None

    @property
    def category_color(self):
        return self.category.color if self.category else None


# =============================================================================
# ===================== TABLA 5: USER_LESSON_PROGRESS =========================
# =============================================================================
# Una fila por usuario y lección

class UserLessonProgress(Base):
    __tablename__ = "user_lesson_progress"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    lesson_id = Column(Integer, ForeignKey("learning_lessons.id"), nullable=False)

    is_completed = Column(Boolean, default=False, nullable=False)
    completion_date = Column(DateTime, nullable=True)
    rating = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint('user_id', 'lesson_id', name='uq_user_lesson'),
    )

    user = relationship("User", back_populates="lesson_progress")
    lesson = relationship("LearningLesson")


# =============================================================================
# ===================== TABLA 6: REWARDS ======================================
# =============================================================================
# Catálogo de recompensas DISPONIBLES. No cambia después del seed.

class Reward(Base):
    __tablename__ = "rewards"

    id = Column(Integer, primary_key=True, autoincrement=True)

    code = Column(String(50), unique=True, nullable=False)
    # code → identificador estable para el seed: "first_focus", "sessions_10"...
    name = Column(String(100), nullable=False)
    description = Column(String(300), nullable=False)
    reward_type = Column(String(20), default=RewardType.badge, nullable=False)

    # ── Condición de desbloqueo ──
    condition_type = Column(String(30), nullable=False)
    # condition_type → qué contador del usuario se mira (ver ConditionType)
    condition_value = Column(Integer, nullable=False)
    # condition_value → umbral (contador >= umbral → se concede)

    points_value = Column(Integer, default=0, nullable=False)
    # points_value → XP extra al desbloquear
    icon = Column(String(10), nullable=True)
    color = Column(String(20), nullable=True)
    rarity = Column(String(20), default=Rarity.common, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)


# =============================================================================
# ===================== TABLA 7: USER_REWARDS =================================
# =============================================================================
# Recompensas ganadas. Sin fila = todavía no ganada.

class UserReward(Base):
    __tablename__ = "user_rewards"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    reward_id = Column(Integer, ForeignKey("rewards.id"), nullable=False)

    earned_at = Column(DateTime, default=datetime.utcnow)

    # ── Una recompensa como máximo una vez por usuario ──
    __table_args__ = (
        UniqueConstraint('user_id', 'reward_id', name='uq_user_reward'),
    )

    user = relationship("User", back_populates="user_rewards")
    reward = relationship("Reward")


# =============================================================================
# ===================== TABLA 8: AI_INSIGHTS ==================================
# =============================================================================

class AIInsight(Base):
    __tablename__ = "ai_insights"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    insight_type = Column(String(40), nullable=False)
    insight_data = Column(Text, nullable=False)
    # insight_data → el texto generado por la IA
    confidence_score = Column(Float, default=0.8, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", back_populates="ai_insights")


# =============================================================================
# ===================== TABLA 9: HEALTH_HABITS ================================
# =============================================================================
# Objetivo diario del usuario para cada métrica (ej: 8 vasos de agua)

class HealthHabit(Base):
    __tablename__ = "health_habits"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    habit_type = Column(String(20), nullable=False)
    target_value = Column(Float, nullable=False)
    unit = Column(String(30), nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint('user_id', 'habit_type', name='uq_user_habit_type'),
    )

    user = relationship("User", back_populates="health_habits")


# =============================================================================
# ===================== TABLA 10: HEALTH_LOGS =================================
# =============================================================================
# Una medición de un hábito. Solo se añaden, nunca se editan.

class HealthLog(Base):
    __tablename__ = "health_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    habit_type = Column(String(20), nullable=False)
    value = Column(Float, nullable=False)
    unit = Column(String(30), nullable=False)
    notes = Column(Text, nullable=True)

    logged_date = Column(Date, nullable=False)
    # logged_date → el día al que pertenece la medición
    logged_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", back_populates="health_logs")


# =============================================================================
# ===================== TABLA 11: WELLNESS_CHALLENGES =========================
# =============================================================================
# Catálogo de desafíos. Se alimentan de los health_logs.

class WellnessChallenge(Base):
    __tablename__ = "wellness_challenges"

    id = Column(Integer, primary_key=True, autoincrement=True)

    code = Column(String(50), unique=True, nullable=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    challenge_type = Column(String(20), default=ChallengeType.daily, nullable=False)

    target_value = Column(Float, nullable=False)
    target_unit = Column(String(50), nullable=False)
    # target_unit → "water_glasses", "sleep_hours"... (ver CHALLENGE_UNITS en gamification.py)
    points_reward = Column(Integer, default=0, nullable=False)

    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    # Si hay fechas, solo cuentan los logs dentro de [start_date, end_date]
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)


# =============================================================================
# ===================== TABLA 12: USER_CHALLENGE_PROGRESS =====================
# =============================================================================

class UserChallengeProgress(Base):
    __tablename__ = "user_challenge_progress"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    challenge_id = Column(Integer, ForeignKey("wellness_challenges.id"), nullable=False)

    current_value = Column(Float, default=0, nullable=False)
    is_completed = Column(Boolean, default=False, nullable=False)
    completed_at = Column(DateTime, nullable=True)

    period_start = Column(Date, nullable=True)
    # period_start → inicio del periodo (día, lunes, día 1) al que pertenece current_value.
    # NULL en desafíos "milestone" (nunca se reinician)

    joined_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint('user_id', 'challenge_id', name='uq_user_challenge'),
    )

    user = relationship("User", back_populates="challenge_progress")
    challenge = relationship("WellnessChallenge")


# =============================================================================
# ===================== TABLA 13: MINDFULNESS_EXERCISES =======================
# =============================================================================

class MindfulnessExercise(Base):
    __tablename__ = "mindfulness_exercises"

    id = Column(Integer, primary_key=True, autoincrement=True)

    title = Column(String(200), unique=True, nullable=False)
    description = Column(Text, nullable=False)
    exercise_type = Column(String(20), nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    difficulty_level = Column(String(20), default=DifficultyLevel.beginner, nullable=False)
    audio_url = Column(String(500), nullable=True)
    instructions = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)


# =============================================================================
# ===================== TABLA 14: MINDFULNESS_SESSIONS ========================
# =============================================================================

class MindfulnessSession(Base):
    __tablename__ = "mindfulness_sessions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    exercise_id = Column(Integer, ForeignKey("mindfulness_exercises.id"), nullable=False)

    duration_minutes = Column(Integer, nullable=False)
    # Escalas de 1 a 10
    mood_before = Column(Integer, nullable=False)
    mood_after = Column(Integer, nullable=False)
    stress_level_before = Column(Integer, nullable=False)
    stress_level_after = Column(Integer, nullable=False)
    notes = Column(Text, nullable=True)

    completed_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", back_populates="mindfulness_sessions")
    exercise = relationship("MindfulnessExercise")


# =============================================================================
# ===================== TABLA 15: STUDY_MATERIALS =============================
# =============================================================================
# Solo metadatos: el fichero en sí lo guarda un servicio externo

class StudyMaterial(Base):
    __tablename__ = "study_materials"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    title = Column(String(200), nullable=False)
    file_path = Column(String(500), nullable=True)
    file_size = Column(Integer, nullable=True)
    mime_type = Column(String(100), nullable=True)
    total_pages = Column(Integer, nullable=True)
    is_processed = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", back_populates="study_materials")
    sessions = relationship("StudySession", back_populates="material", cascade="all, delete-orphan")


# =============================================================================
# ===================== TABLA 16: STUDY_SESSIONS ==============================
# =============================================================================
# Ciclo de vida: creada → empezada (started_at) → completada

class StudySession(Base):
    __tablename__ = "study_sessions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    material_id = Column(Integer, ForeignKey("study_materials.id"), nullable=False)

    session_name = Column(String(200), nullable=False)
    start_page = Column(Integer, default=1, nullable=False)
    end_page = Column(Integer, nullable=True)

    planned_duration_minutes = Column(Integer, nullable=False)
    actual_duration_minutes = Column(Integer, nullable=True)
    is_completed = Column(Boolean, default=False, nullable=False)
    comprehension_rating = Column(Integer, nullable=True)

    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", back_populates="study_sessions")
    material = relationship("StudyMaterial", back_populates="sessions")
