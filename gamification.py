"""
=============================================================================
GAMIFICATION.PY — Motor de Progreso y Recompensas
=============================================================================
Gestiona:
  - Contadores del usuario (minutos de foco, sesiones, lecciones)
  - XP y niveles (nivel = XP // 1000 + 1)
  - Racha diaria (días seguidos con al menos una sesión de foco)
  - Recompensas (se desbloquean al superar un umbral)
  - Desafíos de bienestar (se alimentan de los registros de salud)

Reglas de escritura:
  - Los contadores SIEMPRE se incrementan en SQL (col = col + n), nunca
    "leer → sumar en Python → guardar". Así dos peticiones a la vez no se pisan.
  - La fila del usuario se bloquea (SELECT ... FOR UPDATE) mientras se
    calculan racha, recompensas y desafíos.
  - Estas funciones NO hacen commit. Las operaciones públicas
    (complete_*, log_habit) envuelven todo en transaction(): o se guarda
    el evento + contadores + recompensas + XP, o no se guarda nada.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Optional

import pytz
from sqlalchemy import or_
from sqlalchemy.orm import Session

import config
from database import transaction
from exceptions import NotFoundError, ValidationError
from models import (
    User, FocusSession, LearningLesson, UserLessonProgress, Reward, UserReward,
    HealthLog, WellnessChallenge, UserChallengeProgress, MindfulnessExercise,
    MindfulnessSession, SessionType, ChallengeType, HabitType,
    XP_PER_LEVEL, level_for_xp
)

logger = logging.getLogger("healthup.gamification")


# =============================================================================
# ===================== CONSTANTES ============================================
# =============================================================================

LESSON_XP = 25                  # XP fijo por lección completada
MINDFULNESS_XP_PER_MINUTE = 2   # XP por minuto de mindfulness
RECENT_SESSIONS_LIMIT = 10

# Qué contador del usuario mira cada tipo de recompensa
REWARD_COUNTERS = {
    "sessions_completed": "total_sessions_completed",
    "lessons_completed": "total_lessons_completed",
    "total_minutes": "total_focus_minutes",
    "streak_days": "current_streak",
}

# Qué unidades de desafío alimenta cada tipo de hábito.
# Tabla explícita: un registro de "water" solo suma a desafíos medidos en agua.
CHALLENGE_UNITS = {
    HabitType.water.value: ("water", "water_glasses", "glasses"),
    HabitType.sleep.value: ("sleep", "sleep_hours", "hours"),
    HabitType.workout.value: ("workout", "workout_minutes", "exercise_minutes"),
    HabitType.nutrition.value: ("nutrition", "nutrition_meals", "healthy_meals"),
    HabitType.mood.value: ("mood", "mood_score"),
    HabitType.weight.value: ("weight", "weight_kg"),
}


# =============================================================================
# ===================== NIVELES ===============================================
# =============================================================================

def get_level_info(user: User) -> dict:
    """Información completa del nivel del usuario"""
    xp = user.experience_points or 0
    xp_in_level = xp % XP_PER_LEVEL
    return {
        "level": level_for_xp(xp),
        "experience_points": xp,
        "xp_in_level": xp_in_level,
        "xp_next_level": XP_PER_LEVEL,
        "xp_progress": round(xp_in_level / XP_PER_LEVEL * 100, 1),
    }


# =============================================================================
# ===================== FECHA DE HOY ==========================================
# =============================================================================

def local_today() -> date:
    """
    "Hoy" en config.TIMEZONE. Único reloj de la app: rachas, periodos de
    desafío, registros sin fecha y el job nocturno leen siempre esta fecha.
    """
    return datetime.now(pytz.timezone(config.TIMEZONE)).date()


# =============================================================================
# ===================== CONTADORES ============================================
# =============================================================================

def _load_user(db: Session, user_id: int, lock: bool = False) -> User:
    """
    Carga el usuario con los contadores recién leídos de la BD.

    lock=True → SELECT ... FOR UPDATE (en PostgreSQL serializa las
    peticiones del mismo usuario; SQLite ya bloquea la BD entera al escribir).
    """
    db.flush()
    query = db.query(User).filter(User.id == user_id).populate_existing()
    if lock:
        query = query.with_for_update()
    user = query.first()
    if user is None:
        raise NotFoundError("Usuario no encontrado", context={"user_id": user_id})
    return user


def _increment(db: Session, user_id: int, **deltas: int) -> None:
    """
    Incremento atómico de contadores:
      _increment(db, 1, experience_points=25, total_lessons_completed=1)
      → UPDATE users SET experience_points = experience_points + 25, ...
    """
    if any(n < 0 for n in deltas.values()):
        raise ValueError(f"Los contadores solo pueden crecer: {deltas}")
    values = {getattr(User, column): getattr(User, column) + n for column, n in deltas.items() if n}
    if not values:
        return
    db.flush()
    values[User.updated_at] = datetime.utcnow()
    db.query(User).filter(User.id == user_id).update(values, synchronize_session=False)


def update_streak(db: Session, user_id: int, activity_date: date) -> int:
    """
    Actualiza la racha diaria con una actividad en activity_date.

      - Ya hubo actividad ese día → no cambia
      - La última actividad fue ayer → racha +1
      - Si no → racha = 1
    """
    user = _load_user(db, user_id, lock=True)
    last = user.last_activity_date

    if last == activity_date:
        return user.current_streak
    if last is not None and last > activity_date:
        # Actividad con fecha anterior a la última registrada: no toca la racha
        return user.current_streak

    if last == activity_date - timedelta(days=1):
        user.current_streak = (user.current_streak or 0) + 1
    else:
        user.current_streak = 1

    if user.current_streak > (user.longest_streak or 0):
        user.longest_streak = user.current_streak
    user.last_activity_date = activity_date
    db.flush()
    return user.current_streak


def expire_streaks(db: Session, today: date) -> int:
    """Rompe la racha de quien no tuvo actividad ni ayer ni hoy. Devuelve cuántos."""
    yesterday = today - timedelta(days=1)
    return db.query(User).filter(
        User.current_streak > 0,
        or_(User.last_activity_date == None, User.last_activity_date < yesterday)  # noqa: E711
    ).update({User.current_streak: 0}, synchronize_session=False)


# =============================================================================
# ===================== RECOMPENSAS ===========================================
# =============================================================================

def counter_value(user: User, condition_type: str) -> Optional[int]:
    """Valor actual del contador que mira una recompensa (None si el tipo no existe)"""
    column = REWARD_COUNTERS.get(condition_type)
    if column is None:
        return None
    return getattr(user, column) or 0


def check_and_award_rewards(db: Session, user_id: int) -> list[Reward]:
    """
    Concede todas las recompensas que el usuario ya cumple y aún no tiene.

    Para cada recompensa del catálogo sin fila en user_rewards:
      contador >= condition_value → nueva fila + points_value de XP.

    Idempotente: si los contadores no cambian, una segunda llamada no concede nada.
    No hace commit: el llamador decide (ver transaction()).
    """
    user = _load_user(db, user_id, lock=True)

    earned_ids = {
        reward_id for (reward_id,) in
        db.query(UserReward.reward_id).filter(UserReward.user_id == user_id).all()
    }

    granted = []
    for reward in db.query(Reward).order_by(Reward.condition_value, Reward.id).all():
        if reward.id in earned_ids:
            continue

        current = counter_value(user, reward.condition_type)
        if current is None:
            logger.warning(f"⚠️ Recompensa '{reward.code}' con condition_type desconocido: {reward.condition_type}")
            continue

        if current >= reward.condition_value:
            db.add(UserReward(user_id=user_id, reward_id=reward.id))
            _increment(db, user_id, experience_points=reward.points_value or 0)
            granted.append(reward)
            logger.info(f"🏆 Usuario {user_id} desbloqueó: {reward.name} (+{reward.points_value} XP)")

    db.flush()
    return granted


# =============================================================================
# ===================== OPERACIONES: FOCO, LECCIONES, MINDFULNESS =============
# =============================================================================

def complete_focus_session(
    db: Session,
    user: User,
    session_id: int,
    actual_duration: int,
    mood_after: Optional[str] = None,
    focus_rating: Optional[int] = None,
    notes: Optional[str] = None,
) -> tuple[FocusSession, list[Reward]]:
    """
    Marca una sesión como completada.

    Solo las sesiones "focus" cuentan (los descansos no suman nada):
      total_focus_minutes += actual_duration
      total_sessions_completed += 1
      racha diaria + recompensas
    """
    session = db.query(FocusSession).filter(
        FocusSession.id == session_id, FocusSession.user_id == user.id
    ).first()
    if session is None:
        raise NotFoundError("Sesión no encontrada", context={"session_id": session_id})
    if session.is_completed:
        raise ValidationError("La sesión ya está completada")
    if actual_duration is None or actual_duration < 0:
        raise ValidationError("La duración real debe ser un número positivo")
    if focus_rating is not None and not 1 <= focus_rating <= 5:
        raise ValidationError("focus_rating debe estar entre 1 y 5")

    now = datetime.utcnow()
    new_rewards = []

    with transaction(db):
        session.is_completed = True
        session.completed_at = now
        session.actual_duration_minutes = actual_duration
        session.mood_after = mood_after
        session.focus_rating = focus_rating
        session.notes = notes

        if session.session_type == SessionType.focus:
            _increment(db, user.id, total_focus_minutes=actual_duration, total_sessions_completed=1)
            update_streak(db, user.id, local_today())
            new_rewards = check_and_award_rewards(db, user.id)

    logger.info(f"🍅 Sesión {session.id} ({session.session_type}) completada: {actual_duration} min")
    return session, new_rewards


def complete_lesson(
    db: Session,
    user: User,
    lesson_id: int,
    rating: Optional[int] = None,
    notes: Optional[str] = None,
) -> tuple[int, list[Reward]]:
    """
    Completa una lección: +1 lección y +25 XP, después revisa recompensas.

    Repetir una lección ya completada solo actualiza valoración y notas.
    Devuelve (xp_ganado, recompensas_nuevas).
    """
    lesson = db.query(LearningLesson).filter(LearningLesson.id == lesson_id).first()
    if lesson is None:
        raise NotFoundError("Lección no encontrada", context={"lesson_id": lesson_id})
    if rating is not None and not 1 <= rating <= 5:
        raise ValidationError("rating debe estar entre 1 y 5")

    progress = db.query(UserLessonProgress).filter(
        UserLessonProgress.user_id == user.id,
        UserLessonProgress.lesson_id == lesson_id
    ).first()

    with transaction(db):
        if progress is not None and progress.is_completed:
            if rating is not None:
                progress.rating = rating
            if notes is not None:
                progress.notes = notes
            return 0, []

        if progress is None:
            progress = UserLessonProgress(user_id=user.id, lesson_id=lesson_id)
            db.add(progress)

        progress.is_completed = True
        progress.completion_date = datetime.utcnow()
        progress.rating = rating
        progress.notes = notes

        _increment(db, user.id, total_lessons_completed=1, experience_points=LESSON_XP)
        new_rewards = check_and_award_rewards(db, user.id)

    logger.info(f"📚 Usuario {user.id} completó la lección '{lesson.title}'")
    return LESSON_XP, new_rewards


def complete_mindfulness(
    db: Session,
    user: User,
    exercise_id: int,
    duration_minutes: int,
    mood_before: int,
    mood_after: int,
    stress_before: int,
    stress_after: int,
    notes: Optional[str] = None,
) -> int:
    """Registra un ejercicio de mindfulness. Solo da XP (2 por minuto). Devuelve el XP."""
    exercise = db.query(MindfulnessExercise).filter(MindfulnessExercise.id == exercise_id).first()
    if exercise is None:
        raise NotFoundError("Ejercicio no encontrado", context={"exercise_id": exercise_id})
    if duration_minutes is None or duration_minutes <= 0:
        raise ValidationError("La duración debe ser mayor que 0")
    for field, value in (("mood_before", mood_before), ("mood_after", mood_after),
                         ("stress_level_before", stress_before), ("stress_level_after", stress_after)):
        if value is None or not 1 <= value <= 10:
            raise ValidationError(f"{field} debe estar entre 1 y 10")

    xp = duration_minutes * MINDFULNESS_XP_PER_MINUTE

    with transaction(db):
        db.add(MindfulnessSession(
            user_id=user.id,
            exercise_id=exercise_id,
            duration_minutes=duration_minutes,
            mood_before=mood_before,
            mood_after=mood_after,
            stress_level_before=stress_before,
            stress_level_after=stress_after,
            notes=notes
        ))
        _increment(db, user.id, experience_points=xp)

    logger.info(f"🧘 Usuario {user.id} completó '{exercise.title}' (+{xp} XP)")
    return xp


# =============================================================================
# ===================== DESAFÍOS ==============================================
# =============================================================================

def period_start_for(challenge_type: str, day: date) -> Optional[date]:
    """
    Inicio del periodo al que pertenece un día:
      daily → ese día, weekly → lunes, monthly → día 1, milestone → None
    """
    if challenge_type == ChallengeType.daily:
        return day
    if challenge_type == ChallengeType.weekly:
        return day - timedelta(days=day.weekday())
    if challenge_type == ChallengeType.monthly:
        return day.replace(day=1)
    return None


def _reset_progress(progress: UserChallengeProgress, period: Optional[date]) -> None:
    progress.current_value = 0
    progress.is_completed = False
    progress.completed_at = None
    progress.period_start = period


def _sync_period(progress: UserChallengeProgress, period: Optional[date]) -> bool:
    """
    Pone el progreso en el periodo del registro.
    Devuelve False si el registro es de un periodo ya cerrado (no se acumula).
    """
    if period is None:
        return True
    if progress.period_start is None:
        progress.period_start = period
        return True
    if period > progress.period_start:
        _reset_progress(progress, period)
        return True
    return period == progress.period_start


def _challenge_open_on(challenge: WellnessChallenge, day: date) -> bool:
    if challenge.start_date and day < challenge.start_date:
        return False
    if challenge.end_date and day > challenge.end_date:
        return False
    return True


def progress_percentage(current_value: float, target_value: float) -> float:
    if not target_value or target_value <= 0:
        return 0.0
    return round(min(current_value / target_value * 100, 100.0), 1)


def update_challenge_progress(
    db: Session,
    user_id: int,
    habit_type: str,
    value: float,
    logged_date: date,
) -> tuple[list[int], int]:
    """
    Suma un registro de hábito a cada desafío activo de su unidad.

    Por desafío:
      1. Buscar o crear la fila de progreso
      2. Reiniciar si empezó un periodo nuevo (diario/semanal/mensual)
      3. Si ya está completado → congelado, no se toca
      4. current_value += value
      5. Si llega al objetivo por primera vez → completado + points_reward de XP

    Devuelve (ids de desafíos completados ahora, XP ganado).
    """
    units = CHALLENGE_UNITS.get(habit_type)
    if units is None:
        raise ValidationError(f"Tipo de hábito desconocido: {habit_type}")

    # Bloquear al usuario serializa los registros simultáneos del mismo usuario
    _load_user(db, user_id, lock=True)

    challenges = db.query(WellnessChallenge).filter(
        WellnessChallenge.is_active == True,  # noqa: E712
        WellnessChallenge.target_unit.in_(units)
    ).all()

    completed_ids = []
    xp_earned = 0
    now = datetime.utcnow()

    for challenge in challenges:
        if not _challenge_open_on(challenge, logged_date):
            continue

        period = period_start_for(challenge.challenge_type, logged_date)
        progress = db.query(UserChallengeProgress).filter(
            UserChallengeProgress.user_id == user_id,
            UserChallengeProgress.challenge_id == challenge.id
        ).first()

        if progress is None:
            progress = UserChallengeProgress(
                user_id=user_id,
                challenge_id=challenge.id,
                current_value=0,
                is_completed=False,
                period_start=period
            )
            db.add(progress)
        elif not _sync_period(progress, period):
            continue

        if progress.is_completed:
            continue

        progress.current_value = (progress.current_value or 0) + value

        if progress.current_value >= challenge.target_value:
            progress.is_completed = True
            progress.completed_at = now
            _increment(db, user_id, experience_points=challenge.points_reward or 0)
            completed_ids.append(challenge.id)
            xp_earned += challenge.points_reward or 0
            logger.info(f"🎯 Usuario {user_id} completó el desafío '{challenge.title}' (+{challenge.points_reward} XP)")

    db.flush()
    return completed_ids, xp_earned


def log_habit(
    db: Session,
    user: User,
    habit_type: str,
    value: float,
    unit: str,
    logged_date: Optional[date] = None,
    notes: Optional[str] = None,
) -> tuple[HealthLog, list[int], int]:
    """
    Guarda un registro de salud y actualiza los desafíos en la misma transacción.
    Sin logged_date → local_today().
    """
    if habit_type not in CHALLENGE_UNITS:
        raise ValidationError(f"Tipo de hábito desconocido: {habit_type}")
    if value is None or value < 0:
        raise ValidationError("El valor no puede ser negativo")
    if not unit:
        raise ValidationError("La unidad es obligatoria")
    logged_date = logged_date or local_today()

    with transaction(db):
        log = HealthLog(
            user_id=user.id,
            habit_type=habit_type,
            value=value,
            unit=unit,
            notes=notes,
            logged_date=logged_date
        )
        db.add(log)
        completed_ids, xp_earned = update_challenge_progress(db, user.id, habit_type, value, logged_date)

    return log, completed_ids, xp_earned


def join_challenge(db: Session, user: User, challenge_id: int) -> UserChallengeProgress:
    """Apuntarse a un desafío (crea la fila de progreso si no existe)"""
    challenge = db.query(WellnessChallenge).filter(
        WellnessChallenge.id == challenge_id, WellnessChallenge.is_active == True  # noqa: E712
    ).first()
    if challenge is None:
        raise NotFoundError("Desafío no encontrado", context={"challenge_id": challenge_id})

    progress = db.query(UserChallengeProgress).filter(
        UserChallengeProgress.user_id == user.id,
        UserChallengeProgress.challenge_id == challenge_id
    ).first()
    if progress is not None:
        return progress

    with transaction(db):
        progress = UserChallengeProgress(
            user_id=user.id,
            challenge_id=challenge_id,
            current_value=0,
            is_completed=False,
            period_start=period_start_for(challenge.challenge_type, local_today())
        )
        db.add(progress)
    return progress


def list_challenges(db: Session, user: User, today: Optional[date] = None) -> list[dict]:
    """
    Desafíos activos con el progreso del usuario.
    Si el periodo guardado ya terminó, se muestra a 0 (aunque el job nocturno aún no haya pasado).
    """
    today = today or local_today()
    challenges = db.query(WellnessChallenge).filter(
        WellnessChallenge.is_active == True  # noqa: E712
    ).order_by(WellnessChallenge.challenge_type, WellnessChallenge.id).all()

    progress_map = {
        p.challenge_id: p for p in
        db.query(UserChallengeProgress).filter(UserChallengeProgress.user_id == user.id).all()
    }

    result = []
    for ch in challenges:
        current_value, is_completed = 0.0, False
        progress = progress_map.get(ch.id)
        if progress is not None:
            period = period_start_for(ch.challenge_type, today)
            stale = period is not None and progress.period_start is not None and progress.period_start < period
            if not stale:
                current_value = progress.current_value or 0.0
                is_completed = progress.is_completed

        result.append({
            "id": ch.id,
            "title": ch.title,
            "description": ch.description,
            "challenge_type": ch.challenge_type,
            "target_value": ch.target_value,
            "target_unit": ch.target_unit,
            "points_reward": ch.points_reward,
            "start_date": ch.start_date,
            "end_date": ch.end_date,
            "is_active": ch.is_active,
            "current_value": current_value,
            "is_completed": is_completed,
            "progress_percentage": progress_percentage(current_value, ch.target_value),
        })
    return result


def rollover_challenge_periods(db: Session, today: date) -> int:
    """
    Reinicia el progreso de los desafíos periódicos cuyo periodo ya terminó.
    Lo ejecuta el scheduler cada noche. Devuelve cuántas filas reinició.
    """
    rows = db.query(UserChallengeProgress, WellnessChallenge).join(
        WellnessChallenge, UserChallengeProgress.challenge_id == WellnessChallenge.id
    ).filter(
        WellnessChallenge.challenge_type != ChallengeType.milestone.value,
        UserChallengeProgress.period_start != None  # noqa: E711
    ).all()

    reset = 0
    for progress, challenge in rows:
        period = period_start_for(challenge.challenge_type, today)
        if period is not None and progress.period_start < period:
            _reset_progress(progress, period)
            reset += 1
    db.flush()
    return reset


# =============================================================================
# ===================== ESTADÍSTICAS ==========================================
# =============================================================================

def reward_to_dict(reward: Reward) -> dict:
    return {
        "id": reward.id,
        "code": reward.code,
        "name": reward.name,
        "description": reward.description,
        "reward_type": reward.reward_type,
        "condition_type": reward.condition_type,
        "condition_value": reward.condition_value,
        "points_value": reward.points_value,
        "icon": reward.icon,
        "color": reward.color,
        "rarity": reward.rarity,
    }


def get_user_stats(db: Session, user: User) -> dict:
    """
    Resumen para el panel principal:
      - user: el usuario con sus contadores
      - recent_sessions: últimas 10 sesiones de foco
      - earned_rewards: recompensas ganadas (más reciente primero)
      - next_reward: la siguiente recompensa alcanzable (umbral más bajo no cumplido)
      - next_reward_progress_pct: % hacia esa recompensa
    """
    user = _load_user(db, user.id)

    recent_sessions = db.query(FocusSession).filter(
        FocusSession.user_id == user.id
    ).order_by(FocusSession.started_at.desc(), FocusSession.id.desc()).limit(RECENT_SESSIONS_LIMIT).all()

    earned_rows = db.query(Reward, UserReward.earned_at).join(
        UserReward, UserReward.reward_id == Reward.id
    ).filter(UserReward.user_id == user.id).order_by(UserReward.earned_at.desc()).all()
    earned_ids = {reward.id for reward, _ in earned_rows}

    next_reward = None
    progress = 0.0
    for reward in db.query(Reward).order_by(Reward.condition_value, Reward.id).all():
        if reward.id in earned_ids:
            continue
        current = counter_value(user, reward.condition_type)
        if current is None:
            continue
        if current < reward.condition_value:
            next_reward = reward
            progress = round(current / reward.condition_value * 100, 1) if reward.condition_value > 0 else 0.0
            break

    return {
        "user": user,
        "recent_sessions": recent_sessions,
        "earned_rewards": [
            {**reward_to_dict(reward), "earned_at": earned_at} for reward, earned_at in earned_rows
        ],
        "next_reward": reward_to_dict(next_reward) if next_reward else None,
        "next_reward_progress_pct": progress,
    }
