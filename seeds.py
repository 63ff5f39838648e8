"""
=============================================================================
SEEDS.PY — Catálogos iniciales
=============================================================================
Datos que define el sistema (no los usuarios):
  - Recompensas
  - Desafíos de bienestar
  - Categorías y lecciones de aprendizaje
  - Ejercicios de mindfulness

Se ejecuta al arrancar. Solo inserta lo que falta (por code o por título),
así que se puede llamar tantas veces como haga falta.
"""

import logging

from sqlalchemy.orm import Session

from models import (
    Reward, WellnessChallenge, LearningCategory, LearningLesson, MindfulnessExercise
)

logger = logging.getLogger("healthup.seeds")


# =============================================================================
# ===================== RECOMPENSAS ===========================================
# =============================================================================

REWARD_DEFINITIONS = [
    # ── Sesiones de foco ──
    {"code": "first_focus", "name": "Primer Pomodoro 🍅", "description": "Completa tu primera sesión de foco",
     "reward_type": "badge", "condition_type": "sessions_completed", "condition_value": 1,
     "points_value": 10, "icon": "🍅", "color": "#ef4444", "rarity": "common"},
    {"code": "sessions_5", "name": "Calentando motores 🚀", "description": "Completa 5 sesiones de foco",
     "reward_type": "badge", "condition_type": "sessions_completed", "condition_value": 5,
     "points_value": 50, "icon": "🚀", "color": "#f97316", "rarity": "common"},
    {"code": "sessions_25", "name": "Máquina de foco ⚙️", "description": "Completa 25 sesiones de foco",
     "reward_type": "title", "condition_type": "sessions_completed", "condition_value": 25,
     "points_value": 150, "icon": "⚙️", "color": "#8b5cf6", "rarity": "rare"},
    {"code": "sessions_100", "name": "Centenario 💎", "description": "Completa 100 sesiones de foco",
     "reward_type": "title", "condition_type": "sessions_completed", "condition_value": 100,
     "points_value": 500, "icon": "💎", "color": "#0ea5e9", "rarity": "epic"},

    # ── Minutos totales ──
    {"code": "minutes_60", "name": "Primera hora ⏱️", "description": "Acumula 60 minutos de foco",
     "reward_type": "badge", "condition_type": "total_minutes", "condition_value": 60,
     "points_value": 25, "icon": "⏱️", "color": "#22c55e", "rarity": "common"},
    {"code": "minutes_600", "name": "Diez horas de foco 🧠", "description": "Acumula 600 minutos de foco",
     "reward_type": "bonus_points", "condition_type": "total_minutes", "condition_value": 600,
     "points_value": 200, "icon": "🧠", "color": "#14b8a6", "rarity": "rare"},
    {"code": "minutes_3000", "name": "Maestro del tiempo ⌛", "description": "Acumula 50 horas de foco",
     "reward_type": "unlock", "condition_type": "total_minutes", "condition_value": 3000,
     "points_value": 1000, "icon": "⌛", "color": "#eab308", "rarity": "legendary"},

    # ── Lecciones ──
    {"code": "first_lesson", "name": "Mente curiosa 📖", "description": "Completa tu primera lección",
     "reward_type": "badge", "condition_type": "lessons_completed", "condition_value": 1,
     "points_value": 10, "icon": "📖", "color": "#3b82f6", "rarity": "common"},
    {"code": "lessons_10", "name": "Estudiante aplicado 🎓", "description": "Completa 10 lecciones",
     "reward_type": "title", "condition_type": "lessons_completed", "condition_value": 10,
     "points_value": 100, "icon": "🎓", "color": "#6366f1", "rarity": "rare"},

    # ── Rachas ──
    {"code": "streak_3", "name": "Tres días seguidos 🌱", "description": "Haz al menos una sesión de foco 3 días seguidos",
     "reward_type": "badge", "condition_type": "streak_days", "condition_value": 3,
     "points_value": 30, "icon": "🌱", "color": "#84cc16", "rarity": "common"},
    {"code": "streak_7", "name": "Semana de fuego 🔥", "description": "7 días seguidos con sesiones de foco",
     "reward_type": "badge", "condition_type": "streak_days", "condition_value": 7,
     "points_value": 100, "icon": "🔥", "color": "#f59e0b", "rarity": "epic"},
    {"code": "streak_30", "name": "Mes de acero 🛡️", "description": "30 días seguidos. Constancia de otro nivel.",
     "reward_type": "unlock", "condition_type": "streak_days", "condition_value": 30,
     "points_value": 750, "icon": "🛡️", "color": "#64748b", "rarity": "legendary"},
]


# =============================================================================
# ===================== DESAFÍOS ==============================================
# =============================================================================
# target_unit debe estar en CHALLENGE_UNITS (gamification.py) para recibir progreso

CHALLENGE_DEFINITIONS = [
    {"code": "daily_water", "title": "Hidratación diaria 💧", "description": "Bebe 8 vasos de agua hoy",
     "challenge_type": "daily", "target_value": 8, "target_unit": "water_glasses", "points_reward": 20},
    {"code": "daily_sleep", "title": "Descanso reparador 😴", "description": "Duerme al menos 8 horas",
     "challenge_type": "daily", "target_value": 8, "target_unit": "sleep_hours", "points_reward": 20},
    {"code": "daily_workout", "title": "Muévete 30 minutos 🏃", "description": "Haz 30 minutos de ejercicio hoy",
     "challenge_type": "daily", "target_value": 30, "target_unit": "workout_minutes", "points_reward": 25},
    {"code": "weekly_workout", "title": "Semana activa 💪", "description": "Suma 150 minutos de ejercicio esta semana",
     "challenge_type": "weekly", "target_value": 150, "target_unit": "workout_minutes", "points_reward": 100},
    {"code": "weekly_meals", "title": "Comida sana 🥗", "description": "Registra 10 comidas saludables esta semana",
     "challenge_type": "weekly", "target_value": 10, "target_unit": "healthy_meals", "points_reward": 80},
    {"code": "monthly_water", "title": "Mes hidratado 🌊", "description": "Bebe 200 vasos de agua este mes",
     "challenge_type": "monthly", "target_value": 200, "target_unit": "water_glasses", "points_reward": 300},
    {"code": "milestone_workout", "title": "Mil minutos en movimiento 🏅", "description": "Acumula 1000 minutos de ejercicio",
     "challenge_type": "milestone", "target_value": 1000, "target_unit": "workout_minutes", "points_reward": 500},
]


# =============================================================================
# ===================== APRENDIZAJE ===========================================
# =============================================================================

CATEGORY_DEFINITIONS = [
    {"name": "Productividad", "description": "Técnicas para trabajar mejor, no más", "icon": "⚡", "color": "#f97316"},
    {"name": "Bienestar", "description": "Hábitos para cuerpo y mente", "icon": "🌿", "color": "#22c55e"},
    {"name": "Aprendizaje", "description": "Cómo estudiar y recordar", "icon": "🧠", "color": "#6366f1"},
]

LESSON_DEFINITIONS = [
    {"category": "Productividad", "title": "La técnica Pomodoro",
     "content": "Trabaja 25 minutos sin interrupciones y descansa 5. Cada cuatro pomodoros, haz un descanso largo de 15 a 30 minutos.",
     "lesson_type": "article", "difficulty_level": "beginner", "estimated_read_time": 3, "tags": "pomodoro,foco"},
    {"category": "Productividad", "title": "Una sola tarea a la vez",
     "content": "Cambiar de tarea tiene un coste. Cierra pestañas y notificaciones antes de empezar una sesión.",
     "lesson_type": "tip", "difficulty_level": "beginner", "estimated_read_time": 1, "tags": "foco,distracciones"},
    {"category": "Productividad", "title": "Bloques de tiempo",
     "content": "Reserva en tu calendario bloques para el trabajo profundo igual que reservarías una reunión.",
     "lesson_type": "article", "difficulty_level": "intermediate", "estimated_read_time": 4, "tags": "planificación"},
    {"category": "Bienestar", "title": "Hidratación y concentración",
     "content": "Una deshidratación leve ya reduce la atención. Ten un vaso de agua cerca durante tus sesiones.",
     "lesson_type": "tip", "difficulty_level": "beginner", "estimated_read_time": 1, "tags": "agua,salud"},
    {"category": "Bienestar", "title": "Higiene del sueño",
     "content": "Acuéstate y levántate a la misma hora, evita pantallas la última hora del día y mantén la habitación fresca.",
     "lesson_type": "article", "difficulty_level": "beginner", "estimated_read_time": 3, "tags": "sueño,salud"},
    {"category": "Bienestar", "title": "Pausas activas",
     "content": "En cada descanso levántate, estira el cuello y los hombros y mira a lo lejos durante 20 segundos.",
     "lesson_type": "exercise", "difficulty_level": "beginner", "estimated_read_time": 2, "tags": "descanso,movimiento"},
    {"category": "Aprendizaje", "title": "Repetición espaciada",
     "content": "Repasa lo aprendido a intervalos crecientes: 1 día, 3 días, 1 semana, 1 mes.",
     "lesson_type": "article", "difficulty_level": "intermediate", "estimated_read_time": 4, "tags": "memoria,estudio"},
    {"category": "Aprendizaje", "title": "Recuerdo activo",
     "content": "Cierra el libro e intenta explicar lo que acabas de leer. Recordar fortalece la memoria más que releer.",
     "lesson_type": "tip", "difficulty_level": "beginner", "estimated_read_time": 2, "tags": "memoria,estudio"},
    {"category": "Aprendizaje", "title": "La constancia gana",
     "content": "\"No cuenta cuántas veces empiezas, sino cuántas veces vuelves.\"",
     "lesson_type": "quote", "difficulty_level": "beginner", "estimated_read_time": 1, "tags": "motivación"},
]


# =============================================================================
# ===================== MINDFULNESS ===========================================
# =============================================================================

EXERCISE_DEFINITIONS = [
    {"title": "Respiración 4-7-8", "description": "Inhala 4 segundos, retén 7, exhala 8",
     "exercise_type": "breathing", "duration_minutes": 3, "difficulty_level": "beginner",
     "instructions": "Siéntate cómodo. Inhala por la nariz contando 4, retén contando 7 y exhala por la boca contando 8. Repite 4 veces."},
    {"title": "Respiración en caja", "description": "Cuatro tiempos iguales para calmar el sistema nervioso",
     "exercise_type": "breathing", "duration_minutes": 5, "difficulty_level": "beginner",
     "instructions": "Inhala 4, retén 4, exhala 4, retén 4. Continúa durante 5 minutos."},
    {"title": "Escaneo corporal", "description": "Recorre el cuerpo con la atención de pies a cabeza",
     "exercise_type": "body_scan", "duration_minutes": 10, "difficulty_level": "intermediate",
     "instructions": "Túmbate. Lleva la atención a cada parte del cuerpo, nota las tensiones y suéltalas al exhalar."},
    {"title": "Meditación de atención plena", "description": "Observa la respiración sin juzgar",
     "exercise_type": "meditation", "duration_minutes": 10, "difficulty_level": "beginner",
     "instructions": "Cuando la mente se distraiga, vuelve amablemente a la respiración."},
    {"title": "Tres cosas buenas", "description": "Gratitud al final del día",
     "exercise_type": "gratitude", "duration_minutes": 5, "difficulty_level": "beginner",
     "instructions": "Escribe tres cosas que hayan ido bien hoy y por qué."},
    {"title": "Lugar seguro", "description": "Visualización para reducir el estrés",
     "exercise_type": "visualization", "duration_minutes": 8, "difficulty_level": "intermediate",
     "instructions": "Cierra los ojos e imagina con detalle un lugar donde te sientas en calma."},
]


# =============================================================================
# ===================== FUNCIONES DE SEED =====================================
# =============================================================================

def seed_rewards(db: Session) -> int:
    """Inserta las recompensas que falten. Devuelve cuántas se insertaron."""
    inserted = 0
    for reward_def in REWARD_DEFINITIONS:
        existing = db.query(Reward).filter(Reward.code == reward_def["code"]).first()
        if not existing:
            db.add(Reward(**reward_def))
            inserted += 1
    db.commit()
    logger.info(f"✅ {len(REWARD_DEFINITIONS)} recompensas verificadas en BD ({inserted} nuevas)")
    return inserted


def seed_challenges(db: Session) -> int:
    inserted = 0
    for challenge_def in CHALLENGE_DEFINITIONS:
        existing = db.query(WellnessChallenge).filter(WellnessChallenge.code == challenge_def["code"]).first()
        if not existing:
            db.add(WellnessChallenge(**challenge_def))
            inserted += 1
    db.commit()
    logger.info(f"✅ {len(CHALLENGE_DEFINITIONS)} desafíos verificados en BD ({inserted} nuevos)")
    return inserted


def seed_learning(db: Session) -> int:
    """Categorías primero (las lecciones las referencian por nombre)"""
    categories = {}
    for cat_def in CATEGORY_DEFINITIONS:
        category = db.query(LearningCategory).filter(LearningCategory.name == cat_def["name"]).first()
        if not category:
            category = LearningCategory(**cat_def)
            db.add(category)
            db.flush()
        categories[category.name] = category

    inserted = 0
    for lesson_def in LESSON_DEFINITIONS:
        existing = db.query(LearningLesson).filter(LearningLesson.title == lesson_def["title"]).first()
        if not existing:
            data = dict(lesson_def)
            category = categories[data.pop("category")]
            db.add(LearningLesson(category_id=category.id, **data))
            inserted += 1
    db.commit()
    logger.info(f"✅ {len(LESSON_DEFINITIONS)} lecciones verificadas en BD ({inserted} nuevas)")
    return inserted


def seed_mindfulness(db: Session) -> int:
    inserted = 0
    for exercise_def in EXERCISE_DEFINITIONS:
        existing = db.query(MindfulnessExercise).filter(MindfulnessExercise.title == exercise_def["title"]).first()
        if not existing:
            db.add(MindfulnessExercise(**exercise_def))
            inserted += 1
    db.commit()
    logger.info(f"✅ {len(EXERCISE_DEFINITIONS)} ejercicios de mindfulness verificados en BD ({inserted} nuevos)")
    return inserted


def seed_all(db: Session):
    """Todos los catálogos. Lo llama el lifespan de main.py."""
    seed_rewards(db)
    seed_challenges(db)
    seed_learning(db)
    seed_mindfulness(db)
