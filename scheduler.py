"""
=============================================================================
SCHEDULER.PY — Mantenimiento nocturno
=============================================================================
Una sola tarea, cada noche a las 00:05 (zona horaria config.TIMEZONE):

  1. Reinicia los desafíos diarios/semanales/mensuales cuyo periodo terminó
  2. Rompe la racha de los usuarios sin sesiones de foco ayer ni hoy

Las dos cosas también se resuelven "al vuelo" cuando el usuario registra
algo (ver gamification.py). El job deja la BD al día para los listados.

Usa APScheduler con CronTrigger, arrancado desde el lifespan de main.py.
"""

import logging
from datetime import date

import pytz
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.orm import Session

import config
from database import SessionLocal, transaction
from gamification import rollover_challenge_periods, expire_streaks, local_today

logger = logging.getLogger("healthup.scheduler")

scheduler: AsyncIOScheduler = None


# =============================================================================
# ===================== TAREA NOCTURNA ========================================
# =============================================================================

def run_nightly_maintenance(db: Session, today: date) -> dict:
    """Reinicio de periodos + rachas caducadas, en una sola transacción"""
    with transaction(db):
        challenges_reset = rollover_challenge_periods(db, today)
        streaks_broken = expire_streaks(db, today)

    logger.info(f"🌙 Mantenimiento {today}: {challenges_reset} desafíos reiniciados, {streaks_broken} rachas rotas")
    return {"challenges_reset": challenges_reset, "streaks_broken": streaks_broken}


async def nightly_job():
    """Se ejecuta a las 00:05. Abre su propia sesión de BD."""
    db = SessionLocal()
    try:
        run_nightly_maintenance(db, local_today())
    except Exception as e:
        logger.error(f"❌ Error en el mantenimiento nocturno: {e}", exc_info=True)
    finally:
        db.close()


# =============================================================================
# ===================== INICIALIZAR SCHEDULER =================================
# =============================================================================

def create_scheduler() -> AsyncIOScheduler:
    """Crea el scheduler con la tarea nocturna"""
    global scheduler

    scheduler = AsyncIOScheduler(timezone=pytz.timezone(config.TIMEZONE))

    # 00:05 para dar margen al cambio de día
    scheduler.add_job(
        nightly_job,
        CronTrigger(hour=0, minute=5),
        id="nightly_maintenance",
        name="Reinicio de desafíos y rachas",
        replace_existing=True
    )

    logger.info(f"⏰ Scheduler configurado: mantenimiento diario a las 00:05 ({config.TIMEZONE})")
    return scheduler


def start_scheduler():
    if scheduler is None:
        raise RuntimeError("create_scheduler() debe llamarse antes de start_scheduler()")
    if not scheduler.running:
        scheduler.start()
        logger.info("⏰ Mantenimiento nocturno programado")


def stop_scheduler():
    if scheduler is not None and scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("⏰ Mantenimiento nocturno detenido")
