"""
=============================================================================
CONFIG.PY — Configuración de HealthUp
=============================================================================
Todas las variables de entorno en un solo sitio.

En DESARROLLO: no hace falta definir nada, todo tiene un valor por defecto.
En PRODUCCIÓN: define al menos DATABASE_URL, SECRET_KEY y OPENAI_API_KEY.
"""

import os


# ─────────────────────────────────────────────────────────────────────────────
# BASE DE DATOS
# ─────────────────────────────────────────────────────────────────────────────

DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./healthup.db")

# ─────────────────────────────────────────────────────────────────────────────
# AUTENTICACIÓN
# ─────────────────────────────────────────────────────────────────────────────

SECRET_KEY: str = os.getenv("SECRET_KEY", "healthup-dev-secret-key-cambiar-en-produccion")
ACCESS_TOKEN_EXPIRE_DAYS: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_DAYS", "30"))

# ─────────────────────────────────────────────────────────────────────────────
# IA (servicio de completado de texto)
# ─────────────────────────────────────────────────────────────────────────────

OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")
OPENAI_MODEL: str = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
OPENAI_TIMEOUT_SECONDS: float = float(os.getenv("OPENAI_TIMEOUT_SECONDS", "20"))

# ─────────────────────────────────────────────────────────────────────────────
# API
# ─────────────────────────────────────────────────────────────────────────────

# CORS_ORIGINS → lista separada por comas. "*" = cualquier origen
CORS_ORIGINS: list[str] = [
    origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()
]

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

# ─────────────────────────────────────────────────────────────────────────────
# FECHAS Y SCHEDULER
# ─────────────────────────────────────────────────────────────────────────────

# Zona horaria que define "hoy" en toda la app: rachas, periodos de desafío,
# registros sin fecha, /health/logs y la hora del job nocturno.
TIMEZONE: str = os.getenv("TIMEZONE", os.getenv("SCHEDULER_TIMEZONE", "UTC"))

ENABLE_SCHEDULER: bool = os.getenv("ENABLE_SCHEDULER", "true").lower() == "true"
