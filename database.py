"""
=============================================================================
DATABASE.PY — Conexión, sesiones y transacciones
=============================================================================
  - Local: SQLite (healthup.db)
  - Producción: PostgreSQL vía DATABASE_URL (driver psycopg 3)
  - Tests: SQLite en memoria ("sqlite://")

transaction() es el único punto de commit/rollback de las operaciones de
varios pasos (contadores + logros, desafíos + XP): todo o nada.
"""

from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

import config
from exceptions import StoreError

# ─────────────────────────────────────────────────────────────────────────────
# CONEXIÓN
# ─────────────────────────────────────────────────────────────────────────────

DATABASE_URL = config.DATABASE_URL

# Normaliza a "postgresql+psycopg://" (algunos proveedores dan "postgres://")
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql+psycopg://", 1)
elif DATABASE_URL.startswith("postgresql://"):
    DATABASE_URL = DATABASE_URL.replace("postgresql://", "postgresql+psycopg://", 1)

# ─────────────────────────────────────────────────────────────────────────────
# ENGINE
# ─────────────────────────────────────────────────────────────────────────────
# SQLite en memoria: StaticPool, una sola conexión compartida por todo el proceso.

engine_args = {}
if DATABASE_URL.startswith("sqlite"):
    engine_args["connect_args"] = {"check_same_thread": False}
    if DATABASE_URL in ("sqlite://", "sqlite:///:memory:"):
        engine_args["poolclass"] = StaticPool

engine = create_engine(DATABASE_URL, echo=False, **engine_args)

# ─────────────────────────────────────────────────────────────────────────────
# SESIONES Y MODELOS
# ─────────────────────────────────────────────────────────────────────────────

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    """Una sesión por petición (Depends(get_db)); se cierra al responder."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session):
    """
    Agrupa varias escrituras en una sola transacción.

      with transaction(db):
          incrementar contadores...
          conceder logros...

    Si todo va bien → commit.
    Si SQLAlchemy falla → rollback y StoreError (el llamador recibe un 500).
    Cualquier otra excepción (NotFound, Validation...) → rollback y se relanza tal cual.
    """
    try:
        yield db
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise StoreError("Error guardando en la base de datos", cause=e) from e
    except Exception:
        db.rollback()
        raise


def init_db():
    """create_all de las tablas que falten (lifespan de main.py)."""
    import models  # noqa: F401  registra las tablas en Base.metadata

    Base.metadata.create_all(bind=engine)
