"""
=============================================================================
AUTH.PY — Cuentas y tokens
=============================================================================
  - register_user(): crea la cuenta + sus objetivos de salud por defecto
  - authenticate_user(): email + contraseña → usuario (o None)
  - Tokens JWT (HS256, caducan a los ACCESS_TOKEN_EXPIRE_DAYS días)
  - get_current_user(): dependencia que carga el usuario del header
    "Authorization: Bearer <token>"

Las contraseñas se guardan con bcrypt. El proveedor de identidad externo
queda fuera: aquí solo hay email + contraseña.
"""

from datetime import datetime, timedelta
from typing import Optional

import bcrypt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from sqlalchemy.orm import Session

import config
from database import get_db
from models import User, HealthHabit, HabitType

ALGORITHM = "HS256"

# Objetivos diarios con los que empieza cada cuenta
DEFAULT_HEALTH_HABITS = [
    (HabitType.water, 8, "glasses"),
    (HabitType.sleep, 8, "hours"),
    (HabitType.workout, 30, "minutes"),
    (HabitType.mood, 8, "/10"),
]


# ─────────────────────────────────────────────────────────────────────────────
# CONTRASEÑAS
# ─────────────────────────────────────────────────────────────────────────────

def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))


# ─────────────────────────────────────────────────────────────────────────────
# CUENTAS
# ─────────────────────────────────────────────────────────────────────────────

def register_user(db: Session, email: str, password: str, name: Optional[str] = None) -> User:
    """Crea el usuario. Email repetido → 409."""
    email = email.lower()
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Ya existe una cuenta con este email"
        )

    user = User(email=email, password_hash=hash_password(password), name=name)
    db.add(user)
    db.flush()

    db.add_all([
        HealthHabit(user_id=user.id, habit_type=habit_type.value, target_value=target, unit=unit)
        for habit_type, target, unit in DEFAULT_HEALTH_HABITS
    ])
    db.commit()
    db.refresh(user)
    return user


def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
    user = db.query(User).filter(User.email == email.lower()).first()
    if user is None or not verify_password(password, user.password_hash):
        return None
    return user


# ─────────────────────────────────────────────────────────────────────────────
# TOKENS JWT
# ─────────────────────────────────────────────────────────────────────────────

def create_access_token(user_id: int, email: str) -> str:
    """sub = ID del usuario (como texto), email de referencia, exp = caducidad"""
    now = datetime.utcnow()
    claims = {
        "sub": str(user_id),
        "email": email,
        "iat": now,
        "exp": now + timedelta(days=config.ACCESS_TOKEN_EXPIRE_DAYS),
    }
    return jwt.encode(claims, config.SECRET_KEY, algorithm=ALGORITHM)


def decode_token(token: str) -> Optional[dict]:
    """None si la firma no cuadra o el token caducó"""
    try:
        return jwt.decode(token, config.SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None


# ─────────────────────────────────────────────────────────────────────────────
# DEPENDENCIA: USUARIO ACTUAL
# ─────────────────────────────────────────────────────────────────────────────

security = HTTPBearer()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"}
    )


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """
    Token inválido o sin "sub" numérico → 401. Cuenta borrada → 404.

    Comparte la sesión de BD con el endpoint (FastAPI cachea get_db por
    petición), así el usuario que recibe el endpoint es el mismo objeto
    que actualiza gamification.py.
    """
    payload = decode_token(credentials.credentials)
    if payload is None:
        raise _unauthorized("Token inválido o expirado")

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise _unauthorized("Token sin identificador de usuario")

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Usuario no encontrado"
        )
    return user
