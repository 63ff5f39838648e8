"""
=============================================================================
INSIGHTS.PY — Consejos generados por IA
=============================================================================
Flujo:
  1. El cliente pide un tipo de consejo + un contexto libre (dict)
  2. build_prompt() monta SIEMPRE el mismo prompt para los mismos datos
  3. El servicio de completado (OpenAI) devuelve el texto
  4. Se guarda en ai_insights con confidence_score = 0.8

Si la IA falla, no hay clave o la respuesta viene vacía → ExternalServiceError
(502). No se guarda nada, no se reintenta y no hay texto de relleno.

El servicio se inyecta con Depends(get_completion_service), así los tests
pueden sustituirlo por uno falso sin tocar la red.
"""

import json
import logging
from abc import ABC, abstractmethod
from functools import lru_cache
from typing import Any, Optional

import openai
from sqlalchemy.orm import Session

import config
from database import transaction
from exceptions import ExternalServiceError, ValidationError
from models import AIInsight, User, InsightType

logger = logging.getLogger("healthup.insights")


SYSTEM_PROMPT = (
    "You are a helpful productivity coach. Provide concise, actionable, "
    "and encouraging advice. Keep responses under 100 words."
)
MAX_TOKENS = 150
TEMPERATURE = 0.7
CONFIDENCE_SCORE = 0.8
RECENT_INSIGHTS_LIMIT = 3


# =============================================================================
# ===================== SERVICIO DE COMPLETADO ================================
# =============================================================================

class CompletionService(ABC):
    """Servicio de texto: recibe prompts y devuelve la respuesta como str"""

    @abstractmethod
    def generate(self, system_prompt: str, user_prompt: str, max_tokens: int, temperature: float) -> str:
        ...


class OpenAICompletionService(CompletionService):
    """Implementación con el SDK oficial de OpenAI (chat.completions)"""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None, timeout: Optional[float] = None):
        self.api_key = api_key if api_key is not None else config.OPENAI_API_KEY
        self.model = model or config.OPENAI_MODEL
        self.timeout = timeout or config.OPENAI_TIMEOUT_SECONDS
        self._client = None

    @property
    def client(self) -> openai.OpenAI:
        if self._client is None:
            self._client = openai.OpenAI(api_key=self.api_key, timeout=self.timeout, max_retries=0)
        return self._client

    def generate(self, system_prompt: str, user_prompt: str, max_tokens: int, temperature: float) -> str:
        if not self.api_key:
            raise ExternalServiceError("OPENAI_API_KEY no configurada", service="openai")

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except openai.OpenAIError as e:
            raise ExternalServiceError("No se pudo generar el consejo", service="openai", cause=e) from e

        if not response.choices:
            return ""
        return (response.choices[0].message.content or "").strip()


@lru_cache(maxsize=1)
def get_completion_service() -> CompletionService:
    """Dependencia de FastAPI. Los tests la sustituyen con app.dependency_overrides."""
    return OpenAICompletionService()


# =============================================================================
# ===================== PROMPTS ===============================================
# =============================================================================

def _context_json(context: dict[str, Any]) -> str:
    # sort_keys → mismo contexto, mismo texto
    return json.dumps(context or {}, sort_keys=True, ensure_ascii=False, default=str)


def build_prompt(insight_type: str, user: User, context: dict[str, Any]) -> str:
    """Prompt determinista para cada tipo de consejo"""
    context_json = _context_json(context)

    if insight_type == InsightType.session_recommendation:
        return (
            f"Based on this user's productivity data: {context_json}, provide a personalized "
            f"recommendation for their next focus session. Their preferred session length is "
            f"{user.preferred_session_length} minutes. Keep it motivational and specific."
        )
    if insight_type == InsightType.motivation_tip:
        return (
            f"Create a motivational tip for a user who has completed {user.total_sessions_completed} "
            f"focus sessions and {user.total_lessons_completed} learning lessons, with a current streak "
            f"of {user.current_streak} days. Make it personal and encouraging."
        )
    if insight_type == InsightType.learning_preference:
        return (
            f"A user has completed {user.total_lessons_completed} micro-lessons. Using this context: "
            f"{context_json}, suggest how they could learn more effectively and what kind of lesson "
            f"to try next."
        )
    if insight_type == InsightType.productivity_pattern:
        return (
            f"Generate a helpful productivity insight for a user with {user.total_focus_minutes} total "
            f"focus minutes across {user.total_sessions_completed} sessions and this context: {context_json}"
        )
    raise ValidationError(f"Tipo de consejo desconocido: {insight_type}")


# =============================================================================
# ===================== OPERACIONES ===========================================
# =============================================================================

def generate_insight(
    db: Session,
    user: User,
    insight_type: str,
    context: dict[str, Any],
    service: CompletionService,
) -> AIInsight:
    """Pide un consejo a la IA y lo guarda. Si la IA falla, no se guarda nada."""
    prompt = build_prompt(insight_type, user, context)

    text = service.generate(SYSTEM_PROMPT, prompt, MAX_TOKENS, TEMPERATURE)
    if not text or not text.strip():
        raise ExternalServiceError("La IA devolvió una respuesta vacía")

    with transaction(db):
        insight = AIInsight(
            user_id=user.id,
            insight_type=InsightType(insight_type).value,
            insight_data=text.strip(),
            confidence_score=CONFIDENCE_SCORE,
            is_active=True
        )
        db.add(insight)

    logger.info(f"💡 Consejo '{insight.insight_type}' generado para el usuario {user.id}")
    return insight


def list_insights(db: Session, user: User, limit: int = RECENT_INSIGHTS_LIMIT) -> list[AIInsight]:
    """Últimos consejos activos, el más reciente primero"""
    return db.query(AIInsight).filter(
        AIInsight.user_id == user.id,
        AIInsight.is_active == True  # noqa: E712
    ).order_by(AIInsight.created_at.desc(), AIInsight.id.desc()).limit(limit).all()
