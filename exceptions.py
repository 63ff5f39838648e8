"""
=============================================================================
EXCEPTIONS.PY — Errores de HealthUp
=============================================================================
Cuatro tipos de error, cada uno con su código HTTP:

  NotFoundError         → 404  (usuario, sesión, lección, desafío... no existe)
  ValidationError       → 422  (dato obligatorio que falta, valor fuera de rango)
  ExternalServiceError  → 502  (el servicio de IA no responde o falla)
  StoreError            → 500  (fallo de la base de datos)

La lógica (gamification.py, insights.py) lanza estos errores.
main.py los convierte en respuestas JSON con un exception_handler.
"""

import logging
from typing import Any, Optional

logger = logging.getLogger("healthup.errors")


class HealthUpError(Exception):
    """Error base. Todos los errores de la app heredan de aquí."""

    status_code = 500

    def __init__(
        self,
        message: str,
        context: Optional[dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.cause = cause

    def to_dict(self) -> dict:
        """Cuerpo de la respuesta HTTP"""
        return {"detail": self.message, "type": self.__class__.__name__}


class NotFoundError(HealthUpError):
    status_code = 404


class ValidationError(HealthUpError):
    status_code = 422


class ExternalServiceError(HealthUpError):
    """El servicio externo (IA) falló. No se guarda nada, no se reintenta."""

    status_code = 502

    def __init__(self, message: str, service: str = "completion", **kwargs):
        super().__init__(message, **kwargs)
        self.service = service
        logger.error(f"❌ Servicio externo '{service}' falló: {message}", exc_info=self.cause)


class StoreError(HealthUpError):
    """Fallo de persistencia. La transacción ya se ha deshecho (rollback)."""

    status_code = 500

    def __init__(self, message: str, **kwargs):
        super().__init__(message, **kwargs)
        logger.error(f"❌ Error de base de datos: {message} ({self.cause})")
