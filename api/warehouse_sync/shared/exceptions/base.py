"""
Raíz de la jerarquía de excepciones del motor de sync.

Cada excepción lleva su código HTTP y un error_code estable; el exception
handler de FastAPI (main.py) las serializa con to_payload(). Fuera del API
(CLI, scheduler) solo se usan message y details para el log.
"""
from typing import Any, Dict, Optional


class AppException(Exception):
    """
    Excepción base de la aplicación.

    Args:
        message: Mensaje legible (se loguea y se devuelve al cliente)
        status_code: Código HTTP con el que responde el API
        error_code: Identificador estable para el cliente
        details: Contexto adicional (nunca secretos)
    """

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}
        super().__init__(message)

    def to_payload(self) -> Dict[str, Any]:
        """Cuerpo JSON que se devuelve al cliente HTTP."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }
