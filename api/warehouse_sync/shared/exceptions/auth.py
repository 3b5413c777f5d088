"""
Excepciones relacionadas con autenticación del disparador manual.
"""
from warehouse_sync.shared.exceptions.base import AppException


class AuthException(AppException):
    """Excepción base para errores de autenticación del API."""

    def __init__(self, message: str, error_code: str = "AUTH_ERROR", details=None):
        super().__init__(
            message=message,
            status_code=401,
            error_code=error_code,
            details=details
        )


class UnauthorizedException(AuthException):
    """Excepción para acceso no autorizado (token de disparo inválido)."""

    def __init__(self, message: str = "No autorizado"):
        super().__init__(
            message=message,
            error_code="UNAUTHORIZED"
        )
