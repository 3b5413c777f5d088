"""
Verificación del token compartido del disparador manual (header X-Sync-Token).

IMPORTANTE:
- Si SYNC_TRIGGER_TOKEN está vacío el disparador queda abierto (uso interno).
- No emite tokens: solo compara contra el secreto configurado.
"""

from __future__ import annotations

import hmac
from typing import Optional


class TriggerTokenVerifier:
    """
    Compara el token recibido contra el esperado.

    Usa comparación en tiempo constante (hmac.compare_digest) para reducir leaks
    por timing.
    """

    def __init__(self, expected_token: str) -> None:
        self._expected_token = expected_token or ""

    def is_configured(self) -> bool:
        return bool(self._expected_token)

    def verify(self, token: Optional[str]) -> bool:
        if not self.is_configured():
            return True
        # compare_digest requiere mismo tipo: str vs str (OK en py3)
        return hmac.compare_digest(token or "", self._expected_token)
