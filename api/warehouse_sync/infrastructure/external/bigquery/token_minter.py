"""
Token Minter: credencial de service account -> bearer access token.

Implementa el flujo OAuth2 JWT-bearer (RFC 7523) a mano:
- header {"alg": "RS256", "typ": "JWT"}
- payload {iss, scope, aud, iat, exp = iat + 3600}
- firma RSASSA-PKCS1-v1_5 / SHA-256 sobre "header.payload" (base64url sin padding)
- intercambio en el token endpoint con grant_type jwt-bearer

Se acuña un token por corrida del orquestador; no se cachea entre corridas.
"""

from __future__ import annotations

import base64
import json
import time
from typing import Any, Callable, Dict, Optional

import requests
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from loguru import logger

from warehouse_sync.infrastructure.external.bigquery.credentials import ServiceAccountCredential
from warehouse_sync.shared.exceptions.sync import WarehouseAuthError

JWT_BEARER_GRANT_TYPE = "urn:ietf:params:oauth:grant-type:jwt-bearer"
ASSERTION_LIFETIME_S = 3600


def b64url_encode(data: bytes) -> str:
    """base64url sin padding ('=')."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _b64url_json(obj: Dict[str, Any]) -> str:
    return b64url_encode(json.dumps(obj, separators=(",", ":")).encode("utf-8"))


def _load_rsa_private_key(pem: str) -> rsa.RSAPrivateKey:
    try:
        key = serialization.load_pem_private_key(pem.encode("utf-8"), password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise WarehouseAuthError("No se pudo cargar la private_key del service account") from e
    if not isinstance(key, rsa.RSAPrivateKey):
        raise WarehouseAuthError("La private_key del service account no es RSA")
    return key


def build_signed_assertion(credential: ServiceAccountCredential, *, issued_at: int) -> str:
    """
    Construye el JWT firmado (assertion) para el intercambio.

    Args:
        credential: Service account
        issued_at: Segundos epoch usados como iat (exp = iat + 3600)

    Returns:
        str: "header.payload.signature" en base64url
    """
    header = {"alg": "RS256", "typ": "JWT"}
    payload = {
        "iss": credential.client_email,
        "scope": credential.scope,
        "aud": credential.token_uri,
        "iat": issued_at,
        "exp": issued_at + ASSERTION_LIFETIME_S,
    }
    signing_input = f"{_b64url_json(header)}.{_b64url_json(payload)}"

    key = _load_rsa_private_key(credential.private_key)
    signature = key.sign(signing_input.encode("ascii"), padding.PKCS1v15(), hashes.SHA256())
    return f"{signing_input}.{b64url_encode(signature)}"


class ServiceAccountTokenMinter:
    """
    Intercambia la assertion firmada por un access token.

    El reloj es inyectable para poder testear assertions deterministas.
    """

    def __init__(
        self,
        credential: ServiceAccountCredential,
        *,
        session: Optional[requests.Session] = None,
        timeout_s: int = 30,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._credential = credential
        self._session = session or requests.Session()
        self._timeout_s = timeout_s
        self._clock = clock

    def mint(self) -> str:
        """
        Returns:
            str: bearer access token

        Raises:
            WarehouseAuthError: si la respuesta no trae access_token
        """
        assertion = build_signed_assertion(self._credential, issued_at=int(self._clock()))

        try:
            resp = self._session.post(
                self._credential.token_uri,
                data={"grant_type": JWT_BEARER_GRANT_TYPE, "assertion": assertion},
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=self._timeout_s,
            )
        except requests.RequestException as e:
            raise WarehouseAuthError(f"Token endpoint inaccesible: {e}") from e

        try:
            token_data = resp.json()
        except ValueError:
            token_data = {}

        access_token = token_data.get("access_token") if isinstance(token_data, dict) else None
        if not access_token:
            details = {
                "status_code": resp.status_code,
                "error": token_data.get("error") if isinstance(token_data, dict) else None,
                "error_description": (
                    token_data.get("error_description") if isinstance(token_data, dict) else None
                ),
            }
            raise WarehouseAuthError("No se obtuvo access_token del token endpoint", details=details)

        logger.debug(f"Access token obtenido para {self._credential.client_email}")
        return access_token
