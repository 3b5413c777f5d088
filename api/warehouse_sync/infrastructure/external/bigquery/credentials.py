"""
Credencial de service account para BigQuery.

Se construye una sola vez al arrancar el proceso (desde el secreto
GOOGLE_SERVICE_ACCOUNT_JSON) y se pasa por referencia al minter y al
orquestador. Nunca se persiste ni se loguea.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field

from warehouse_sync.shared.exceptions.sync import SyncConfigError

BIGQUERY_READONLY_SCOPE = "https://www.googleapis.com/auth/bigquery.readonly"
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"


@dataclass(frozen=True)
class ServiceAccountCredential:
    """
    Identidad + llave de firma del service account.

    private_key se excluye del repr para que no termine en logs por accidente.
    """

    client_email: str
    private_key: str = field(repr=False)
    project_id: str
    scope: str = BIGQUERY_READONLY_SCOPE
    token_uri: str = GOOGLE_TOKEN_URI

    @classmethod
    def from_json(
        cls,
        raw: str,
        *,
        project_id_fallback: str = "",
        scope: str = BIGQUERY_READONLY_SCOPE,
        token_uri: str = GOOGLE_TOKEN_URI,
    ) -> "ServiceAccountCredential":
        """
        Parsea el JSON estándar de un service account de Google.

        Raises:
            SyncConfigError: si el JSON falta, es inválido o le faltan campos
        """
        if not raw or not raw.strip():
            raise SyncConfigError(
                "GOOGLE_SERVICE_ACCOUNT_JSON no configurado",
                field="GOOGLE_SERVICE_ACCOUNT_JSON",
            )
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise SyncConfigError(
                f"GOOGLE_SERVICE_ACCOUNT_JSON no es JSON válido (línea {e.lineno})",
                field="GOOGLE_SERVICE_ACCOUNT_JSON",
            ) from e

        client_email = data.get("client_email")
        private_key = data.get("private_key")
        if not client_email:
            raise SyncConfigError("El service account no contiene 'client_email'", field="client_email")
        if not private_key:
            raise SyncConfigError("El service account no contiene 'private_key'", field="private_key")

        project_id = data.get("project_id") or project_id_fallback
        if not project_id:
            raise SyncConfigError(
                "No hay project_id en el service account ni BIGQUERY_PROJECT_ID",
                field="project_id",
            )

        return cls(
            client_email=client_email,
            # Secretos copiados desde .env suelen traer '\n' escapado dos veces.
            private_key=private_key.replace("\\n", "\n"),
            project_id=project_id,
            scope=scope,
            token_uri=data.get("token_uri") or token_uri,
        )
