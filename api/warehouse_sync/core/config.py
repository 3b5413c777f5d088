"""
Configuracion central del motor de sincronizacion.
Gestiona variables de entorno y configuraciones globales.

Los secretos (service account de BigQuery, credenciales de Postgres y token
del disparador manual) se leen una sola vez al arrancar el proceso y se
inyectan explicitamente en los componentes que los necesitan.
"""
import json
from typing import List
from pydantic_settings import BaseSettings
from pydantic import Field, computed_field


class Settings(BaseSettings):
    """
    Clase de configuracion de la aplicacion.
    Lee variables de entorno y proporciona valores por defecto.

    - DATABASE_URL se puede especificar completa o por componentes
    - GOOGLE_SERVICE_ACCOUNT_JSON contiene el JSON completo del service account
    """

    # Configuracion de la aplicacion
    APP_NAME: str = Field(default="Warehouse Sync Engine")
    APP_VERSION: str = Field(default="1.0.0")
    DEBUG: bool = Field(default=False)
    ENVIRONMENT: str = Field(default="production")

    # Configuracion del servidor
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8000)

    # Base de datos - Componentes separados
    DATABASE_HOST: str = Field(default="localhost")
    DATABASE_PORT: int = Field(default=5432)
    DATABASE_USER: str = Field(default="sync_user")
    DATABASE_PASSWORD: str = Field(default="sync_pass")
    DATABASE_NAME: str = Field(default="operational_db")

    # Base de datos - URL completa (override de componentes si se proporciona)
    DATABASE_URL: str = Field(default="")

    # BigQuery / OAuth2 (service account)
    GOOGLE_SERVICE_ACCOUNT_JSON: str = Field(default="")
    BIGQUERY_PROJECT_ID: str = Field(default="")
    BIGQUERY_SCOPE: str = Field(default="https://www.googleapis.com/auth/bigquery.readonly")
    OAUTH_TOKEN_URI: str = Field(default="https://oauth2.googleapis.com/token")
    BIGQUERY_API_BASE_URL: str = Field(default="https://bigquery.googleapis.com/bigquery/v2")

    # Motor de sincronizacion
    SYNC_PAGE_SIZE: int = Field(default=5000)
    SYNC_STALE_AFTER_HOURS: float = Field(default=6.0)
    SYNC_DEFAULT_FREQUENCY_HOURS: float = Field(default=24.0)
    SYNC_TARGET_SCHEMA: str = Field(default="public")

    # Scheduler (APScheduler)
    SYNC_SCHEDULER_ENABLED: bool = Field(default=True)
    SYNC_SCHEDULE_INTERVAL_MINUTES: int = Field(default=60)

    # Disparador manual: si esta vacio no se exige header
    SYNC_TRIGGER_TOKEN: str = Field(default="")

    # Cliente HTTP
    HTTP_TIMEOUT_SECONDS: int = Field(default=60)
    HTTP_MAX_RETRIES: int = Field(default=3)

    # CORS (acepta lista JSON o "*" para todos los origenes)
    CORS_ORIGINS: str = Field(default="*")

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FILE: str = Field(default="logs/warehouse_sync.log")

    @computed_field
    @property
    def effective_database_url(self) -> str:
        """
        Retorna la URL de base de datos efectiva.
        Si DATABASE_URL esta definida, la usa directamente.
        Si no, construye la URL desde los componentes individuales.
        """
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql://{self.DATABASE_USER}:{self.DATABASE_PASSWORD}"
            f"@{self.DATABASE_HOST}:{self.DATABASE_PORT}/{self.DATABASE_NAME}"
        )

    @computed_field
    @property
    def is_development(self) -> bool:
        """Indica si el entorno es de desarrollo."""
        return self.ENVIRONMENT.lower() == "development"

    class Config:
        """Configuracion de Pydantic."""
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignorar campos extra del .env


def get_cors_origins(cors_string: str) -> List[str]:
    """
    Parsea la configuracion de CORS.
    Acepta "*" para todos los origenes o una lista JSON.
    """
    if cors_string == "*":
        return ["*"]
    try:
        return json.loads(cors_string)
    except json.JSONDecodeError:
        # Si no es JSON valido, retornar como lista simple
        return [origin.strip() for origin in cors_string.split(",")]


# Instancia global de configuracion
settings = Settings()
