"""
Configuración de base de datos.

Importa todos los modelos para que se registren con Base
antes de generar migraciones.
"""
from warehouse_sync.infrastructure.database.models import (
    SyncModelConfigModel,
    SyncWatermarkModel,
)
