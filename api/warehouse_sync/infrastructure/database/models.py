"""
Modelos de base de datos (ORM) del motor de sync.

Solo declaran las tablas de estado para Alembic; en runtime el motor las
accede con psycopg (ver repositories/). Las tablas destino de cada modelo
las administran los operadores, no este motor.
"""
from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Column,
    DateTime,
    Float,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.sql import func

from warehouse_sync.infrastructure.database.session import Base


class SyncModelConfigModel(Base):
    """
    Registro de modelos de sync por tenant (SyncConfig).

    mapping_config:
        {"field_mapping": {"source": "target", ...}, "transform": "<nombre>"}
    """

    __tablename__ = "bigquery_data_models"
    __table_args__ = (
        UniqueConstraint("tenant_id", "model_name", name="uq_bigquery_data_models_tenant_model"),
    )

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(String(255), nullable=False, index=True)
    model_name = Column(String(255), nullable=False)
    bigquery_dataset = Column(String(255), nullable=False)
    bigquery_table = Column(String(255), nullable=False)
    primary_key_field = Column(String(255), nullable=False)
    timestamp_field = Column(String(255), nullable=True)
    target_table = Column(String(255), nullable=True)
    mapping_config = Column(JSON, nullable=True)
    sync_frequency_hours = Column(Float, nullable=True, default=24)
    is_enabled = Column(Boolean, nullable=False, default=True, index=True)
    last_sync_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<SyncModelConfig(tenant={self.tenant_id}, model={self.model_name}, enabled={self.is_enabled})>"


class SyncWatermarkModel(Base):
    """
    Progreso incremental por (tenant, modelo, dataset, tabla).

    Estados: idle, syncing, completed, failed.
    """

    __tablename__ = "bigquery_sync_watermarks"

    tenant_id = Column(String(255), primary_key=True)
    data_model = Column(String(255), primary_key=True)
    dataset_id = Column(String(255), primary_key=True)
    table_id = Column(String(255), primary_key=True)
    sync_status = Column(String(50), nullable=False, default="idle", index=True)
    last_sync_at = Column(DateTime(timezone=True), nullable=True)
    last_record_timestamp = Column(Text, nullable=True)
    total_records_synced = Column(BigInteger, nullable=False, default=0)
    error_message = Column(Text, nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<SyncWatermark(tenant={self.tenant_id}, model={self.data_model}, status={self.sync_status})>"
