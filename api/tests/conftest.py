"""
Configuración de fixtures para pytest.

Fakes en memoria de los puertos del motor de sync (registry, watermarks,
extractor, sink, token) para testear el orquestador sin red ni Postgres.
"""
from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from warehouse_sync.application.use_cases.warehouse_sync_use_cases import WarehouseSyncUseCases
from warehouse_sync.domain.entities.sync import SyncConfig, Watermark, WatermarkKey, WatermarkStatus
from warehouse_sync.domain.repositories.sync_repositories import (
    IModelRegistry,
    IUpsertSink,
    IWatermarkStore,
)


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


class InMemoryModelRegistry(IModelRegistry):
    def __init__(self, configs: Sequence[SyncConfig] = ()) -> None:
        self.configs: List[SyncConfig] = list(configs)
        self.touched: Dict[str, datetime] = {}
        self.touch_errors: Dict[str, Exception] = {}

    def list_enabled(self, tenant_id=None, model_name=None) -> List[SyncConfig]:
        return [
            c for c in self.configs
            if c.enabled
            and (tenant_id is None or c.tenant_id == tenant_id)
            and (model_name is None or c.model_name == model_name)
        ]

    def touch_last_sync(self, config: SyncConfig, synced_at: datetime) -> None:
        if config.model_name in self.touch_errors:
            raise self.touch_errors[config.model_name]
        self.touched[config.label()] = synced_at


class InMemoryWatermarkStore(IWatermarkStore):
    """Replica en memoria la semántica del store Postgres (incluido el claim)."""

    def __init__(self) -> None:
        self.rows: Dict[WatermarkKey, Watermark] = {}

    def get(self, tenant_id, model_name, dataset, table) -> Optional[Watermark]:
        return self.rows.get((tenant_id, model_name, dataset, table))

    def upsert(self, watermark: Watermark) -> None:
        self.rows[watermark.key] = watermark

    def claim(self, watermark: Watermark, now: datetime, stale_after_hours: float) -> bool:
        current = self.rows.get(watermark.key)
        if current is None:
            self.rows[watermark.key] = watermark.started(now)
            return True
        if current.is_locked(now, stale_after_hours):
            return False
        self.rows[watermark.key] = current.started(now)
        return True

    def list(self, tenant_id=None) -> List[Watermark]:
        return [w for w in self.rows.values() if tenant_id is None or w.tenant_id == tenant_id]

    def reset(self, key: WatermarkKey, now: datetime) -> bool:
        current = self.rows.get(key)
        if current is None:
            return True
        if current.status == WatermarkStatus.SYNCING:
            return False
        self.rows[key] = replace(
            current,
            status=WatermarkStatus.IDLE,
            last_sync_at=None,
            last_record_timestamp=None,
            error_message=None,
            updated_at=now,
        )
        return True


class FakeExtractor:
    """Devuelve filas por modelo; si el valor es una excepción, la lanza."""

    def __init__(self, responses: Optional[Dict[str, Any]] = None) -> None:
        self.responses: Dict[str, Any] = dict(responses or {})
        self.calls: List[Dict[str, Any]] = []

    def extract(self, config: SyncConfig, *, cursor, access_token) -> List[Dict[str, Any]]:
        self.calls.append({"model": config.model_name, "cursor": cursor, "access_token": access_token})
        response = self.responses.get(config.model_name, [])
        if isinstance(response, Exception):
            raise response
        if config.timestamp_field and cursor:
            return [r for r in response if str(r.get(config.timestamp_field)) > cursor]
        return list(response)


class InMemoryUpsertSink(IUpsertSink):
    def __init__(self) -> None:
        self.tables: Dict[str, Dict[Any, Dict[str, Any]]] = {}
        self.fail_tables: Dict[str, Exception] = {}

    def upsert(self, target_table: str, conflict_column: str, records) -> int:
        if target_table in self.fail_tables:
            raise self.fail_tables[target_table]
        table = self.tables.setdefault(target_table, {})
        for record in records:
            existing = table.get(record[conflict_column], {})
            table[record[conflict_column]] = {**existing, **record}
        return len(records)


class FakeTokenProvider:
    def __init__(self, token: str = "ya29.test-token", error: Optional[Exception] = None) -> None:
        self.token = token
        self.error = error
        self.mint_calls = 0

    def mint(self) -> str:
        self.mint_calls += 1
        if self.error is not None:
            raise self.error
        return self.token


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def registry() -> InMemoryModelRegistry:
    return InMemoryModelRegistry()


@pytest.fixture
def watermarks() -> InMemoryWatermarkStore:
    return InMemoryWatermarkStore()


@pytest.fixture
def extractor() -> FakeExtractor:
    return FakeExtractor()


@pytest.fixture
def sink() -> InMemoryUpsertSink:
    return InMemoryUpsertSink()


@pytest.fixture
def token_provider() -> FakeTokenProvider:
    return FakeTokenProvider()


@pytest.fixture
def use_cases(token_provider, registry, watermarks, extractor, sink, clock) -> WarehouseSyncUseCases:
    return WarehouseSyncUseCases(
        token_provider=token_provider,
        registry=registry,
        watermarks=watermarks,
        extractor=extractor,
        sink=sink,
        stale_after_hours=6.0,
        clock=clock,
    )


@pytest.fixture(scope="session")
def rsa_private_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def rsa_private_key_pem(rsa_private_key) -> str:
    return rsa_private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


def _make_config(**overrides: Any) -> SyncConfig:
    values: Dict[str, Any] = {
        "tenant_id": "T1",
        "model_name": "orders",
        "dataset": "shop_raw",
        "table": "orders",
        "primary_key_field": "order_id",
        "timestamp_field": "updated_at",
        "target_table": "external_orders",
        "sync_frequency_hours": 24.0,
    }
    values.update(overrides)
    return SyncConfig(**values)


@pytest.fixture
def make_config():
    """Factory de SyncConfig con valores por defecto del modelo orders de T1."""
    return _make_config
