"""
Mapeos BigQuery -> Postgres predefinidos por nombre de modelo.

Se aplican cuando la fila del registro no trae un field_mapping explícito.
Un mapeo explícito del operador siempre gana sobre el preset.

Patrón sugerido:
- Mantén las tablas destino alineadas con estas definiciones.
- Agrega un preset por modelo nuevo en lugar de hardcodear mapeos en la UI.
"""

from __future__ import annotations

from typing import Dict, Optional

PRESET_FIELD_MAPPINGS: Dict[str, Dict[str, str]] = {
    "orders": {
        "order_sn": "external_order_id",
        "create_time": "order_date",
        "total_amount": "total_amount",
        "order_status": "order_status",
        "buyer_username": "customer_name",
    },
    "settlements": {
        "settlement_id": "settlement_id",
        "settlement_date": "period_start",
        "total_amount": "net_amount",
        "total_orders": "total_orders",
    },
    "marketing_spend": {
        "id": "id",
        "spend_date": "expense_date",
        "channel": "channel",
        "campaign_name": "campaign_name",
        "cost": "amount",
        "impressions": "impressions",
        "clicks": "clicks",
        "conversions": "conversions",
    },
    "customers": {
        "customer_id": "id",
        "name": "name",
        "email": "email",
        "phone": "phone",
        "total_orders": "order_count",
        "lifetime_value": "lifetime_value",
        "first_order_date": "first_order_date",
        "last_order_date": "last_order_date",
    },
    "inventory": {
        "sku": "sku",
        "product_name": "product_name",
        "quantity": "quantity_on_hand",
        "warehouse_location": "location",
        "updated_at": "last_updated",
    },
}


def get_preset_field_mapping(model_name: str) -> Optional[Dict[str, str]]:
    """Retorna una copia del preset para el modelo, o None si no existe."""
    preset = PRESET_FIELD_MAPPINGS.get(model_name)
    return dict(preset) if preset else None
