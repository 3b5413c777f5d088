"""
Transforms custom registrados por nombre.

Un modelo los selecciona con mapping_config = {"transform": "<nombre>"}.
Cada transform recibe la fila plana y la configuración del modelo, y
devuelve el registro destino (sin tenant_id: lo inyecta el transformer).
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional

from warehouse_sync.domain.entities.sync import CustomTransform, RowTransformFn, SyncConfig

CUSTOM_TRANSFORMS: Dict[str, CustomTransform] = {}


def register_transform(
    name: str,
    *,
    conflict_column: Optional[str] = None,
) -> Callable[[RowTransformFn], RowTransformFn]:
    """Decorador que registra un transform custom bajo `name`."""

    def decorator(fn: RowTransformFn) -> RowTransformFn:
        CUSTOM_TRANSFORMS[name] = CustomTransform(name=name, fn=fn, conflict_column=conflict_column)
        return fn

    return decorator


# Orden importa: la primera regla que matchea gana.
# Valores válidos del enum destino: pending, confirmed, processing, shipping,
# delivered, cancelled, returned
_ORDER_STATUS_RULES = (
    (("complete", "delivered", "finish"), "delivered"),
    (("cancel",), "cancelled"),
    (("return", "refund"), "returned"),
    (("ship", "transit", "delivery"), "shipping"),
    (("process", "ready"), "processing"),
    (("confirm", "paid", "pay"), "confirmed"),
)


def normalize_order_status(raw_status: Any) -> str:
    """Unifica estados de pedido de distintos canales."""
    if not raw_status:
        return "pending"
    status = str(raw_status).lower()
    for needles, unified in _ORDER_STATUS_RULES:
        if any(n in status for n in needles):
            return unified
    return "pending"


def _first(row: Dict[str, Any], *names: str) -> Any:
    for name in names:
        value = row.get(name)
        if value not in (None, ""):
            return value
    return None


def _amount(row: Dict[str, Any], *names: str) -> float:
    value = _first(row, *names)
    return float(value) if value is not None else 0.0


@register_transform("unified_orders", conflict_column="external_order_id")
def unified_orders(row: Dict[str, Any], config: SyncConfig) -> Dict[str, Any]:
    """
    Pedidos de marketplaces (Shopee, Lazada, ...) al esquema external_orders.

    Los canales nombran distinto los mismos campos; se toma el primero presente.
    """
    order_id = _first(row, "order_id", "orderId", "order_sn", "orderNumber")
    return {
        "external_order_id": order_id,
        "order_number": order_id,
        "order_date": _first(row, "create_time", "createTime", "created_at"),
        "status": normalize_order_status(_first(row, "order_status", "orderStatus", "status")),
        "customer_name": _first(row, "buyer_username", "buyerUsername", "customer_name", "recipient_name"),
        "customer_phone": _first(row, "recipient_phone", "buyerPhone"),
        "total_amount": _amount(row, "total_amount", "totalAmount", "total_paid_amount"),
        "subtotal": _amount(row, "subtotal", "items_total", "product_subtotal"),
        "shipping_fee": _amount(row, "shipping_fee", "shippingFee", "buyer_paid_shipping_fee"),
        "platform_fee": _amount(row, "platform_fee", "transaction_fee"),
        "commission_fee": _amount(row, "commission_fee", "commission"),
        "payment_method": _first(row, "payment_method", "paymentMethod"),
        "raw_data": row,
    }
