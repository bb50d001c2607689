"""Order payload builder and checkout flow."""
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional

from tablecart.cart.models import LineItem
from tablecart.cart.service import CartStore
from tablecart.cart.session import SessionIdentity
from tablecart.errors import ERROR_EMPTY_ORDER
from tablecart.logging import get_logger, sanitize_string_for_logging
from tablecart.services.money import round_money, subtract, to_float

logger = get_logger(__name__)

PlaceOrder = Callable[[Dict[str, Any]], Awaitable[Any]]


def build_item_payload(line: LineItem) -> Dict[str, Any]:
    """Order line as stored by the kitchen/cashier screens."""
    return {
        "itemId": line.id or None,
        "name": line.name or "Unknown Item",
        "price": to_float(line.base_price),
        "quantity": line.qty,
        "addOns": [
            {"name": a.name or "Unknown Add-on", "price": to_float(a.price)}
            for a in line.add_ons
        ],
        "specialInstructions": line.special_instructions,
        "totalItemPrice": to_float(line.total_item_price),
    }


def build_order_payload(
    store: CartStore,
    identity: SessionIdentity,
    source: str = "customer",
    user_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Build an order document from the current cart.

    Args:
        store: Cart to check out
        identity: Session the order belongs to
        source: Who placed the order ("customer" or "cashier")
        user_id: Authenticated staff/customer id, if any

    Returns:
        Order payload with status "pending"

    Raises:
        ValueError: If the cart is empty
    """
    items = store.items
    if not items:
        raise ValueError(ERROR_EMPTY_ORDER)

    totals = store.get_totals()
    discount = store.discount or {}
    total = max(subtract(totals.subtotal, totals.discount_amount), 0)
    now = datetime.now(timezone.utc).isoformat()

    return {
        "items": [build_item_payload(line) for line in items],
        "subtotal": to_float(round_money(totals.subtotal)),
        "discountAmount": to_float(round_money(totals.discount_amount)),
        "total": to_float(round_money(total)),
        "discountCode": store.discount_code or None,
        "discountName": discount.get("name") or None,
        "tableNumber": identity.table_number,
        "customerName": identity.customer_name,
        "orderMode": identity.order_mode,
        "userId": user_id,
        "source": source,
        "status": "pending",
        "timestamp": now,
    }


async def checkout(
    store: CartStore,
    identity: SessionIdentity,
    place_order: PlaceOrder,
    source: str = "customer",
    user_id: Optional[str] = None,
) -> Any:
    """
    Place the current cart as an order, then clear it.

    If place_order raises, the cart is left untouched so the guest can retry.
    """
    payload = build_order_payload(store, identity, source=source, user_id=user_id)
    result = await place_order(payload)
    logger.info(
        f"Order placed for {sanitize_string_for_logging(store.active_key)} "
        f"({len(payload['items'])} line(s), total {payload['total']})"
    )
    await store.clear()
    return result
