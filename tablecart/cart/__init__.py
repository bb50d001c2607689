"""Cart package: models, session keys, storage, discounts and the store."""
from .discounts import (
    CatalogDiscountApplier,
    DiscountApplier,
    DiscountApplyResult,
    DiscountCalculation,
)
from .models import AddOn, CartState, CartTotals, LineItem, calculate_total_price
from .service import CartStore, LoadPhase, create_cart_store
from .session import SessionIdentity, resolve_key
from .storage import CartStorage, MemoryCartStorage, RedisCartStorage, build_storage

__all__ = [
    "AddOn",
    "CartState",
    "CartStorage",
    "CartStore",
    "CartTotals",
    "CatalogDiscountApplier",
    "DiscountApplier",
    "DiscountApplyResult",
    "DiscountCalculation",
    "LineItem",
    "LoadPhase",
    "MemoryCartStorage",
    "RedisCartStorage",
    "SessionIdentity",
    "build_storage",
    "calculate_total_price",
    "create_cart_store",
    "resolve_key",
]
