"""Discount lookup/apply contract and a catalog-backed reference applier."""
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional, Protocol

from pydantic import BaseModel

from tablecart.logging import get_logger, sanitize_string_for_logging
from tablecart.services.money import percent, round_money, subtract, to_decimal

logger = get_logger(__name__)

# Opaque to the cart; must stay JSON-serializable because it is persisted
DiscountRecord = Dict[str, Any]


class DiscountCalculation(BaseModel):
    """Effect of a discount on a subtotal."""
    discount_amount: Decimal
    final_total: Decimal


class DiscountApplyResult(BaseModel):
    """Result of applying a discount code to the cart."""
    success: bool
    discount: Optional[DiscountRecord] = None
    error: Optional[str] = None


class DiscountApplier(Protocol):
    """Discount collaborator: code lookup (may raise) and pure application."""

    async def lookup(self, code: str) -> Optional[DiscountRecord]: ...

    def apply(self, discount: DiscountRecord, subtotal: Decimal) -> DiscountCalculation: ...


class DiscountTypes:
    """Discount record types understood by CatalogDiscountApplier."""
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class CatalogDiscountApplier:
    """
    Discount applier over a fixed catalog of codes.

    Records look like {"name": "Senior", "type": "percentage", "value": 20}.
    Codes match case-insensitively; records with is_active=False are not found.
    """

    def __init__(self, codes: Optional[Mapping[str, DiscountRecord]] = None):
        self._codes = {code.strip().upper(): dict(record) for code, record in (codes or {}).items()}

    async def lookup(self, code: str) -> Optional[DiscountRecord]:
        record = self._codes.get((code or "").strip().upper())
        if record is None or record.get("is_active") is False:
            logger.info(f"Discount code not found: {sanitize_string_for_logging(code, 20)}")
            return None
        return dict(record)

    def apply(self, discount: DiscountRecord, subtotal: Decimal) -> DiscountCalculation:
        subtotal = to_decimal(subtotal)
        discount_type = discount.get("type", DiscountTypes.PERCENTAGE)
        value = to_decimal(discount.get("value"))

        if discount_type == DiscountTypes.FIXED:
            amount = value
        elif discount_type == DiscountTypes.PERCENTAGE:
            amount = percent(subtotal, value)
        else:
            logger.warning(f"Unknown discount type: {sanitize_string_for_logging(str(discount_type), 20)}")
            amount = Decimal("0")

        # Never discount more than the order is worth
        amount = round_money(min(max(amount, Decimal("0")), subtotal))
        return DiscountCalculation(
            discount_amount=amount,
            final_total=round_money(max(subtract(subtotal, amount), Decimal("0"))),
        )
