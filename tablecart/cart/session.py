"""Session identity and the storage key derived from it."""
import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

GUEST_KEY = "cart_guest"

_WHITESPACE_RE = re.compile(r"\s+")
_UNSAFE_CHARS_RE = re.compile(r"[^a-z0-9_]")


def normalize_customer_name(customer_name: str) -> str:
    """Lowercase, collapse whitespace runs to '_' and drop anything outside [a-z0-9_]."""
    safe_name = _WHITESPACE_RE.sub("_", customer_name.lower())
    return _UNSAFE_CHARS_RE.sub("", safe_name)


def resolve_key(
    table_number: Optional[str],
    ticket_number: Optional[str],
    customer_name: Optional[str],
) -> str:
    """
    Derive the cart storage key for an ordering session.

    Priority: table number > customer name (take-out) > legacy ticket number.
    Persisted carts are looked up by this key, so it must stay stable.
    """
    if table_number:
        return f"cart_table_{table_number}"
    if customer_name:
        return f"cart_customer_{normalize_customer_name(customer_name)}"
    if ticket_number:
        return f"cart_ticket_{ticket_number}"
    return GUEST_KEY


class SessionIdentity(BaseModel):
    """Ordering context supplied by the auth collaborator."""
    # The auth collaborator sends camelCase (tableNumber, customerName, ...)
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    table_number: Optional[str] = None
    customer_name: Optional[str] = None
    ticket_number: Optional[str] = None
    order_mode: Optional[str] = None

    @field_validator("table_number", "customer_name", "ticket_number", "order_mode", mode="before")
    @classmethod
    def _empty_to_none(cls, value):
        # Table and ticket numbers arrive as ints from some screens.
        # Only "" means missing; a whitespace-only name still keys a cart.
        if value is None or value == "":
            return None
        return str(value)

    @property
    def is_empty(self) -> bool:
        """True when there is no table, customer or ticket to key a cart by."""
        return self.table_number is None and self.customer_name is None and self.ticket_number is None

    @property
    def storage_key(self) -> str:
        return resolve_key(self.table_number, self.ticket_number, self.customer_name)
