"""Cart models with Decimal-based pricing.

Line items are persisted with the ordering app's camelCase keys so carts
saved by earlier app builds keep loading.
"""
import time
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from tablecart.services.money import to_decimal, to_json_number, multiply


def _finite_price(value: Any, field_name: str) -> Decimal:
    """Decimal price; NaN and Infinity are rejected."""
    price = to_decimal(value)
    if not price.is_finite():
        raise ValueError(f"{field_name} must be a finite number, got {value!r}")
    return price


# Keys owned by LineItem; everything else on a catalog item rides along in `extra`
_LINE_ITEM_KEYS = frozenset(
    {"id", "name", "price", "qty", "addOns", "specialInstructions", "totalItemPrice"}
)


@dataclass
class AddOn:
    """Selected add-on (extra shot, sauce, size upgrade)."""
    id: str
    price: Decimal = Decimal("0")
    name: str = ""

    def __post_init__(self):
        self.id = str(self.id)
        self.price = _finite_price(self.price, "add-on price")

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "price": to_json_number(self.price)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AddOn":
        return cls(id=data["id"], price=data.get("price") or 0, name=data.get("name") or "")


AddOnLike = Union[AddOn, Mapping[str, Any]]


def _coerce_add_ons(add_ons: Optional[Iterable[AddOnLike]]) -> List[AddOn]:
    return [a if isinstance(a, AddOn) else AddOn.from_dict(a) for a in (add_ons or [])]


def calculate_total_price(base_price: Any, add_ons: Optional[Iterable[AddOnLike]] = None) -> Decimal:
    """Unit price of an item: base price plus every selected add-on."""
    return to_decimal(base_price) + sum(
        (a.price for a in _coerce_add_ons(add_ons)), Decimal("0")
    )


Signature = Tuple[str, Tuple[str, ...], str]


@dataclass
class LineItem:
    """One mergeable cart entry: catalog item + add-on set + instructions."""
    id: str
    base_price: Decimal
    qty: int = 1
    add_ons: List[AddOn] = field(default_factory=list)
    special_instructions: str = ""
    total_item_price: Optional[Decimal] = None  # Per unit, add-ons included
    name: str = ""
    extra: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.id = str(self.id)
        self.base_price = _finite_price(self.base_price, "price")
        self.qty = int(self.qty)
        self.add_ons = _coerce_add_ons(self.add_ons)
        self.special_instructions = self.special_instructions or ""
        if self.total_item_price is None:
            self.total_item_price = calculate_total_price(self.base_price, self.add_ons)
        else:
            self.total_item_price = _finite_price(self.total_item_price, "totalItemPrice")

    @staticmethod
    def make_signature(item_id: Any, add_ons: Iterable[AddOnLike], special_instructions: str) -> Signature:
        """Merge identity: catalog id, sorted add-on ids, exact instructions."""
        add_on_ids = tuple(sorted(a.id for a in _coerce_add_ons(add_ons)))
        return (str(item_id), add_on_ids, special_instructions or "")

    @property
    def signature(self) -> Signature:
        return self.make_signature(self.id, self.add_ons, self.special_instructions)

    @property
    def line_total(self) -> Decimal:
        """Unit price times quantity."""
        return multiply(self.total_item_price, self.qty)

    def to_dict(self) -> dict:
        """Convert to the persisted camelCase shape."""
        return {
            **self.extra,
            "id": self.id,
            "name": self.name,
            "price": to_json_number(self.base_price),
            "qty": self.qty,
            "addOns": [a.to_dict() for a in self.add_ons],
            "specialInstructions": self.special_instructions,
            "totalItemPrice": to_json_number(self.total_item_price),
        }

    @classmethod
    def from_catalog_item(
        cls,
        item: Mapping[str, Any],
        qty: int = 1,
        add_ons: Optional[Iterable[AddOnLike]] = None,
        special_instructions: str = "",
        total_item_price: Any = None,
    ) -> "LineItem":
        """
        Build a new line from a menu item.

        A caller-supplied total_item_price is trusted verbatim (the
        customization screen bakes size upgrades into it); otherwise it is
        base price plus add-ons.
        """
        return cls(
            id=item["id"],
            base_price=item.get("price") or 0,
            qty=qty,
            add_ons=list(add_ons or []),
            special_instructions=special_instructions or "",
            total_item_price=total_item_price,
            name=item.get("name") or "",
            extra={k: v for k, v in item.items() if k not in _LINE_ITEM_KEYS},
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LineItem":
        """Create from a persisted entry. Raises KeyError/TypeError/ValueError on bad data."""
        if not isinstance(data, Mapping):
            raise TypeError(f"line item must be an object, got {type(data).__name__}")
        total = data.get("totalItemPrice")
        if isinstance(total, bool) or not isinstance(total, (int, float, str)):
            total = None
        return cls(
            id=data["id"],
            base_price=data.get("price") or 0,
            qty=data.get("qty", 1),
            add_ons=data.get("addOns") or [],
            special_instructions=data.get("specialInstructions") or "",
            total_item_price=total,
            name=data.get("name") or "",
            extra={k: v for k, v in data.items() if k not in _LINE_ITEM_KEYS},
        )


@dataclass
class CartState:
    """In-memory cart for the active session."""
    items: List[LineItem] = field(default_factory=list)
    discount: Optional[Dict[str, Any]] = None
    discount_code: str = ""

    def to_blob(self, timestamp: Optional[int] = None) -> dict:
        """Serialize for storage: {items, discount, discountCode, timestamp}."""
        return {
            "items": [item.to_dict() for item in self.items],
            "discount": self.discount,
            "discountCode": self.discount_code or "",
            "timestamp": timestamp if timestamp is not None else int(time.time() * 1000),
        }

    @classmethod
    def from_blob(cls, data: Any) -> "CartState":
        """
        Rebuild state from a stored blob.

        Each field is adopted only when it passes its check (items must be a
        list, discount and code must be truthy); anything else keeps the
        empty default. Raises on a blob that is not an object or on a line
        item that cannot be parsed.
        """
        if not isinstance(data, Mapping):
            raise TypeError(f"cart blob must be an object, got {type(data).__name__}")
        state = cls()
        items = data.get("items")
        if isinstance(items, list):
            state.items = [LineItem.from_dict(entry) for entry in items]
        if data.get("discount"):
            state.discount = data["discount"]
        if data.get("discountCode"):
            state.discount_code = str(data["discountCode"])
        return state


@dataclass(frozen=True)
class CartTotals:
    """Derived totals for the current cart."""
    subtotal: Decimal
    discount_amount: Decimal
    final_total: Decimal
