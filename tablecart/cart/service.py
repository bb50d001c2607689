"""Session-scoped cart store."""
import asyncio
import json
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, List, Mapping, Optional, Union

from tablecart.config import Settings
from tablecart.errors import (
    ERROR_DISCOUNT_LOOKUP_FAILED,
    ERROR_INVALID_DISCOUNT_CODE,
    ERROR_SESSION_CHANGED,
)
from tablecart.logging import configure_logging, get_logger, sanitize_string_for_logging
from .discounts import CatalogDiscountApplier, DiscountApplier, DiscountApplyResult, DiscountRecord
from .models import AddOnLike, CartState, CartTotals, LineItem, calculate_total_price
from .session import SessionIdentity
from .storage import CartStorage, build_storage

logger = get_logger(__name__)


class LoadPhase(str, Enum):
    """Load progress for the active session key."""
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"


class CartStore:
    """
    Cart for the current ordering session (table, take-out customer or ticket).

    Features:
    - Switches carts when the session identity changes: the in-memory cart
      clears immediately and the stored cart for the new key loads on the
      next loop tick
    - Merges lines by (catalog id, add-on set, special instructions)
    - Coalesces persistence to one write per tick; nothing is written while
      the active key is loading or when there is no session
    - Totals recomputed on every read under the current discount

    All methods must be called from the event loop that owns the store.
    Mutations are not queued behind an outstanding load: if one lands before
    the load resolves, the loaded cart wins and a warning is logged.
    """

    def __init__(self, storage: CartStorage, discounts: DiscountApplier):
        self._storage = storage
        self._discounts = discounts
        self._state = CartState()

        self._active_key: Optional[str] = None
        self._session_observed = False
        self._generation = 0

        self._load_phase = LoadPhase.IDLE
        self._load_generation: Optional[int] = None
        self._load_task: Optional[asyncio.Task] = None
        self._mutated_while_loading = False

        self._dirty = False
        self._save_task: Optional[asyncio.Task] = None
        self._writes: set = set()

    # ==================== State ====================

    @property
    def active_key(self) -> Optional[str]:
        return self._active_key

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def load_phase(self) -> LoadPhase:
        return self._load_phase

    @property
    def items(self) -> List[LineItem]:
        return list(self._state.items)

    @property
    def discount(self) -> Optional[DiscountRecord]:
        return self._state.discount

    @property
    def discount_code(self) -> str:
        return self._state.discount_code

    @property
    def subtotal(self) -> Decimal:
        return self.get_totals().subtotal

    @property
    def discount_amount(self) -> Decimal:
        return self.get_totals().discount_amount

    @property
    def total(self) -> Decimal:
        return self.get_totals().final_total

    calculate_total_price = staticmethod(calculate_total_price)

    def snapshot(self) -> dict:
        """Current cart in its persisted shape."""
        return self._state.to_blob()

    # ==================== Session ====================

    def observe_session(self, identity: Union[SessionIdentity, Mapping[str, Any], None]) -> None:
        """
        Track the ordering session; safe to call on every render.

        A new key clears the cart synchronously and schedules a load. The
        same key is a no-op. An empty identity clears the cart and drops the
        active key without loading anything.
        """
        if not isinstance(identity, SessionIdentity):
            identity = SessionIdentity.model_validate(identity or {})

        if identity.is_empty:
            if self._active_key is not None or not self._session_observed:
                self._session_observed = True
                self._end_session()
            return

        self._session_observed = True
        key = identity.storage_key
        if key == self._active_key:
            return

        previous = self._active_key
        self._flush_pending_now()
        self._reset_state()
        self._active_key = key
        self._generation += 1
        logger.info(
            f"Cart session switched {sanitize_string_for_logging(previous)} -> "
            f"{sanitize_string_for_logging(key)} (generation {self._generation})"
        )
        self._start_load(key, self._generation)

    def _end_session(self) -> None:
        if self._active_key is not None:
            logger.info(f"Cart session ended: {sanitize_string_for_logging(self._active_key)}")
        self._flush_pending_now()
        self._reset_state()
        self._active_key = None
        self._generation += 1
        self._load_phase = LoadPhase.IDLE
        self._load_generation = None
        self._load_task = None
        self._mutated_while_loading = False

    def _reset_state(self) -> None:
        self._state = CartState()

    # ==================== Loading ====================

    def _start_load(self, key: str, generation: int) -> None:
        # Load phase is the mutex: one outstanding load per generation
        if self._load_phase is LoadPhase.LOADING and self._load_generation == generation:
            return
        self._load_phase = LoadPhase.LOADING
        self._load_generation = generation
        self._mutated_while_loading = False
        self._load_task = asyncio.get_running_loop().create_task(self._load(key, generation))

    async def _load(self, key: str, generation: int) -> None:
        state = CartState()
        raw = None
        try:
            raw = await self._storage.get(key)
        except Exception as e:
            logger.warning(f"Failed to load cart {sanitize_string_for_logging(key)} from storage: {e}")

        if raw:
            try:
                state = CartState.from_blob(json.loads(raw))
            except (ValueError, KeyError, TypeError) as e:
                logger.warning(f"Corrupted cart data for {sanitize_string_for_logging(key)}: {e}")
                state = CartState()

        if generation != self._generation:
            logger.debug(f"Discarding stale cart load for {sanitize_string_for_logging(key)}")
            return

        if self._mutated_while_loading:
            logger.warning(
                f"Cart for {sanitize_string_for_logging(key)} changed while loading; "
                "stored cart replaces those changes"
            )

        self._state = state
        self._load_phase = LoadPhase.LOADED
        self._mutated_while_loading = False
        logger.debug(f"Loaded cart {sanitize_string_for_logging(key)} with {len(state.items)} line(s)")

    async def wait_until_loaded(self) -> None:
        """Wait for the outstanding load of the active key, if any."""
        while self._load_task is not None and not self._load_task.done():
            await self._load_task

    # ==================== Persistence ====================

    def _can_persist(self) -> bool:
        return self._active_key is not None and self._load_phase is not LoadPhase.LOADING

    def _on_mutation(self) -> None:
        if self._load_phase is LoadPhase.LOADING:
            self._mutated_while_loading = True
            return
        if not self._can_persist():
            return
        self._dirty = True
        if self._save_task is None or self._save_task.done():
            self._save_task = self._spawn_write(self._save_pending())

    async def _save_pending(self) -> None:
        # Runs on the next tick so a burst of mutations becomes one write
        while self._dirty:
            self._dirty = False
            if not self._can_persist():
                return
            await self._write(self._active_key, self._state.to_blob())

    def _flush_pending_now(self) -> None:
        """Write a not-yet-saved cart under its own key before the key changes."""
        if self._dirty and self._can_persist():
            self._dirty = False
            self._spawn_write(self._write(self._active_key, self._state.to_blob()))
        self._dirty = False

    async def _write(self, key: str, blob: dict) -> None:
        try:
            await self._storage.set(key, json.dumps(blob))
        except Exception as e:
            logger.warning(f"Failed to save cart {sanitize_string_for_logging(key)} to storage: {e}")

    def _spawn_write(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._writes.add(task)
        task.add_done_callback(self._writes.discard)
        return task

    async def flush(self) -> None:
        """Wait until every scheduled write has finished."""
        while True:
            pending = [task for task in self._writes if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending)

    # ==================== Items ====================

    def add_item(
        self,
        item: Mapping[str, Any],
        qty: int = 1,
        add_ons: Optional[Iterable[AddOnLike]] = None,
        special_instructions: str = "",
        total_item_price: Any = None,
    ) -> LineItem:
        """Add a menu item, merging into an existing line with the same signature."""
        if not isinstance(qty, int) or isinstance(qty, bool) or qty < 1:
            raise ValueError("qty must be a positive integer")
        if not item or item.get("id") in (None, ""):
            raise ValueError("item must have an id")

        add_ons = list(add_ons or [])
        signature = LineItem.make_signature(item["id"], add_ons, special_instructions)
        existing = next((line for line in self._state.items if line.signature == signature), None)

        if existing:
            # Unit price stays as first added
            existing.qty += qty
            line = existing
        else:
            line = LineItem.from_catalog_item(
                item,
                qty=qty,
                add_ons=add_ons,
                special_instructions=special_instructions,
                total_item_price=total_item_price,
            )
            self._state.items.append(line)

        self._on_mutation()
        return line

    def remove_item(self, item_id: Any) -> int:
        """Remove every line for a catalog id (all add-on/instruction variants)."""
        item_id = str(item_id)
        before = len(self._state.items)
        self._state.items = [line for line in self._state.items if line.id != item_id]
        removed = before - len(self._state.items)
        if removed:
            self._on_mutation()
        return removed

    def update_qty(self, item_id: Any, qty: int) -> Optional[LineItem]:
        """Set qty on the first line for a catalog id. Zero or less is kept as-is."""
        item_id = str(item_id)
        line = next((line for line in self._state.items if line.id == item_id), None)
        if line is None:
            return None
        line.qty = int(qty)
        self._on_mutation()
        return line

    async def clear(self) -> None:
        """Empty the cart and delete its stored copy right away."""
        if self._load_phase is LoadPhase.LOADING:
            self._mutated_while_loading = True
        self._reset_state()
        self._dirty = False
        key = self._active_key
        if key is None:
            return
        # An in-flight write must not land after the delete
        await self.flush()
        try:
            await self._storage.remove(key)
        except Exception as e:
            logger.warning(f"Failed to clear cart {sanitize_string_for_logging(key)} from storage: {e}")

    # UI-facing names
    add_to_cart = add_item
    remove_from_cart = remove_item
    clear_cart = clear

    # ==================== Discounts ====================

    def _set_discount(self, discount: Optional[DiscountRecord], code: str) -> None:
        self._state.discount = discount
        self._state.discount_code = code
        self._on_mutation()

    async def apply_discount_code(self, code: str) -> DiscountApplyResult:
        """Look up a code and attach it to the cart. Never raises."""
        generation = self._generation
        try:
            record = await self._discounts.lookup(code)
        except Exception as e:
            logger.warning(f"Discount lookup failed for {sanitize_string_for_logging(code, 20)}: {e}")
            if generation == self._generation:
                self._set_discount(None, "")
            return DiscountApplyResult(success=False, error=str(e) or ERROR_DISCOUNT_LOOKUP_FAILED)

        if generation != self._generation:
            logger.info("Session changed during discount lookup; code not applied")
            return DiscountApplyResult(success=False, error=ERROR_SESSION_CHANGED)

        if not record:
            self._set_discount(None, "")
            return DiscountApplyResult(success=False, error=ERROR_INVALID_DISCOUNT_CODE)

        self._set_discount(record, code.upper())
        return DiscountApplyResult(success=True, discount=record)

    def remove_discount(self) -> None:
        self._set_discount(None, "")

    # ==================== Totals ====================

    def get_totals(self) -> CartTotals:
        """Subtotal, discount and final total for the current cart."""
        subtotal = sum((line.line_total for line in self._state.items), Decimal("0"))
        discount = self._state.discount
        if not discount or subtotal <= 0:
            return CartTotals(subtotal=subtotal, discount_amount=Decimal("0"), final_total=subtotal)

        try:
            result = self._discounts.apply(discount, subtotal)
        except Exception as e:
            logger.error(f"Failed to apply discount {sanitize_string_for_logging(self._state.discount_code, 20)}: {e}")
            return CartTotals(subtotal=subtotal, discount_amount=Decimal("0"), final_total=subtotal)
        return CartTotals(
            subtotal=subtotal,
            discount_amount=result.discount_amount,
            final_total=result.final_total,
        )


def create_cart_store(
    settings: Optional[Settings] = None,
    discounts: Optional[DiscountApplier] = None,
    storage: Optional[CartStorage] = None,
) -> CartStore:
    """Build a CartStore for the application root to own and hand to screens."""
    settings = settings or Settings.from_env()
    configure_logging(settings)
    return CartStore(
        storage=storage or build_storage(settings),
        discounts=discounts or CatalogDiscountApplier(),
    )
