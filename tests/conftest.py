"""Pytest configuration and fixtures"""
import asyncio
import os
from typing import Dict, List, Optional, Tuple

import pytest

# Set test environment variables
os.environ.setdefault("CART_STORAGE_BACKEND", "memory")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

from tablecart.cart import CartStore, CatalogDiscountApplier, MemoryCartStorage


class RecordingStorage(MemoryCartStorage):
    """Memory storage that records calls, can hold reads open and can fail on demand."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        super().__init__(initial)
        self.calls: List[Tuple[str, str]] = []
        self.gates: Dict[str, asyncio.Event] = {}
        self.fail_on: set = set()

    def hold(self, key: str) -> asyncio.Event:
        """Block reads of key until the returned event is set."""
        gate = asyncio.Event()
        self.gates[key] = gate
        return gate

    def sets_for(self, key: str) -> int:
        return sum(1 for op, k in self.calls if op == "set" and k == key)

    async def get(self, key: str) -> Optional[str]:
        self.calls.append(("get", key))
        if key in self.gates:
            await self.gates[key].wait()
        if "get" in self.fail_on:
            raise ConnectionError("storage offline")
        return await super().get(key)

    async def set(self, key: str, blob: str) -> None:
        self.calls.append(("set", key))
        if "set" in self.fail_on:
            raise ConnectionError("storage offline")
        await super().set(key, blob)

    async def remove(self, key: str) -> None:
        self.calls.append(("remove", key))
        if "remove" in self.fail_on:
            raise ConnectionError("storage offline")
        await super().remove(key)


@pytest.fixture
def storage():
    """Recording in-memory cart storage"""
    return RecordingStorage()


@pytest.fixture
def discounts():
    """Discount catalog used by the cashier screens"""
    return CatalogDiscountApplier({
        "SENIOR20": {"name": "Senior Citizen", "type": "percentage", "value": 20},
        "LESS50": {"name": "Promo 50", "type": "fixed", "value": 50},
        "OLDPROMO": {"name": "Expired", "type": "percentage", "value": 10, "is_active": False},
    })


@pytest.fixture
def store(storage, discounts):
    """Cart store with recording storage"""
    return CartStore(storage=storage, discounts=discounts)


@pytest.fixture
def adobo():
    """Sample menu item"""
    return {"id": "A", "name": "Chicken Adobo", "price": 100, "category": "mains"}


@pytest.fixture
def latte():
    """Sample drink with add-ons"""
    return {"id": "L", "name": "Iced Latte", "price": 120, "category": "drinks"}


@pytest.fixture
def add_ons():
    """Sample add-ons"""
    return [
        {"id": "shot", "name": "Extra Shot", "price": 30},
        {"id": "oat", "name": "Oat Milk", "price": 25},
    ]


async def open_session(store, **identity):
    """Observe an identity and wait for its cart to load."""
    store.observe_session(identity)
    await store.wait_until_loaded()
