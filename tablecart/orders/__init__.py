"""Order payloads built from the cart."""
from .serializer import build_order_payload, checkout

__all__ = ["build_order_payload", "checkout"]
