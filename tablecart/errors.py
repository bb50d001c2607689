"""
Common Error Constants

Human-readable messages surfaced to the ordering screens.
"""

# Discount errors
ERROR_INVALID_DISCOUNT_CODE = "Invalid discount code"
ERROR_DISCOUNT_LOOKUP_FAILED = "Failed to apply discount"
ERROR_SESSION_CHANGED = "Order session changed, please try the code again"

# Order errors
ERROR_EMPTY_ORDER = "Order must contain at least one item"

# Storage errors
ERROR_STORAGE_UNAVAILABLE = "Cart storage unavailable"


class CartStorageError(ValueError):
    """Raised by storage backends when a read, write or delete fails."""


class CartStorageConfigError(ValueError):
    """Raised when the storage backend is selected but not configured; not retried."""
