# storage/__init__.py
# ============================================================================
# ELORA CHECKOUT BACKEND - STORAGE MODULE
# ============================================================================

from storage.order_store import (
    DuplicateOrderError,
    IOrderStore,
    InMemoryOrderStore,
)

__all__ = [
    "DuplicateOrderError",
    "IOrderStore",
    "InMemoryOrderStore",
]
