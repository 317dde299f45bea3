# storage/order_store.py
# ============================================================================
# ELORA CHECKOUT BACKEND - ORDER STORE
# ============================================================================
# Process-lifetime order storage keyed by refId, with a write-once
# transId -> refId index for callbacks that omit refId. Orders are never
# deleted. Swap InMemoryOrderStore for a durable implementation of
# IOrderStore without touching checkout or reconciliation.
# ============================================================================

import asyncio
from abc import ABC, abstractmethod
from typing import Optional

import structlog

from schemas.order import Order


class DuplicateOrderError(ValueError):
    pass


class IOrderStore(ABC):
    """Abstract order store interface"""

    @abstractmethod
    async def insert(self, order: Order) -> Order:
        pass

    @abstractmethod
    async def get_by_ref(self, ref_id: str) -> Optional[Order]:
        pass

    @abstractmethod
    async def get_by_transaction_id(self, transaction_id: str) -> Optional[Order]:
        pass

    @abstractmethod
    async def mark_paid(self, ref_id: str) -> bool:
        """
        Atomically flip paid from False to True.
        Returns True only for the call that performed the transition.
        """
        pass

    @abstractmethod
    async def count(self) -> int:
        pass


class InMemoryOrderStore(IOrderStore):
    """In-memory order store guarded by a single asyncio lock"""

    def __init__(self):
        self._orders: dict[str, Order] = {}
        self._by_transaction: dict[str, str] = {}
        self._lock = asyncio.Lock()
        self._logger = structlog.get_logger().bind(component="order_store")

    async def insert(self, order: Order) -> Order:
        async with self._lock:
            if order.ref_id in self._orders:
                raise DuplicateOrderError(f"refId already stored: {order.ref_id}")
            if order.transaction_id in self._by_transaction:
                raise DuplicateOrderError(f"transId already indexed: {order.transaction_id}")
            self._orders[order.ref_id] = order
            self._by_transaction[order.transaction_id] = order.ref_id
        self._logger.info("order_stored", ref_id=order.ref_id, trans_id=order.transaction_id)
        return order

    async def get_by_ref(self, ref_id: str) -> Optional[Order]:
        async with self._lock:
            return self._orders.get(ref_id)

    async def get_by_transaction_id(self, transaction_id: str) -> Optional[Order]:
        async with self._lock:
            ref_id = self._by_transaction.get(transaction_id)
            return self._orders.get(ref_id) if ref_id else None

    async def mark_paid(self, ref_id: str) -> bool:
        async with self._lock:
            order = self._orders.get(ref_id)
            if order is None or order.paid:
                return False
            self._orders[ref_id] = order.mark_paid()
            return True

    async def count(self) -> int:
        async with self._lock:
            return len(self._orders)
