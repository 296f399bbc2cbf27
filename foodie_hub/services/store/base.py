"""
Order Store Abstract Base Class

Defines the store interface consumed by the order workflows.
Both SqlAlchemyOrderStore and InMemoryOrderStore implement these methods,
so the transactional boundary of order placement can be exercised against
either one.

Design Pattern: Strategy Pattern
    - The workflow receives a store instance, it never reaches for a global
    - The in-memory store can inject faults to test rollback behavior

Version: 1.0.0
"""

import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from dataclasses import dataclass
from decimal import Decimal
from typing import AsyncIterator, Optional

from foodie_hub.core.exceptions import TransactionFailure
from foodie_hub.models import OrderStatus

logger = logging.getLogger(__name__)


@dataclass
class CustomerRecord:
    """Customer fields the workflows need."""
    id: int
    name: str
    phone: str
    address: Optional[str] = None


@dataclass
class RestaurantRecord:
    id: int
    name: str
    is_active: bool = True


@dataclass
class MenuItemRecord:
    """
    Menu item as read inside a transaction.

    Attributes:
        id: Menu item identifier
        restaurant_id: Owning restaurant
        name: Display name (used in error messages)
        price: Current catalog price
        is_available: Whether the item can be ordered right now
    """
    id: int
    restaurant_id: int
    name: str
    price: Decimal
    is_available: bool


@dataclass
class OrderRecord:
    id: int
    customer_id: int
    restaurant_id: int
    status: OrderStatus
    total_amount: Decimal


class BaseOrderStore(ABC):
    """
    Abstract base class for order stores.

    Lookups return None when the row does not exist; the workflows decide
    which error that is. Exceptions listed in `fault_types` are store
    faults and are reported as TransactionFailure by `transaction()`.
    """

    fault_types: tuple[type[BaseException], ...] = ()

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the store name (e.g., "sqlalchemy", "memory")."""
        pass

    # =========================================================================
    # TRANSACTION CONTROL
    # =========================================================================

    @abstractmethod
    async def begin(self) -> None:
        pass

    @abstractmethod
    async def commit(self) -> None:
        pass

    @abstractmethod
    async def rollback(self) -> None:
        pass

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["BaseOrderStore"]:
        """
        Run the enclosed block as one unit of work.

        Commits when the block exits normally. On any exception the unit
        of work is rolled back before the exception propagates; store
        faults are re-raised as TransactionFailure.
        """
        try:
            await self.begin()
        except self.fault_types as exc:
            raise TransactionFailure(f"Could not start transaction: {exc}") from exc

        try:
            yield self
            await self.commit()
        except BaseException as exc:
            await self._rollback_quietly()
            if isinstance(exc, self.fault_types):
                logger.error(f"Transaction rolled back after store fault: {exc}")
                raise TransactionFailure(f"Transaction rolled back: {exc}") from exc
            raise

    async def _rollback_quietly(self) -> None:
        # A failed rollback must not mask the error that caused it.
        try:
            await self.rollback()
        except Exception:
            logger.exception("Rollback failed")

    # =========================================================================
    # LOOKUPS
    # =========================================================================

    @abstractmethod
    async def get_customer(self, customer_id: int) -> Optional[CustomerRecord]:
        pass

    @abstractmethod
    async def get_restaurant(self, restaurant_id: int) -> Optional[RestaurantRecord]:
        """Return the restaurant, or None if missing or soft-deleted."""
        pass

    @abstractmethod
    async def get_menu_item(
        self,
        menu_item_id: int,
        lock: bool = False,
    ) -> Optional[MenuItemRecord]:
        """
        Read a menu item.

        Args:
            menu_item_id: Menu item to read
            lock: Hold a shared row lock until the transaction ends, so the
                price and availability cannot change under the caller
        """
        pass

    @abstractmethod
    async def get_order(self, order_id: int, lock: bool = False) -> Optional[OrderRecord]:
        pass

    # =========================================================================
    # WRITES
    # =========================================================================

    @abstractmethod
    async def insert_order(
        self,
        customer_id: int,
        restaurant_id: int,
        total: Decimal,
        address: Optional[str],
        instructions: Optional[str],
    ) -> int:
        """Insert an order header with status pending and return its id."""
        pass

    @abstractmethod
    async def insert_order_line(
        self,
        order_id: int,
        menu_item_id: int,
        quantity: int,
        unit_price: Decimal,
        special_request: Optional[str],
    ) -> int:
        """Insert one order line (subtotal = quantity x unit_price) and return its id."""
        pass

    @abstractmethod
    async def update_order_status(self, order_id: int, status: OrderStatus) -> None:
        pass
