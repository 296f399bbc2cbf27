"""
In-Memory Order Store Implementation

Simulates the relational store without a database. Used by the workflow
unit tests to:
    - Check validation and pricing rules in isolation
    - Verify that a failed unit of work leaves no rows behind
    - Inject store faults at a chosen point of the transaction

Behavior:
    - begin() snapshots every table, rollback() restores the snapshot
    - fail_on_line_insert=N raises StoreFault on the N-th line insert
    - fail_on_commit=True raises StoreFault from commit()
"""

import copy
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional

from foodie_hub.models import OrderStatus
from foodie_hub.services.store.base import (
    BaseOrderStore,
    CustomerRecord,
    MenuItemRecord,
    OrderRecord,
    RestaurantRecord,
)

logger = logging.getLogger(__name__)


class StoreFault(ConnectionError):
    """Simulated connectivity loss."""


@dataclass
class OrderLineRow:
    id: int
    order_id: int
    menu_item_id: int
    quantity: int
    unit_price: Decimal
    subtotal: Decimal
    special_requests: Optional[str] = None


@dataclass
class OrderRow:
    id: int
    customer_id: int
    restaurant_id: int
    status: OrderStatus
    total_amount: Decimal
    delivery_address: Optional[str] = None
    special_instructions: Optional[str] = None


class InMemoryOrderStore(BaseOrderStore):
    """
    Dictionary-backed store with snapshot transactions.

    Example:
        >>> store = InMemoryOrderStore()
        >>> store.add_customer(CustomerRecord(1, "Ana", "5551234567"))
        >>> store.add_restaurant(RestaurantRecord(1, "Bella Napoli"))
    """

    fault_types = (StoreFault,)

    def __init__(
        self,
        fail_on_line_insert: Optional[int] = None,
        fail_on_commit: bool = False,
    ):
        self.fail_on_line_insert = fail_on_line_insert
        self.fail_on_commit = fail_on_commit

        self.customers: dict[int, CustomerRecord] = {}
        self.restaurants: dict[int, RestaurantRecord] = {}
        self.menu_items: dict[int, MenuItemRecord] = {}
        self.orders: dict[int, OrderRow] = {}
        self.lines: dict[int, OrderLineRow] = {}

        self._next_order_id = 1
        self._next_line_id = 1
        self._line_inserts = 0
        self._snapshot: Optional[dict[str, Any]] = None

        # Observability for tests
        self.commits = 0
        self.rollbacks = 0
        self.locked_menu_items: list[int] = []

    @property
    def provider_name(self) -> str:
        return "memory"

    @property
    def in_transaction(self) -> bool:
        return self._snapshot is not None

    # =========================================================================
    # SEEDING
    # =========================================================================

    def add_customer(self, customer: CustomerRecord) -> None:
        self.customers[customer.id] = customer

    def add_restaurant(self, restaurant: RestaurantRecord) -> None:
        self.restaurants[restaurant.id] = restaurant

    def add_menu_item(self, item: MenuItemRecord) -> None:
        self.menu_items[item.id] = item

    def lines_for(self, order_id: int) -> list[OrderLineRow]:
        return [line for line in self.lines.values() if line.order_id == order_id]

    # =========================================================================
    # TRANSACTION CONTROL
    # =========================================================================

    async def begin(self) -> None:
        if self.in_transaction:
            raise StoreFault("Transaction already in progress")
        self._snapshot = {
            "customers": copy.deepcopy(self.customers),
            "restaurants": copy.deepcopy(self.restaurants),
            "menu_items": copy.deepcopy(self.menu_items),
            "orders": copy.deepcopy(self.orders),
            "lines": copy.deepcopy(self.lines),
            "next_order_id": self._next_order_id,
            "next_line_id": self._next_line_id,
        }
        self._line_inserts = 0
        self.locked_menu_items = []

    async def commit(self) -> None:
        if self.fail_on_commit:
            raise StoreFault("Connection lost during commit")
        self._snapshot = None
        self.commits += 1

    async def rollback(self) -> None:
        if self._snapshot is None:
            return
        snapshot = self._snapshot
        self.customers = snapshot["customers"]
        self.restaurants = snapshot["restaurants"]
        self.menu_items = snapshot["menu_items"]
        self.orders = snapshot["orders"]
        self.lines = snapshot["lines"]
        self._next_order_id = snapshot["next_order_id"]
        self._next_line_id = snapshot["next_line_id"]
        self._snapshot = None
        self.rollbacks += 1
        logger.debug("Memory store rolled back")

    # =========================================================================
    # LOOKUPS
    # =========================================================================

    async def get_customer(self, customer_id: int) -> Optional[CustomerRecord]:
        return self.customers.get(customer_id)

    async def get_restaurant(self, restaurant_id: int) -> Optional[RestaurantRecord]:
        restaurant = self.restaurants.get(restaurant_id)
        if restaurant is None or not restaurant.is_active:
            return None
        return restaurant

    async def get_menu_item(
        self,
        menu_item_id: int,
        lock: bool = False,
    ) -> Optional[MenuItemRecord]:
        item = self.menu_items.get(menu_item_id)
        if item is not None and lock:
            self.locked_menu_items.append(menu_item_id)
        return copy.copy(item)

    async def get_order(self, order_id: int, lock: bool = False) -> Optional[OrderRecord]:
        row = self.orders.get(order_id)
        if row is None:
            return None
        return OrderRecord(
            id=row.id,
            customer_id=row.customer_id,
            restaurant_id=row.restaurant_id,
            status=row.status,
            total_amount=row.total_amount,
        )

    # =========================================================================
    # WRITES
    # =========================================================================

    async def insert_order(
        self,
        customer_id: int,
        restaurant_id: int,
        total: Decimal,
        address: Optional[str],
        instructions: Optional[str],
    ) -> int:
        order_id = self._next_order_id
        self._next_order_id += 1
        self.orders[order_id] = OrderRow(
            id=order_id,
            customer_id=customer_id,
            restaurant_id=restaurant_id,
            status=OrderStatus.PENDING,
            total_amount=total,
            delivery_address=address,
            special_instructions=instructions,
        )
        return order_id

    async def insert_order_line(
        self,
        order_id: int,
        menu_item_id: int,
        quantity: int,
        unit_price: Decimal,
        special_request: Optional[str],
    ) -> int:
        self._line_inserts += 1
        if self.fail_on_line_insert is not None and self._line_inserts >= self.fail_on_line_insert:
            raise StoreFault(f"Connection lost while inserting line {self._line_inserts}")
        if order_id not in self.orders:
            raise StoreFault(f"Order #{order_id} does not exist")

        line_id = self._next_line_id
        self._next_line_id += 1
        self.lines[line_id] = OrderLineRow(
            id=line_id,
            order_id=order_id,
            menu_item_id=menu_item_id,
            quantity=quantity,
            unit_price=unit_price,
            subtotal=unit_price * quantity,
            special_requests=special_request,
        )
        return line_id

    async def update_order_status(self, order_id: int, status: OrderStatus) -> None:
        self.orders[order_id].status = status
