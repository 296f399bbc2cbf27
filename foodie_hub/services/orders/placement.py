"""
Order Placement Workflow

Validates a proposed order, prices it against the catalog and persists the
header and its lines in one unit of work.

Flow:
    1. Shape checks (no store access): at least one line, quantities 1..99
    2. Inside the transaction, in this order, failing fast:
         customer exists -> restaurant exists and is active ->
         for each line: item exists, is available, belongs to the restaurant
    3. Price every line from the same in-transaction read (price snapshot);
       subtotals and total must fit the money columns
    4. Insert header (status pending) and lines, commit

Any failure after the transaction has started rolls back everything, so
callers see either a complete order or no order at all.

Version: 1.0.0
"""

import logging
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from foodie_hub.core.exceptions import InvalidInput, InvalidState, NotFound
from foodie_hub.models import MAX_AMOUNT, OrderStatus
from foodie_hub.schemas import OrderCreate, OrderItemCreate
from foodie_hub.services.store.base import BaseOrderStore, MenuItemRecord

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")
MAX_QUANTITY = 99


@dataclass
class PricedLine:
    """A validated order line with its price snapshot."""
    menu_item_id: int
    quantity: int
    unit_price: Decimal
    special_requests: Optional[str] = None
    line_id: Optional[int] = None

    @property
    def subtotal(self) -> Decimal:
        return (self.unit_price * self.quantity).quantize(CENTS, rounding=ROUND_HALF_UP)


@dataclass
class PlacedOrder:
    """Result of a committed order placement."""
    order_id: int
    customer_id: int
    restaurant_id: int
    total_amount: Decimal
    status: OrderStatus = OrderStatus.PENDING
    delivery_address: Optional[str] = None
    lines: list[PricedLine] = field(default_factory=list)


def compute_total(lines: list[PricedLine]) -> Decimal:
    """Order total: sum of the line subtotals, in cents."""
    total = sum((line.subtotal for line in lines), Decimal("0"))
    return total.quantize(CENTS, rounding=ROUND_HALF_UP)


def validate_order_shape(order: OrderCreate) -> None:
    """
    Check the request fields that need no store access.

    Raises:
        InvalidInput: no items, or a quantity outside 1..MAX_QUANTITY
    """
    if not order.items:
        raise InvalidInput("An order needs at least one item")

    for position, item in enumerate(order.items, start=1):
        if not 1 <= item.quantity <= MAX_QUANTITY:
            raise InvalidInput(
                f"Item {position} (menu item {item.menu_item_id}): "
                f"quantity must be an integer between 1 and {MAX_QUANTITY}"
            )


def check_amount(amount: Decimal, label: str) -> None:
    """Refuse amounts a MONEY column cannot store."""
    if amount > MAX_AMOUNT:
        raise InvalidInput(f"{label} {amount} exceeds the maximum of {MAX_AMOUNT}")


def check_line(menu_item: Optional[MenuItemRecord], item: OrderItemCreate, restaurant_id: int) -> MenuItemRecord:
    """Apply the per-line rules to a menu item read inside the transaction."""
    if menu_item is None:
        raise NotFound("menu_item", f"Menu item {item.menu_item_id} not found")

    if not menu_item.is_available:
        raise InvalidState(
            "unavailable_item",
            f'Menu item "{menu_item.name}" is currently unavailable',
        )

    if menu_item.restaurant_id != restaurant_id:
        raise InvalidState(
            "cross_restaurant_item",
            f'Menu item "{menu_item.name}" does not belong to the selected restaurant',
        )

    return menu_item


async def place_order(store: BaseOrderStore, order: OrderCreate) -> PlacedOrder:
    """
    Place an order atomically.

    Args:
        store: Store the unit of work runs against
        order: Validated request body

    Returns:
        PlacedOrder: the committed header and its priced lines

    Raises:
        InvalidInput: malformed items (before any transaction), or a
            subtotal or total too large to store
        NotFound: customer, restaurant or menu item missing
        InvalidState: unavailable or cross-restaurant item
        TransactionFailure: store fault; nothing was persisted
    """
    validate_order_shape(order)

    async with store.transaction():
        customer = await store.get_customer(order.customer_id)
        if customer is None:
            raise NotFound("customer")

        restaurant = await store.get_restaurant(order.restaurant_id)
        if restaurant is None:
            raise NotFound("restaurant")

        priced: list[PricedLine] = []
        for item in order.items:
            menu_item = await store.get_menu_item(item.menu_item_id, lock=True)
            menu_item = check_line(menu_item, item, restaurant.id)
            priced.append(
                PricedLine(
                    menu_item_id=menu_item.id,
                    quantity=item.quantity,
                    unit_price=Decimal(menu_item.price).quantize(CENTS, rounding=ROUND_HALF_UP),
                    special_requests=item.special_requests,
                )
            )
            check_amount(priced[-1].subtotal, f"Subtotal of menu item {menu_item.id}")

        total = compute_total(priced)
        check_amount(total, "Order total")
        address = order.delivery_address or customer.address

        order_id = await store.insert_order(
            customer_id=customer.id,
            restaurant_id=restaurant.id,
            total=total,
            address=address,
            instructions=order.special_instructions,
        )
        for line in priced:
            line.line_id = await store.insert_order_line(
                order_id=order_id,
                menu_item_id=line.menu_item_id,
                quantity=line.quantity,
                unit_price=line.unit_price,
                special_request=line.special_requests,
            )

    logger.info(
        f"✅ Order #{order_id} placed: customer #{customer.id}, "
        f"restaurant #{restaurant.id}, {len(priced)} line(s), total {total}"
    )

    return PlacedOrder(
        order_id=order_id,
        customer_id=customer.id,
        restaurant_id=restaurant.id,
        total_amount=total,
        delivery_address=address,
        lines=priced,
    )
