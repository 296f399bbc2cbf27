"""
Order Status Lifecycle

    pending -> confirmed -> preparing -> ready -> delivered
                                                  cancelled

Any of the six statuses can be set while the order is not terminal; the
chain above is the usual progression, not an enforced one. delivered and
cancelled are terminal: no transition leaves them.
"""

import logging
from typing import Union

from foodie_hub.core.exceptions import InvalidInput, InvalidState, NotFound
from foodie_hub.models import OrderStatus
from foodie_hub.services.store.base import BaseOrderStore, OrderRecord

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})

ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    status: frozenset() if status in TERMINAL_STATUSES else frozenset(OrderStatus)
    for status in OrderStatus
}


def parse_status(value: Union[str, OrderStatus, None]) -> OrderStatus:
    """
    Convert a client-supplied value to an OrderStatus.

    Raises:
        InvalidInput: value is not one of the six statuses
    """
    if isinstance(value, OrderStatus):
        return value
    try:
        return OrderStatus(value)
    except ValueError:
        valid = ", ".join(s.value for s in OrderStatus)
        raise InvalidInput(f"Status must be one of: {valid}")


def is_terminal(status: OrderStatus) -> bool:
    return status in TERMINAL_STATUSES


def check_transition(current: OrderStatus, target: OrderStatus) -> None:
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidState(
            "terminal_order",
            f"Order is already {current.value} and can no longer change",
        )


async def change_status(
    store: BaseOrderStore,
    order_id: int,
    status: Union[str, OrderStatus, None],
) -> OrderRecord:
    """
    Set the status of an order.

    Raises:
        InvalidInput: unknown status value
        NotFound: order does not exist
        InvalidState: order is delivered or cancelled
    """
    target = parse_status(status)

    async with store.transaction():
        order = await store.get_order(order_id, lock=True)
        if order is None:
            raise NotFound("order", f"Order #{order_id} not found")

        check_transition(order.status, target)
        await store.update_order_status(order_id, target)

    logger.info(f"Order #{order_id}: {order.status.value} -> {target.value}")
    order.status = target
    return order


async def cancel_order(store: BaseOrderStore, order_id: int) -> OrderRecord:
    """
    Cancel an order that has not reached a terminal state.

    The order and its lines are kept; only the status changes.

    Raises:
        NotFound: order does not exist
        InvalidState: order is delivered or already cancelled
    """
    async with store.transaction():
        order = await store.get_order(order_id, lock=True)
        if order is None:
            raise NotFound("order", f"Order #{order_id} not found")

        if is_terminal(order.status):
            raise InvalidState(
                "terminal_order",
                f"Cannot cancel order with status: {order.status.value}",
            )
        await store.update_order_status(order_id, OrderStatus.CANCELLED)

    logger.info(f"Order #{order_id} cancelled (was {order.status.value})")
    order.status = OrderStatus.CANCELLED
    return order
