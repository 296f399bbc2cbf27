"""
Order Workflows

    - placement: validate, price and atomically persist a new order
    - lifecycle: status transitions and cancellation
"""

from foodie_hub.services.orders.lifecycle import (
    ALLOWED_TRANSITIONS,
    TERMINAL_STATUSES,
    cancel_order,
    change_status,
    parse_status,
)
from foodie_hub.services.orders.placement import (
    PlacedOrder,
    PricedLine,
    compute_total,
    place_order,
)

__all__ = [
    "ALLOWED_TRANSITIONS",
    "TERMINAL_STATUSES",
    "cancel_order",
    "change_status",
    "parse_status",
    "PlacedOrder",
    "PricedLine",
    "compute_total",
    "place_order",
]
