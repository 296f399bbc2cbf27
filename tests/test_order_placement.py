"""
Order placement against the in-memory store: validation order, pricing
and all-or-nothing persistence.
"""

from decimal import Decimal

import pytest

from foodie_hub.core.exceptions import InvalidInput, InvalidState, NotFound, TransactionFailure
from foodie_hub.models import OrderStatus
from foodie_hub.schemas import OrderCreate, OrderItemCreate
from foodie_hub.services.orders import PricedLine, compute_total, place_order


def make_order(items, customer_id=1, restaurant_id=1, **extra) -> OrderCreate:
    return OrderCreate(
        customer_id=customer_id,
        restaurant_id=restaurant_id,
        items=[OrderItemCreate(menu_item_id=m, quantity=q) for m, q in items],
        **extra,
    )


def assert_empty(store):
    assert store.orders == {}
    assert store.lines == {}


# =============================================================================
# HAPPY PATH
# =============================================================================

async def test_single_line_order_is_priced_from_catalog(memory_store):
    placed = await place_order(memory_store, make_order([(1, 3)]))

    assert placed.total_amount == Decimal("30.00")
    assert placed.status == OrderStatus.PENDING

    row = memory_store.orders[placed.order_id]
    assert row.total_amount == Decimal("30.00")
    assert row.status == OrderStatus.PENDING

    lines = memory_store.lines_for(placed.order_id)
    assert len(lines) == 1
    assert lines[0].unit_price == Decimal("10.00")
    assert lines[0].subtotal == Decimal("30.00")
    assert memory_store.commits == 1


async def test_total_is_sum_of_line_subtotals(make_store):
    store = make_store()
    store.menu_items[2].is_available = True

    placed = await place_order(store, make_order([(1, 2), (2, 3)]))

    lines = store.lines_for(placed.order_id)
    assert [line.subtotal for line in lines] == [Decimal("20.00"), Decimal("15.00")]
    assert placed.total_amount == sum(line.subtotal for line in lines) == Decimal("35.00")


async def test_repeated_item_gets_separate_lines(memory_store):
    placed = await place_order(memory_store, make_order([(1, 1), (1, 2)]))

    lines = memory_store.lines_for(placed.order_id)
    assert [line.quantity for line in lines] == [1, 2]
    assert placed.total_amount == Decimal("30.00")


async def test_delivery_address_defaults_to_customer_address(memory_store):
    placed = await place_order(memory_store, make_order([(1, 1)]))
    assert memory_store.orders[placed.order_id].delivery_address == "350 Fifth Avenue"

    placed = await place_order(memory_store, make_order([(1, 1)], delivery_address="1 Other Rd"))
    assert memory_store.orders[placed.order_id].delivery_address == "1 Other Rd"


async def test_menu_items_are_read_with_lock(memory_store):
    await place_order(memory_store, make_order([(1, 1), (1, 1)]))
    assert memory_store.locked_menu_items == [1, 1]


async def test_later_price_change_does_not_touch_placed_order(memory_store):
    placed = await place_order(memory_store, make_order([(1, 2)]))

    memory_store.menu_items[1].price = Decimal("99.00")

    line = memory_store.lines_for(placed.order_id)[0]
    assert line.unit_price == Decimal("10.00")
    assert memory_store.orders[placed.order_id].total_amount == Decimal("20.00")


def test_compute_total_rounds_to_cents():
    lines = [
        PricedLine(menu_item_id=1, quantity=3, unit_price=Decimal("0.10")),
        PricedLine(menu_item_id=2, quantity=1, unit_price=Decimal("14.99")),
    ]
    assert compute_total(lines) == Decimal("15.29")
    assert compute_total([]) == Decimal("0.00")


# =============================================================================
# VALIDATION
# =============================================================================

async def test_unavailable_item_rejects_whole_order(memory_store):
    with pytest.raises(InvalidState) as exc_info:
        await place_order(memory_store, make_order([(1, 2), (2, 1)]))

    assert exc_info.value.code == "unavailable_item"
    assert '"B"' in exc_info.value.message
    assert_empty(memory_store)
    assert memory_store.rollbacks == 1
    assert memory_store.commits == 0


async def test_cross_restaurant_item_is_rejected(memory_store):
    with pytest.raises(InvalidState) as exc_info:
        await place_order(memory_store, make_order([(1, 1), (3, 1)]))

    assert exc_info.value.code == "cross_restaurant_item"
    assert_empty(memory_store)


@pytest.mark.parametrize(
    "order_kwargs, resource",
    [
        ({"customer_id": 42}, "customer"),
        ({"restaurant_id": 42}, "restaurant"),
        ({"restaurant_id": 3}, "restaurant"),
    ],
)
async def test_missing_references_are_not_found(memory_store, order_kwargs, resource):
    with pytest.raises(NotFound) as exc_info:
        await place_order(memory_store, make_order([(1, 1)], **order_kwargs))

    assert exc_info.value.code == f"{resource}_not_found"
    assert_empty(memory_store)


async def test_missing_menu_item_is_not_found(memory_store):
    with pytest.raises(NotFound) as exc_info:
        await place_order(memory_store, make_order([(1, 1), (404, 1)]))

    assert exc_info.value.code == "menu_item_not_found"
    assert "404" in exc_info.value.message
    assert_empty(memory_store)


async def test_customer_is_checked_before_restaurant(memory_store):
    with pytest.raises(NotFound) as exc_info:
        await place_order(memory_store, make_order([(1, 1)], customer_id=42, restaurant_id=42))
    assert exc_info.value.code == "customer_not_found"


async def test_first_bad_line_decides_the_error(memory_store):
    # B (unavailable) comes before the missing item
    with pytest.raises(InvalidState):
        await place_order(memory_store, make_order([(2, 1), (404, 1)]))


@pytest.mark.parametrize("quantity", [0, -1, 100, 2**63])
async def test_out_of_range_quantity_is_rejected_before_any_transaction(memory_store, quantity):
    with pytest.raises(InvalidInput):
        await place_order(memory_store, make_order([(1, 1), (1, quantity)], customer_id=42))

    assert memory_store.rollbacks == 0
    assert memory_store.locked_menu_items == []
    assert_empty(memory_store)


@pytest.mark.parametrize(
    "items, label",
    [
        ([(1, 2)], "Subtotal of menu item 1"),
        ([(1, 1), (1, 1)], "Order total"),
    ],
)
async def test_amount_beyond_money_range_rolls_back(memory_store, items, label):
    memory_store.menu_items[1].price = Decimal("60000000.00")

    with pytest.raises(InvalidInput) as exc_info:
        await place_order(memory_store, make_order(items))

    assert label in exc_info.value.message
    assert_empty(memory_store)
    assert memory_store.rollbacks == 1
    assert memory_store.commits == 0


async def test_empty_items_is_invalid_input(memory_store):
    with pytest.raises(InvalidInput):
        await place_order(memory_store, make_order([]))
    assert_empty(memory_store)


# =============================================================================
# STORE FAULTS
# =============================================================================

async def test_fault_on_second_line_rolls_back_header_and_first_line(make_store):
    store = make_store(fail_on_line_insert=2)

    with pytest.raises(TransactionFailure):
        await place_order(store, make_order([(1, 1), (1, 2)]))

    assert_empty(store)
    assert store.rollbacks == 1


async def test_fault_on_commit_leaves_nothing(make_store):
    store = make_store(fail_on_commit=True)

    with pytest.raises(TransactionFailure):
        await place_order(store, make_order([(1, 1)]))

    assert_empty(store)


async def test_store_is_usable_after_a_failed_order(memory_store):
    with pytest.raises(InvalidState):
        await place_order(memory_store, make_order([(2, 1)]))

    placed = await place_order(memory_store, make_order([(1, 1)]))
    assert placed.order_id == 1
    assert len(memory_store.orders) == 1
