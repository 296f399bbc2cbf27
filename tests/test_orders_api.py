"""
Order endpoints end to end over SQLite.
"""

import io

import pandas as pd
import pytest
from sqlalchemy.exc import OperationalError

from foodie_hub.models import Order, OrderLine
from foodie_hub.services.store import SqlAlchemyOrderStore


# =============================================================================
# PLACEMENT
# =============================================================================

async def test_place_order_returns_priced_order(client, catalog):
    response = await client.post(
        "/api/orders",
        json={
            "customerId": catalog["customer"]["id"],
            "restaurantId": catalog["restaurant"]["id"],
            "items": [{"menuItemId": catalog["a"]["id"], "quantity": 3, "specialRequests": "well done"}],
            "specialInstructions": "Ring twice",
        },
    )

    assert response.status_code == 201
    order = response.json()
    assert order["status"] == "pending"
    assert order["total_amount"] == 30.0
    assert order["customer_name"] == "Ana Lopez"
    assert order["restaurant_name"] == "Bella Napoli"
    assert order["delivery_address"] == "350 Fifth Avenue"
    assert order["special_instructions"] == "Ring twice"
    assert len(order["items"]) == 1

    line = order["items"][0]
    assert line["menu_item_name"] == "A"
    assert line["quantity"] == 3
    assert line["unit_price"] == 10.0
    assert line["subtotal"] == 30.0
    assert line["special_requests"] == "well done"


async def test_snake_case_body_is_accepted(client, catalog):
    response = await client.post(
        "/api/orders",
        json={
            "customer_id": catalog["customer"]["id"],
            "restaurant_id": catalog["restaurant"]["id"],
            "items": [{"menu_item_id": catalog["a"]["id"], "quantity": 1}],
        },
    )
    assert response.status_code == 201


async def test_unavailable_item_rejects_order_and_writes_nothing(seed, catalog, count_rows):
    body = await seed.order(
        catalog["customer"]["id"],
        catalog["restaurant"]["id"],
        [{"menuItemId": catalog["a"]["id"], "quantity": 2}, {"menuItemId": catalog["b"]["id"], "quantity": 1}],
        expected=409,
    )

    assert body["error"] == "unavailable_item"
    assert "B" in body["message"]
    assert await count_rows(Order) == 0
    assert await count_rows(OrderLine) == 0


async def test_item_from_another_restaurant_is_conflict(seed, catalog, count_rows):
    other = await seed.restaurant(name="Sushi Go")
    roll = await seed.menu_item(other["id"], name="Roll", price=7.0)

    body = await seed.order(
        catalog["customer"]["id"],
        catalog["restaurant"]["id"],
        [{"menuItemId": roll["id"], "quantity": 1}],
        expected=409,
    )

    assert body["error"] == "cross_restaurant_item"
    assert await count_rows(Order) == 0


@pytest.mark.parametrize(
    "field, value, error",
    [
        ("customerId", 999, "customer_not_found"),
        ("restaurantId", 999, "restaurant_not_found"),
    ],
)
async def test_missing_references_are_404(client, catalog, field, value, error):
    payload = {
        "customerId": catalog["customer"]["id"],
        "restaurantId": catalog["restaurant"]["id"],
        "items": [{"menuItemId": catalog["a"]["id"], "quantity": 1}],
        field: value,
    }
    response = await client.post("/api/orders", json=payload)

    assert response.status_code == 404
    assert response.json()["error"] == error


async def test_missing_menu_item_is_404(seed, catalog):
    body = await seed.order(
        catalog["customer"]["id"],
        catalog["restaurant"]["id"],
        [{"menuItemId": 999, "quantity": 1}],
        expected=404,
    )
    assert body["error"] == "menu_item_not_found"


async def test_soft_deleted_restaurant_takes_no_orders(client, seed, catalog):
    await client.delete(f"/api/restaurants/{catalog['restaurant']['id']}")

    body = await seed.order(
        catalog["customer"]["id"],
        catalog["restaurant"]["id"],
        [{"menuItemId": catalog["a"]["id"], "quantity": 1}],
        expected=404,
    )
    assert body["error"] == "restaurant_not_found"


@pytest.mark.parametrize("quantity", [0, -2])
async def test_non_positive_quantity_is_400(seed, catalog, count_rows, quantity):
    body = await seed.order(
        catalog["customer"]["id"],
        catalog["restaurant"]["id"],
        [{"menuItemId": catalog["a"]["id"], "quantity": quantity}],
        expected=400,
    )
    assert body["error"] == "invalid_input"
    assert await count_rows(Order) == 0


@pytest.mark.parametrize("quantity", [100, 2**63])
async def test_oversized_quantity_is_400(seed, catalog, count_rows, quantity):
    body = await seed.order(
        catalog["customer"]["id"],
        catalog["restaurant"]["id"],
        [{"menuItemId": catalog["a"]["id"], "quantity": quantity}],
        expected=400,
    )
    assert body["error"] == "invalid_input"
    assert "between 1 and 99" in body["message"]
    assert await count_rows(Order) == 0
    assert await count_rows(OrderLine) == 0


async def test_total_beyond_money_range_is_400(seed, catalog, count_rows):
    banquet = await seed.menu_item(catalog["restaurant"]["id"], name="Banquet", price=60000000.0)

    body = await seed.order(
        catalog["customer"]["id"],
        catalog["restaurant"]["id"],
        [{"menuItemId": banquet["id"], "quantity": 1}, {"menuItemId": banquet["id"], "quantity": 1}],
        expected=400,
    )

    assert body["error"] == "invalid_input"
    assert "Order total" in body["message"]
    assert await count_rows(Order) == 0
    assert await count_rows(OrderLine) == 0


@pytest.mark.parametrize(
    "payload",
    [
        {"restaurantId": 1, "items": [{"menuItemId": 1, "quantity": 1}]},
        {"customerId": 1, "restaurantId": 1, "items": []},
        {"customerId": 1, "restaurantId": 1, "items": [{"menuItemId": 1, "quantity": "lots"}]},
        {"customerId": 1, "restaurantId": 1, "items": [{"menuItemId": 1, "quantity": True}]},
        {"customerId": 1, "restaurantId": 1, "items": [{"menuItemId": 1, "quantity": "2"}]},
        {"customerId": 1, "restaurantId": 1, "items": [{"menuItemId": 1, "quantity": 2.0}]},
    ],
)
async def test_malformed_body_is_400(client, catalog, payload):
    response = await client.post("/api/orders", json=payload)

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_input"


async def test_store_fault_mid_order_rolls_back(client, catalog, count_rows, monkeypatch):
    original = SqlAlchemyOrderStore.insert_order_line
    calls = {"n": 0}

    async def flaky_insert(self, *args, **kwargs):
        calls["n"] += 1
        if calls["n"] == 2:
            raise OperationalError("INSERT INTO order_items", {}, ConnectionError("connection lost"))
        return await original(self, *args, **kwargs)

    monkeypatch.setattr(SqlAlchemyOrderStore, "insert_order_line", flaky_insert)

    response = await client.post(
        "/api/orders",
        json={
            "customerId": catalog["customer"]["id"],
            "restaurantId": catalog["restaurant"]["id"],
            "items": [
                {"menuItemId": catalog["a"]["id"], "quantity": 1},
                {"menuItemId": catalog["a"]["id"], "quantity": 2},
            ],
        },
    )

    assert response.status_code == 500
    assert response.json()["error"] == "transaction_failure"
    assert await count_rows(Order) == 0
    assert await count_rows(OrderLine) == 0


# =============================================================================
# LIFECYCLE
# =============================================================================

@pytest.fixture
async def order(seed, catalog):
    return await seed.order(
        catalog["customer"]["id"],
        catalog["restaurant"]["id"],
        [{"menuItemId": catalog["a"]["id"], "quantity": 2}],
    )


async def test_status_walks_forward(client, order):
    for status in ("confirmed", "preparing", "ready", "delivered"):
        response = await client.patch(f"/api/orders/{order['id']}/status", json={"status": status})
        assert response.status_code == 200
        assert response.json()["status"] == status


@pytest.mark.parametrize("status", ["pending", "preparing", "delivered", "cancelled"])
async def test_any_status_can_be_set_on_a_live_order(client, order, status):
    response = await client.patch(f"/api/orders/{order['id']}/status", json={"status": status})

    assert response.status_code == 200
    assert response.json()["status"] == status


async def test_terminal_order_status_change_is_409(client, order):
    await client.patch(f"/api/orders/{order['id']}/status", json={"status": "delivered"})

    response = await client.patch(f"/api/orders/{order['id']}/status", json={"status": "pending"})

    assert response.status_code == 409
    assert response.json()["error"] == "terminal_order"


async def test_unknown_status_is_400(client, order):
    response = await client.patch(f"/api/orders/{order['id']}/status", json={"status": "shipped"})

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_input"


async def test_status_of_missing_order_is_404(client, catalog):
    response = await client.patch("/api/orders/999/status", json={"status": "confirmed"})

    assert response.status_code == 404
    assert response.json()["error"] == "order_not_found"


async def test_delete_cancels_and_keeps_lines(client, order, count_rows):
    response = await client.delete(f"/api/orders/{order['id']}")

    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"
    assert len(response.json()["items"]) == 1
    assert await count_rows(OrderLine) == 1

    again = await client.delete(f"/api/orders/{order['id']}")
    assert again.status_code == 409
    assert again.json()["error"] == "terminal_order"

    detail = await client.get(f"/api/orders/{order['id']}")
    assert detail.status_code == 200
    assert detail.json()["status"] == "cancelled"
    assert len(detail.json()["items"]) == 1


async def test_delivered_order_cannot_be_cancelled(client, order):
    for status in ("confirmed", "preparing", "ready", "delivered"):
        await client.patch(f"/api/orders/{order['id']}/status", json={"status": status})

    response = await client.delete(f"/api/orders/{order['id']}")

    assert response.status_code == 409
    detail = await client.get(f"/api/orders/{order['id']}")
    assert detail.json()["status"] == "delivered"


# =============================================================================
# READS
# =============================================================================

async def test_get_order_is_stable(client, order):
    first = await client.get(f"/api/orders/{order['id']}")
    second = await client.get(f"/api/orders/{order['id']}")

    assert first.status_code == 200
    assert first.json() == second.json()
    assert first.json()["total_amount"] == 20.0


async def test_missing_order_is_404(client):
    response = await client.get("/api/orders/12345")

    assert response.status_code == 404
    assert response.json() == {"error": "order_not_found", "message": "Order #12345 not found"}


async def test_price_change_does_not_rewrite_history(client, order, catalog):
    response = await client.put(f"/api/menu/{catalog['a']['id']}", json={"price": 12.5})
    assert response.status_code == 200
    assert response.json()["price"] == 12.5

    detail = (await client.get(f"/api/orders/{order['id']}")).json()
    assert detail["items"][0]["unit_price"] == 10.0
    assert detail["total_amount"] == 20.0


async def test_list_orders_paginates_and_filters(client, seed, catalog):
    ids = []
    for quantity in (1, 2, 3):
        placed = await seed.order(
            catalog["customer"]["id"],
            catalog["restaurant"]["id"],
            [{"menuItemId": catalog["a"]["id"], "quantity": quantity}],
        )
        ids.append(placed["id"])
    await client.delete(f"/api/orders/{ids[0]}")

    page = (await client.get("/api/orders", params={"limit": 2})).json()
    assert page["total"] == 3
    assert page["total_pages"] == 2
    assert len(page["orders"]) == 2
    assert page["orders"][0]["id"] == ids[2]

    cancelled = (await client.get("/api/orders", params={"status": "cancelled"})).json()
    assert [o["id"] for o in cancelled["orders"]] == [ids[0]]

    bad = await client.get("/api/orders", params={"status": "lost"})
    assert bad.status_code == 400


async def test_recent_orders_carry_item_count(client, seed, catalog):
    await seed.order(
        catalog["customer"]["id"],
        catalog["restaurant"]["id"],
        [{"menuItemId": catalog["a"]["id"], "quantity": 1}, {"menuItemId": catalog["a"]["id"], "quantity": 4}],
    )

    recent = (await client.get("/api/orders/recent", params={"limit": 5})).json()

    assert len(recent) == 1
    assert recent[0]["item_count"] == 2
    assert recent[0]["total_amount"] == 50.0


async def test_orders_by_customer_and_restaurant(client, order, catalog):
    by_customer = await client.get(f"/api/orders/customer/{catalog['customer']['id']}")
    assert by_customer.status_code == 200
    assert by_customer.json()["customer"] == "Ana Lopez"
    assert [o["id"] for o in by_customer.json()["orders"]] == [order["id"]]

    by_restaurant = await client.get(f"/api/orders/restaurant/{catalog['restaurant']['id']}")
    assert by_restaurant.json()["restaurant"] == "Bella Napoli"
    assert len(by_restaurant.json()["orders"]) == 1

    assert (await client.get("/api/orders/customer/999")).status_code == 404


# =============================================================================
# REPORTS
# =============================================================================

@pytest.fixture
async def sales(client, seed, catalog):
    """Two kept orders of A (2 + 1) and one cancelled order of A (5)."""
    customer, restaurant, a = catalog["customer"]["id"], catalog["restaurant"]["id"], catalog["a"]["id"]
    await seed.order(customer, restaurant, [{"menuItemId": a, "quantity": 2}])
    await seed.order(customer, restaurant, [{"menuItemId": a, "quantity": 1}])
    cancelled = await seed.order(customer, restaurant, [{"menuItemId": a, "quantity": 5}])
    await client.delete(f"/api/orders/{cancelled['id']}")
    return catalog


async def test_sales_report_excludes_cancelled_orders(client, sales):
    report = (await client.get("/api/orders/sales-report")).json()

    assert report["period"] == {"start_date": "All time", "end_date": "All time"}
    assert len(report["report"]) == 1
    row = report["report"][0]
    assert row["menu_item_name"] == "A"
    assert row["total_quantity"] == 3
    assert row["total_revenue"] == 30.0
    assert row["unique_orders"] == 2
    assert row["avg_unit_price"] == 10.0


async def test_sales_report_period_in_the_future_is_empty(client, sales):
    report = (await client.get("/api/orders/sales-report", params={"start_date": "2999-01-01T00:00:00"})).json()
    assert report["report"] == []


async def test_sales_report_export_is_a_workbook(client, sales):
    response = await client.get("/api/orders/sales-report/export")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith(
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    )
    assert "attachment" in response.headers["content-disposition"]

    df = pd.read_excel(io.BytesIO(response.content), engine="openpyxl")
    assert list(df.columns)[:4] == ["menu_item_id", "menu_item_name", "category", "restaurant_name"]
    assert df.loc[0, "total_quantity"] == 3
    assert df.loc[0, "total_revenue"] == 30.0


async def test_popular_items_ignore_cancelled_orders(client, sales):
    popular = (await client.get("/api/orders/popular-menu-items")).json()

    assert [p["name"] for p in popular] == ["A"]
    assert popular[0]["total_ordered"] == 3
    assert popular[0]["order_count"] == 2
