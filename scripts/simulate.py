"""
Concurrency Simulation Script

Fires concurrent orders at a running API while menu items are toggled
unavailable and back, then checks that every created order is internally
consistent. Orders are either created whole (201) or rejected (409);
anything else is counted as a failure.

Run from project root: python scripts/simulate.py --orders 100

Version: 1.0.0
"""

import argparse
import asyncio
import random
import time
from datetime import datetime
from decimal import Decimal
from typing import Any

import httpx

# Configuration
API_BASE_URL = "http://localhost:3000"
TOTAL_ORDERS = 50
TOTAL_CUSTOMERS = 10

FIRST_NAMES = ["John", "Jane", "Mike", "Sarah", "Tom", "Emma", "David", "Lisa", "Chris", "Amy"]
LAST_NAMES = ["Smith", "Johnson", "Williams", "Brown", "Jones", "Garcia", "Miller", "Davis"]
STREETS = ["Main St", "Broadway", "5th Avenue", "Park Ave", "Madison Ave", "Lexington Ave"]
MENU_ITEMS = [
    {"name": "Pizza Margherita", "price": 14.99, "category": "pizza"},
    {"name": "Pepperoni Pizza", "price": 16.99, "category": "pizza"},
    {"name": "Caesar Salad", "price": 8.99, "category": "salad"},
    {"name": "Garlic Bread", "price": 5.99, "category": "sides"},
    {"name": "Pasta Carbonara", "price": 13.99, "category": "pasta"},
    {"name": "Tiramisu", "price": 7.99, "category": "dessert"},
]


# =============================================================================
# SEEDING
# =============================================================================

async def seed(client: httpx.AsyncClient, num_customers: int) -> dict[str, Any]:
    """Create a restaurant, its menu and a pool of customers."""
    response = await client.post(
        "/api/restaurants",
        json={
            "name": f"Simulation Trattoria {datetime.now().strftime('%H%M%S')}",
            "address": "1 Simulation Plaza",
            "phone": "2125550100",
            "cuisineType": "italian",
        },
    )
    response.raise_for_status()
    restaurant_id = response.json()["id"]

    menu_ids = []
    for item in MENU_ITEMS:
        response = await client.post("/api/menu", json={**item, "restaurantId": restaurant_id})
        response.raise_for_status()
        menu_ids.append(response.json()["id"])

    customer_ids = []
    for _ in range(num_customers):
        response = await client.post(
            "/api/customers",
            json={
                "name": f"{random.choice(FIRST_NAMES)} {random.choice(LAST_NAMES)}",
                "phone": f"555{random.randint(1000000, 9999999)}",
                "address": f"{random.randint(1, 999)} {random.choice(STREETS)}",
            },
        )
        if response.status_code == 201:
            customer_ids.append(response.json()["id"])

    return {"restaurant_id": restaurant_id, "menu_ids": menu_ids, "customer_ids": customer_ids}


# =============================================================================
# LOAD
# =============================================================================

def generate_order_payload(fixture: dict[str, Any]) -> dict[str, Any]:
    items = [
        {"menuItemId": menu_id, "quantity": random.randint(1, 3)}
        for menu_id in random.sample(fixture["menu_ids"], k=random.randint(1, 3))
    ]
    return {
        "customerId": random.choice(fixture["customer_ids"]),
        "restaurantId": fixture["restaurant_id"],
        "items": items,
        "specialInstructions": random.choice([None, "Extra napkins", "Ring doorbell", "Leave at door"]),
    }


async def send_order(client: httpx.AsyncClient, order_num: int, fixture: dict[str, Any]) -> dict[str, Any]:
    start_time = time.time()
    try:
        response = await client.post("/api/orders", json=generate_order_payload(fixture), timeout=30.0)
    except httpx.HTTPError as e:
        return {"order_num": order_num, "outcome": "failed", "error": str(e)[:100], "time": round(time.time() - start_time, 3)}

    elapsed = round(time.time() - start_time, 3)
    if response.status_code == 201:
        data = response.json()
        return {"order_num": order_num, "outcome": "created", "order": data, "time": elapsed}
    if response.status_code == 409:
        return {"order_num": order_num, "outcome": "rejected", "error": response.json().get("error"), "time": elapsed}
    return {"order_num": order_num, "outcome": "failed", "error": response.text[:100], "time": elapsed}


async def toggle_availability(client: httpx.AsyncClient, menu_ids: list[int], rounds: int) -> int:
    """Flip random menu items off and on while orders are in flight."""
    toggles = 0
    for _ in range(rounds):
        menu_id = random.choice(menu_ids)
        await client.patch(f"/api/menu/{menu_id}/toggle-availability")
        await asyncio.sleep(random.uniform(0.0, 0.02))
        await client.patch(f"/api/menu/{menu_id}/toggle-availability")
        toggles += 2
    return toggles


def order_is_consistent(order: dict[str, Any]) -> bool:
    """Total equals the sum of line subtotals; each subtotal is quantity x unit price."""
    total = Decimal(str(order["total_amount"]))
    subtotals = Decimal("0")
    for line in order["items"]:
        subtotal = Decimal(str(line["subtotal"]))
        if subtotal != Decimal(str(line["unit_price"])) * line["quantity"]:
            return False
        subtotals += subtotal
    return bool(order["items"]) and total == subtotals


# =============================================================================
# MAIN SIMULATION RUNNER
# =============================================================================

async def run_simulation(base_url: str, num_orders: int, num_customers: int) -> dict[str, Any]:
    print("=" * 70)
    print("🔥 CONCURRENCY SIMULATION")
    print("=" * 70)
    print(f"📋 Total Orders: {num_orders}")
    print(f"🎯 Target: {base_url}")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    async with httpx.AsyncClient(base_url=base_url, timeout=30.0) as client:
        fixture = await seed(client, num_customers)
        print(f"\n🌱 Seeded restaurant #{fixture['restaurant_id']}, "
              f"{len(fixture['menu_ids'])} menu items, {len(fixture['customer_ids'])} customers")

        print("\n🚀 Firing orders...\n")
        start_time = time.time()
        orders = [send_order(client, i + 1, fixture) for i in range(num_orders)]
        *results, toggles = await asyncio.gather(
            *orders,
            toggle_availability(client, fixture["menu_ids"], rounds=max(1, num_orders // 5)),
        )
        total_time = round(time.time() - start_time, 2)

    created = [r for r in results if r["outcome"] == "created"]
    rejected = [r for r in results if r["outcome"] == "rejected"]
    failed = [r for r in results if r["outcome"] == "failed"]
    inconsistent = [r for r in created if not order_is_consistent(r["order"])]

    print("=" * 70)
    print("📊 SIMULATION RESULTS")
    print("=" * 70)
    print(f"\n✅ Created:   {len(created)}/{num_orders}")
    print(f"🚫 Rejected:  {len(rejected)}/{num_orders} (409, e.g. item toggled unavailable)")
    print(f"❌ Failed:    {len(failed)}/{num_orders}")
    print(f"🔁 Toggles:   {toggles}")
    print(f"⏱️  Total Time: {total_time}s")

    if created:
        avg_time = round(sum(r["time"] for r in created) / len(created), 3)
        revenue = sum(Decimal(str(r["order"]["total_amount"])) for r in created)
        print(f"\n📈 Average Response: {avg_time}s")
        print(f"💰 Total Revenue: ${revenue:.2f}")

    if inconsistent:
        print(f"\n⚠️  {len(inconsistent)} created order(s) with totals not matching their lines!")
    else:
        print("\n✅ Every created order matches its lines")

    if failed:
        print("\n⚠️  Failed Order Details (showing first 5):")
        for f in failed[:5]:
            print(f"   Order #{f['order_num']}: {f.get('error', 'Unknown error')}")

    print("\n" + "=" * 70)
    print("🔍 Next: python scripts/verify.py  (checks every stored order)")
    print("=" * 70)

    return {
        "total": num_orders,
        "created": len(created),
        "rejected": len(rejected),
        "failed": len(failed),
        "inconsistent": len(inconsistent),
        "total_time": total_time,
    }


def main() -> None:
    parser = argparse.ArgumentParser(description="Concurrent order simulation")
    parser.add_argument("--url", default=API_BASE_URL, help="API base URL")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of orders to fire")
    parser.add_argument("--customers", type=int, default=TOTAL_CUSTOMERS, help="Number of customers to seed")
    args = parser.parse_args()

    asyncio.run(run_simulation(args.url, args.orders, args.customers))


if __name__ == "__main__":
    main()
