"""
Order Integrity Verification Script

Loads every order and order line from the database and checks that:
    - each line subtotal equals quantity x unit price
    - each order total equals the sum of its line subtotals
    - no order exists without lines

Run from project root: python scripts/verify.py

Version: 1.0.0
"""

import asyncio
from datetime import datetime

import pandas as pd
from sqlalchemy import select

from foodie_hub.database import async_session_maker, engine
from foodie_hub.models import Order, OrderLine


async def load_frames() -> tuple[pd.DataFrame, pd.DataFrame]:
    async with async_session_maker() as session:
        orders = await session.execute(
            select(Order.id, Order.status, Order.total_amount, Order.created_at)
        )
        lines = await session.execute(
            select(OrderLine.order_id, OrderLine.quantity, OrderLine.unit_price, OrderLine.subtotal)
        )
        orders_df = pd.DataFrame(orders.all(), columns=["order_id", "status", "total_amount", "created_at"])
        lines_df = pd.DataFrame(lines.all(), columns=["order_id", "quantity", "unit_price", "subtotal"])
    await engine.dispose()
    return orders_df, lines_df


def verify_orders(orders_df: pd.DataFrame, lines_df: pd.DataFrame) -> bool:
    """Print an integrity report; True when every check passes."""
    print("=" * 60)
    print("🔍 ORDER INTEGRITY REPORT")
    print("=" * 60)
    print(f"⏰ Timestamp: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"📊 Orders: {len(orders_df)}   Lines: {len(lines_df)}")
    print("=" * 60)

    if orders_df.empty:
        print("\n⚠️ No orders found. Run the simulation first: python scripts/simulate.py")
        return True

    ok = True

    # Numeric(10,2) columns come back as Decimal; compare exactly
    bad_lines = lines_df[
        lines_df.apply(lambda row: row["subtotal"] != row["unit_price"] * row["quantity"], axis=1)
    ]
    if not bad_lines.empty:
        ok = False
        print(f"\n❌ {len(bad_lines)} line(s) where subtotal != quantity x unit price")
        print(bad_lines.head(5).to_string(index=False))
    else:
        print("\n✅ Every line subtotal matches quantity x unit price")

    sums = lines_df.groupby("order_id")["subtotal"].sum()
    merged = orders_df.set_index("order_id").join(sums.rename("lines_total"), how="left")

    empty = merged[merged["lines_total"].isna()]
    if not empty.empty:
        ok = False
        print(f"\n❌ {len(empty)} order(s) without lines: {list(empty.index[:10])}")
    else:
        print("✅ Every order has at least one line")

    mismatched = merged[merged["lines_total"].notna() & (merged["total_amount"] != merged["lines_total"])]
    if not mismatched.empty:
        ok = False
        print(f"\n❌ {len(mismatched)} order(s) whose total differs from their lines")
        print(mismatched[["total_amount", "lines_total"]].head(5).to_string())
    else:
        print("✅ Every order total equals the sum of its lines")

    print(f"\n📋 ORDERS BY STATUS:")
    print(orders_df["status"].astype(str).value_counts().to_string())

    print("\n" + "=" * 60)
    print("✅ VERIFICATION PASSED" if ok else "❌ VERIFICATION FAILED")
    print("=" * 60)
    return ok


def main() -> None:
    orders_df, lines_df = asyncio.run(load_frames())
    if not verify_orders(orders_df, lines_df):
        raise SystemExit(1)


if __name__ == "__main__":
    main()
