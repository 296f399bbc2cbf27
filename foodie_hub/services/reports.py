"""
Read-Only Order Queries and Reports

Queries behind the listing and reporting endpoints:
- Order detail and filtered order lists
- Recent orders with item counts
- Customer order history
- Popular menu items
- Sales report per menu item (+ Excel export)

Cancelled orders never count towards popularity or sales.
Nothing here writes, and nothing is cached: every call hits the database.

Version: 1.0.0
"""

import io
import logging
import math
from datetime import datetime
from typing import Any, Optional

import pandas as pd
from sqlalchemy import and_, case, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from foodie_hub.models import MenuItem, Order, OrderLine, OrderStatus, Restaurant

logger = logging.getLogger(__name__)

SALES_REPORT_COLUMNS = [
    "menu_item_id",
    "menu_item_name",
    "category",
    "restaurant_name",
    "total_quantity",
    "total_revenue",
    "unique_orders",
    "avg_unit_price",
]


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0


def _money(value: Any) -> float:
    return round(float(value or 0), 2)


# =============================================================================
# ORDERS
# =============================================================================

async def get_order_detail(db: AsyncSession, order_id: int) -> Optional[Order]:
    """Load an order with its customer, restaurant and lines (with menu item names)."""
    result = await db.execute(
        select(Order)
        .where(Order.id == order_id)
        .options(
            selectinload(Order.customer),
            selectinload(Order.restaurant),
            selectinload(Order.lines).selectinload(OrderLine.menu_item),
        )
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def list_orders(
    db: AsyncSession,
    page: int = 1,
    limit: int = 10,
    status: Optional[OrderStatus] = None,
    customer_id: Optional[int] = None,
    restaurant_id: Optional[int] = None,
) -> tuple[list[Order], int]:
    """
    Newest-first page of orders, optionally filtered.

    Returns:
        (orders on the page, total number of matching orders)
    """
    filters = []
    if status is not None:
        filters.append(Order.status == status)
    if customer_id is not None:
        filters.append(Order.customer_id == customer_id)
    if restaurant_id is not None:
        filters.append(Order.restaurant_id == restaurant_id)

    count_result = await db.execute(select(func.count(Order.id)).where(*filters))
    total = count_result.scalar() or 0

    result = await db.execute(
        select(Order)
        .where(*filters)
        .options(selectinload(Order.customer), selectinload(Order.restaurant))
        .order_by(Order.created_at.desc(), Order.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all()), total


async def all_orders_for(
    db: AsyncSession,
    status: Optional[OrderStatus] = None,
    customer_id: Optional[int] = None,
    restaurant_id: Optional[int] = None,
) -> list[Order]:
    """Every matching order, newest first (no pagination)."""
    query = (
        select(Order)
        .options(selectinload(Order.customer), selectinload(Order.restaurant))
        .order_by(Order.created_at.desc(), Order.id.desc())
        .execution_options(populate_existing=True)
    )
    if status is not None:
        query = query.where(Order.status == status)
    if customer_id is not None:
        query = query.where(Order.customer_id == customer_id)
    if restaurant_id is not None:
        query = query.where(Order.restaurant_id == restaurant_id)

    result = await db.execute(query)
    return list(result.scalars().all())


async def recent_orders(db: AsyncSession, limit: int = 10) -> list[tuple[Order, int]]:
    """Most recent orders paired with their number of lines."""
    item_count = (
        select(func.count(OrderLine.id))
        .where(OrderLine.order_id == Order.id)
        .correlate(Order)
        .scalar_subquery()
    )
    result = await db.execute(
        select(Order, item_count.label("item_count"))
        .options(selectinload(Order.customer), selectinload(Order.restaurant))
        .order_by(Order.created_at.desc(), Order.id.desc())
        .limit(limit)
        .execution_options(populate_existing=True)
    )
    return [(order, count or 0) for order, count in result.all()]


async def customer_order_history(db: AsyncSession, customer_id: int) -> list[dict[str, Any]]:
    """Orders of a customer with per-order line counts and quantities."""
    result = await db.execute(
        select(
            Order.id,
            Order.restaurant_id,
            Restaurant.name.label("restaurant_name"),
            Restaurant.cuisine_type,
            Order.status,
            Order.total_amount,
            Order.created_at,
            func.count(OrderLine.id).label("total_items"),
            func.coalesce(func.sum(OrderLine.quantity), 0).label("total_quantity"),
        )
        .join(Restaurant, Order.restaurant_id == Restaurant.id)
        .outerjoin(OrderLine, OrderLine.order_id == Order.id)
        .where(Order.customer_id == customer_id)
        .group_by(
            Order.id,
            Order.restaurant_id,
            Restaurant.name,
            Restaurant.cuisine_type,
            Order.status,
            Order.total_amount,
            Order.created_at,
        )
        .order_by(Order.created_at.desc(), Order.id.desc())
    )
    return [
        {
            **row._asdict(),
            "total_amount": _money(row.total_amount),
            "total_quantity": int(row.total_quantity),
        }
        for row in result.all()
    ]


# =============================================================================
# MENU POPULARITY
# =============================================================================

async def popular_menu_items(
    db: AsyncSession,
    limit: int = 10,
    include_unordered: bool = False,
) -> list[dict[str, Any]]:
    """
    Available menu items ranked by quantity ordered.

    Args:
        limit: Number of items to return
        include_unordered: Also rank items nobody has ordered yet (at 0)
    """
    total_ordered = func.coalesce(
        func.sum(case((Order.id.is_not(None), OrderLine.quantity), else_=0)),
        0,
    )
    order_count = func.count(func.distinct(Order.id))

    query = (
        select(
            MenuItem.id,
            MenuItem.name,
            MenuItem.description,
            MenuItem.price,
            MenuItem.category,
            Restaurant.name.label("restaurant_name"),
            total_ordered.label("total_ordered"),
            order_count.label("order_count"),
        )
        .join(Restaurant, MenuItem.restaurant_id == Restaurant.id)
        .outerjoin(OrderLine, OrderLine.menu_item_id == MenuItem.id)
        .outerjoin(
            Order,
            and_(Order.id == OrderLine.order_id, Order.status != OrderStatus.CANCELLED),
        )
        .where(MenuItem.is_available.is_(True), Restaurant.is_active.is_(True))
        .group_by(
            MenuItem.id,
            MenuItem.name,
            MenuItem.description,
            MenuItem.price,
            MenuItem.category,
            Restaurant.name,
        )
        .order_by(total_ordered.desc(), order_count.desc(), MenuItem.name)
        .limit(limit)
    )
    if not include_unordered:
        query = query.having(order_count > 0)

    result = await db.execute(query)
    return [
        {
            **row._asdict(),
            "price": _money(row.price),
            "total_ordered": int(row.total_ordered),
        }
        for row in result.all()
    ]


# =============================================================================
# SALES REPORT
# =============================================================================

async def sales_report(
    db: AsyncSession,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> list[dict[str, Any]]:
    """Per menu item quantity, revenue, distinct orders and average unit price."""
    query = (
        select(
            MenuItem.id.label("menu_item_id"),
            MenuItem.name.label("menu_item_name"),
            MenuItem.category,
            Restaurant.name.label("restaurant_name"),
            func.sum(OrderLine.quantity).label("total_quantity"),
            func.sum(OrderLine.subtotal).label("total_revenue"),
            func.count(func.distinct(OrderLine.order_id)).label("unique_orders"),
            func.avg(OrderLine.unit_price).label("avg_unit_price"),
        )
        .select_from(OrderLine)
        .join(MenuItem, OrderLine.menu_item_id == MenuItem.id)
        .join(Restaurant, MenuItem.restaurant_id == Restaurant.id)
        .join(Order, OrderLine.order_id == Order.id)
        .where(Order.status != OrderStatus.CANCELLED)
    )
    if start_date is not None:
        query = query.where(Order.created_at >= start_date)
    if end_date is not None:
        query = query.where(Order.created_at <= end_date)

    query = query.group_by(
        MenuItem.id,
        MenuItem.name,
        MenuItem.category,
        Restaurant.name,
    ).order_by(desc("total_revenue"), desc("total_quantity"))

    result = await db.execute(query)
    rows = [
        {
            **row._asdict(),
            "total_quantity": int(row.total_quantity or 0),
            "total_revenue": _money(row.total_revenue),
            "avg_unit_price": _money(row.avg_unit_price),
        }
        for row in result.all()
    ]
    logger.debug(f"Sales report: {len(rows)} menu item(s)")
    return rows


def sales_report_workbook(rows: list[dict[str, Any]]) -> bytes:
    """Render sales report rows as an .xlsx workbook."""
    df = pd.DataFrame(rows, columns=SALES_REPORT_COLUMNS)

    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name="Sales Report", index=False)
    return buffer.getvalue()
