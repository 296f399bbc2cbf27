"""
Order Endpoints

    - POST   /api/orders: Place an order (atomic)
    - GET    /api/orders: List orders (pagination, status filter)
    - GET    /api/orders/recent: Most recent orders
    - GET    /api/orders/popular-menu-items: Most ordered menu items
    - GET    /api/orders/sales-report: Sales per menu item
    - GET    /api/orders/sales-report/export: Sales report as .xlsx
    - GET    /api/orders/{id}: Order with lines
    - PATCH  /api/orders/{id}/status: Status transition
    - DELETE /api/orders/{id}: Cancel order
    - GET    /api/orders/customer/{customer_id}: Orders of a customer
    - GET    /api/orders/restaurant/{restaurant_id}: Orders of a restaurant
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status as http_status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from foodie_hub.core.config import get_settings
from foodie_hub.core.exceptions import NotFound
from foodie_hub.database import get_db
from foodie_hub.models import Customer, OrderStatus, Restaurant
from foodie_hub.schemas import (
    CustomerOrdersResponse,
    ErrorResponse,
    OrderCreate,
    OrderListResponse,
    OrderResponse,
    OrderStatusUpdate,
    OrderSummaryResponse,
    PopularMenuItem,
    RecentOrder,
    RestaurantOrdersResponse,
    SalesReportResponse,
    SalesReportRow,
)
from foodie_hub.services import reports
from foodie_hub.services.orders import cancel_order, change_status, parse_status, place_order
from foodie_hub.services.store import BaseOrderStore, get_order_store

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(prefix="/api/orders", tags=["Orders"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def optional_status(status: Optional[str]) -> Optional[OrderStatus]:
    """Parse the ?status= filter; an empty value means no filter."""
    return parse_status(status) if status else None


async def load_order(db: AsyncSession, order_id: int) -> OrderResponse:
    order = await reports.get_order_detail(db, order_id)
    if order is None:
        raise NotFound("order", f"Order #{order_id} not found")
    return OrderResponse.model_validate(order)


# =============================================================================
# WRITES
# =============================================================================

@router.post(
    "",
    response_model=OrderResponse,
    status_code=http_status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
    summary="Place Order",
)
async def create_order(
    order_data: OrderCreate,
    store: BaseOrderStore = Depends(get_order_store),
    db: AsyncSession = Depends(get_db),
) -> OrderResponse:
    """
    Place a new order.

    Prices are taken from the catalog inside the same transaction that
    writes the order; the order and all its lines are created together or
    not at all.
    """
    logger.info(
        f"Placing order: customer #{order_data.customer_id}, "
        f"restaurant #{order_data.restaurant_id}, {len(order_data.items)} item(s)"
    )
    placed = await place_order(store, order_data)
    return await load_order(db, placed.order_id)


@router.patch(
    "/{order_id}/status",
    response_model=OrderResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def update_order_status(
    order_id: int,
    payload: OrderStatusUpdate,
    store: BaseOrderStore = Depends(get_order_store),
    db: AsyncSession = Depends(get_db),
) -> OrderResponse:
    """Set any status on an order that is not yet delivered or cancelled."""
    await change_status(store, order_id, payload.status)
    return await load_order(db, order_id)


@router.delete(
    "/{order_id}",
    response_model=OrderResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def delete_order(
    order_id: int,
    store: BaseOrderStore = Depends(get_order_store),
    db: AsyncSession = Depends(get_db),
) -> OrderResponse:
    """
    Cancel an order. Refused once the order is delivered or cancelled.

    The order and its lines are kept; it stays retrievable with status cancelled.
    """
    await cancel_order(store, order_id)
    return await load_order(db, order_id)


# =============================================================================
# READS
# =============================================================================

@router.get("", response_model=OrderListResponse, summary="List Orders")
async def list_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    status: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> OrderListResponse:
    """Retrieve paginated list of orders, newest first."""
    orders, total = await reports.list_orders(db, page, limit, status=optional_status(status))
    return OrderListResponse(
        total=total,
        page=page,
        limit=limit,
        total_pages=reports.total_pages(total, limit),
        orders=[OrderSummaryResponse.model_validate(o) for o in orders],
    )


@router.get("/recent", response_model=list[RecentOrder])
async def get_recent_orders(
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
) -> list[RecentOrder]:
    rows = await reports.recent_orders(db, limit)
    return [
        RecentOrder(
            **OrderSummaryResponse.model_validate(order).model_dump(),
            item_count=item_count,
        )
        for order, item_count in rows
    ]


@router.get("/popular-menu-items", response_model=list[PopularMenuItem])
async def get_popular_menu_items(
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
) -> list[PopularMenuItem]:
    """Menu items ranked by quantity ordered (cancelled orders excluded)."""
    rows = await reports.popular_menu_items(db, limit)
    return [PopularMenuItem(**row) for row in rows]


@router.get("/sales-report", response_model=SalesReportResponse)
async def get_sales_report(
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> SalesReportResponse:
    """Quantity, revenue and order count per menu item over an optional period."""
    rows = await reports.sales_report(db, start_date, end_date)
    return SalesReportResponse(
        period={
            "start_date": start_date.isoformat() if start_date else "All time",
            "end_date": end_date.isoformat() if end_date else "All time",
        },
        report=[SalesReportRow(**row) for row in rows],
    )


@router.get("/sales-report/export", response_class=Response)
async def export_sales_report(
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> Response:
    """Download the sales report as an Excel workbook."""
    rows = await reports.sales_report(db, start_date, end_date)
    content = reports.sales_report_workbook(rows)
    filename = f"sales-report-{datetime.now().strftime('%Y%m%d-%H%M%S')}.xlsx"

    logger.info(f"Exported sales report ({len(rows)} rows) as {filename}")
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/customer/{customer_id}", response_model=CustomerOrdersResponse)
async def get_orders_by_customer(
    customer_id: int,
    status: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> CustomerOrdersResponse:
    customer = await db.get(Customer, customer_id)
    if customer is None:
        raise NotFound("customer")

    orders = await reports.all_orders_for(db, status=optional_status(status), customer_id=customer_id)
    return CustomerOrdersResponse(
        customer=customer.name,
        orders=[OrderSummaryResponse.model_validate(o) for o in orders],
    )


@router.get("/restaurant/{restaurant_id}", response_model=RestaurantOrdersResponse)
async def get_orders_by_restaurant(
    restaurant_id: int,
    status: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> RestaurantOrdersResponse:
    restaurant = await db.get(Restaurant, restaurant_id)
    if restaurant is None or not restaurant.is_active:
        raise NotFound("restaurant")

    orders = await reports.all_orders_for(db, status=optional_status(status), restaurant_id=restaurant_id)
    return RestaurantOrdersResponse(
        restaurant=restaurant.name,
        orders=[OrderSummaryResponse.model_validate(o) for o in orders],
    )


@router.get(
    "/{order_id}",
    response_model=OrderResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_order(
    order_id: int,
    db: AsyncSession = Depends(get_db),
) -> OrderResponse:
    """Get a specific order with its lines."""
    return await load_order(db, order_id)
