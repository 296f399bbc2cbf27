"""
Customer Endpoints

Phone numbers are unique across customers. A customer with orders cannot
be deleted, since orders keep a reference to who placed them.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status as http_status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from foodie_hub.core.config import get_settings
from foodie_hub.core.exceptions import InvalidState, NotFound
from foodie_hub.database import get_db
from foodie_hub.models import Customer, Order
from foodie_hub.schemas import (
    CustomerCreate,
    CustomerListResponse,
    CustomerOrderHistoryResponse,
    CustomerOrdersResponse,
    CustomerResponse,
    CustomerUpdate,
    ErrorResponse,
    OrderHistoryEntry,
    OrderSummaryResponse,
)
from foodie_hub.services import reports
from foodie_hub.services.orders import parse_status

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(prefix="/api/customers", tags=["Customers"])


def duplicate_phone(phone: str) -> InvalidState:
    return InvalidState("duplicate_phone", f"A customer with phone {phone} already exists")


async def get_customer_or_404(db: AsyncSession, customer_id: int) -> Customer:
    customer = await db.get(Customer, customer_id)
    if customer is None:
        raise NotFound("customer")
    return customer


async def phone_taken(db: AsyncSession, phone: str, exclude_id: Optional[int] = None) -> bool:
    query = select(Customer.id).where(Customer.phone == phone)
    if exclude_id is not None:
        query = query.where(Customer.id != exclude_id)
    result = await db.execute(query.limit(1))
    return result.scalar_one_or_none() is not None


async def commit_customer(db: AsyncSession, customer: Customer) -> None:
    """Commit, turning a unique-phone race into the same 409 as the pre-check."""
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise duplicate_phone(customer.phone)
    await db.refresh(customer)


@router.post(
    "",
    response_model=CustomerResponse,
    status_code=http_status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def create_customer(
    payload: CustomerCreate,
    db: AsyncSession = Depends(get_db),
) -> CustomerResponse:
    if await phone_taken(db, payload.phone):
        raise duplicate_phone(payload.phone)

    customer = Customer(**payload.model_dump())
    db.add(customer)
    await commit_customer(db, customer)

    logger.info(f"Customer #{customer.id} registered: {customer.name}")
    return CustomerResponse.model_validate(customer)


@router.get("", response_model=CustomerListResponse)
async def list_customers(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    db: AsyncSession = Depends(get_db),
) -> CustomerListResponse:
    total_result = await db.execute(select(func.count(Customer.id)))
    total = total_result.scalar() or 0

    result = await db.execute(
        select(Customer)
        .order_by(Customer.created_at.desc(), Customer.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return CustomerListResponse(
        total=total,
        page=page,
        limit=limit,
        total_pages=reports.total_pages(total, limit),
        customers=[CustomerResponse.model_validate(c) for c in result.scalars().all()],
    )


@router.get("/search", response_model=list[CustomerResponse])
async def search_customers(
    name: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_db),
) -> list[CustomerResponse]:
    result = await db.execute(
        select(Customer)
        .where(func.lower(Customer.name).contains(name.lower()))
        .order_by(Customer.name)
    )
    return [CustomerResponse.model_validate(c) for c in result.scalars().all()]


@router.get("/phone/{phone}", response_model=CustomerResponse, responses={404: {"model": ErrorResponse}})
async def get_customer_by_phone(
    phone: str,
    db: AsyncSession = Depends(get_db),
) -> CustomerResponse:
    result = await db.execute(select(Customer).where(Customer.phone == phone))
    customer = result.scalar_one_or_none()
    if customer is None:
        raise NotFound("customer")
    return CustomerResponse.model_validate(customer)


@router.get("/{customer_id}", response_model=CustomerResponse, responses={404: {"model": ErrorResponse}})
async def get_customer(
    customer_id: int,
    db: AsyncSession = Depends(get_db),
) -> CustomerResponse:
    customer = await get_customer_or_404(db, customer_id)
    return CustomerResponse.model_validate(customer)


@router.put(
    "/{customer_id}",
    response_model=CustomerResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def update_customer(
    customer_id: int,
    payload: CustomerUpdate,
    db: AsyncSession = Depends(get_db),
) -> CustomerResponse:
    customer = await get_customer_or_404(db, customer_id)
    changes = payload.model_dump(exclude_unset=True)

    new_phone = changes.get("phone")
    if new_phone and new_phone != customer.phone and await phone_taken(db, new_phone, customer_id):
        raise duplicate_phone(new_phone)

    for key, value in changes.items():
        setattr(customer, key, value)

    await commit_customer(db, customer)
    return CustomerResponse.model_validate(customer)


@router.delete(
    "/{customer_id}",
    response_model=CustomerResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def delete_customer(
    customer_id: int,
    db: AsyncSession = Depends(get_db),
) -> CustomerResponse:
    customer = await get_customer_or_404(db, customer_id)

    orders = await db.execute(select(func.count(Order.id)).where(Order.customer_id == customer_id))
    if orders.scalar():
        raise InvalidState("customer_has_orders", "Cannot delete a customer with existing orders")

    response = CustomerResponse.model_validate(customer)
    await db.delete(customer)
    await db.commit()

    logger.info(f"Customer #{customer_id} deleted")
    return response


@router.get("/{customer_id}/orders", response_model=CustomerOrdersResponse)
async def get_customer_orders(
    customer_id: int,
    status: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> CustomerOrdersResponse:
    customer = await get_customer_or_404(db, customer_id)

    orders = await reports.all_orders_for(
        db,
        status=parse_status(status) if status else None,
        customer_id=customer_id,
    )
    return CustomerOrdersResponse(
        customer=customer.name,
        orders=[OrderSummaryResponse.model_validate(o) for o in orders],
    )


@router.get("/{customer_id}/order-history", response_model=CustomerOrderHistoryResponse)
async def get_customer_order_history(
    customer_id: int,
    db: AsyncSession = Depends(get_db),
) -> CustomerOrderHistoryResponse:
    """Orders with their restaurant, line count and total quantity."""
    customer = await get_customer_or_404(db, customer_id)
    rows = await reports.customer_order_history(db, customer_id)
    return CustomerOrderHistoryResponse(
        customer=customer.name,
        order_history=[OrderHistoryEntry(**row) for row in rows],
    )
