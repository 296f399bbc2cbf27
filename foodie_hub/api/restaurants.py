"""
Restaurant Endpoints

Restaurants are soft-deleted: DELETE flips is_active, and every endpoint
here treats an inactive restaurant as missing.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status as http_status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from foodie_hub.core.config import get_settings
from foodie_hub.core.exceptions import NotFound
from foodie_hub.database import get_db
from foodie_hub.models import MenuItem, Restaurant
from foodie_hub.schemas import (
    ErrorResponse,
    MenuItemResponse,
    OrderSummaryResponse,
    RestaurantCreate,
    RestaurantListResponse,
    RestaurantMenuResponse,
    RestaurantOrdersResponse,
    RestaurantResponse,
    RestaurantUpdate,
)
from foodie_hub.services import reports
from foodie_hub.services.orders import parse_status

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(prefix="/api/restaurants", tags=["Restaurants"])


async def get_active_restaurant(db: AsyncSession, restaurant_id: int) -> Restaurant:
    result = await db.execute(
        select(Restaurant).where(
            Restaurant.id == restaurant_id,
            Restaurant.is_active.is_(True),
        )
    )
    restaurant = result.scalar_one_or_none()
    if restaurant is None:
        raise NotFound("restaurant")
    return restaurant


@router.post(
    "",
    response_model=RestaurantResponse,
    status_code=http_status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
)
async def create_restaurant(
    payload: RestaurantCreate,
    db: AsyncSession = Depends(get_db),
) -> RestaurantResponse:
    restaurant = Restaurant(**payload.model_dump())
    db.add(restaurant)
    await db.commit()
    await db.refresh(restaurant)

    logger.info(f"Restaurant #{restaurant.id} created: {restaurant.name}")
    return RestaurantResponse.model_validate(restaurant)


@router.get("", response_model=RestaurantListResponse)
async def list_restaurants(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    db: AsyncSession = Depends(get_db),
) -> RestaurantListResponse:
    """Active restaurants, newest first."""
    active = Restaurant.is_active.is_(True)

    total_result = await db.execute(select(func.count(Restaurant.id)).where(active))
    total = total_result.scalar() or 0

    result = await db.execute(
        select(Restaurant)
        .where(active)
        .order_by(Restaurant.created_at.desc(), Restaurant.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return RestaurantListResponse(
        total=total,
        page=page,
        limit=limit,
        total_pages=reports.total_pages(total, limit),
        restaurants=[RestaurantResponse.model_validate(r) for r in result.scalars().all()],
    )


@router.get("/{restaurant_id}", response_model=RestaurantResponse, responses={404: {"model": ErrorResponse}})
async def get_restaurant(
    restaurant_id: int,
    db: AsyncSession = Depends(get_db),
) -> RestaurantResponse:
    restaurant = await get_active_restaurant(db, restaurant_id)
    return RestaurantResponse.model_validate(restaurant)


@router.put("/{restaurant_id}", response_model=RestaurantResponse, responses={404: {"model": ErrorResponse}})
async def update_restaurant(
    restaurant_id: int,
    payload: RestaurantUpdate,
    db: AsyncSession = Depends(get_db),
) -> RestaurantResponse:
    """Update the fields present in the body; absent fields are left untouched."""
    restaurant = await get_active_restaurant(db, restaurant_id)
    for key, value in payload.model_dump(exclude_unset=True).items():
        setattr(restaurant, key, value)

    await db.commit()
    await db.refresh(restaurant)
    return RestaurantResponse.model_validate(restaurant)


@router.delete("/{restaurant_id}", response_model=RestaurantResponse, responses={404: {"model": ErrorResponse}})
async def delete_restaurant(
    restaurant_id: int,
    db: AsyncSession = Depends(get_db),
) -> RestaurantResponse:
    """Soft delete: the row stays for its menu items and historical orders."""
    restaurant = await get_active_restaurant(db, restaurant_id)
    restaurant.is_active = False

    await db.commit()
    await db.refresh(restaurant)

    logger.info(f"Restaurant #{restaurant.id} deactivated")
    return RestaurantResponse.model_validate(restaurant)


@router.get("/{restaurant_id}/menu", response_model=RestaurantMenuResponse)
async def get_restaurant_menu(
    restaurant_id: int,
    include_unavailable: bool = Query(False),
    db: AsyncSession = Depends(get_db),
) -> RestaurantMenuResponse:
    restaurant = await get_active_restaurant(db, restaurant_id)

    query = select(MenuItem).where(MenuItem.restaurant_id == restaurant_id)
    if not include_unavailable:
        query = query.where(MenuItem.is_available.is_(True))
    result = await db.execute(query.order_by(MenuItem.category, MenuItem.name))

    return RestaurantMenuResponse(
        restaurant=restaurant.name,
        menu_items=[MenuItemResponse.model_validate(m) for m in result.scalars().all()],
    )


@router.get("/{restaurant_id}/orders", response_model=RestaurantOrdersResponse)
async def get_restaurant_orders(
    restaurant_id: int,
    status: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> RestaurantOrdersResponse:
    restaurant = await get_active_restaurant(db, restaurant_id)

    orders = await reports.all_orders_for(
        db,
        status=parse_status(status) if status else None,
        restaurant_id=restaurant_id,
    )
    return RestaurantOrdersResponse(
        restaurant=restaurant.name,
        orders=[OrderSummaryResponse.model_validate(o) for o in orders],
    )
