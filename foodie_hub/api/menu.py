"""
Menu Item Endpoints

Price and availability changes only affect future orders; existing order
lines keep the unit price they were created with.
"""

import logging
from decimal import Decimal

from fastapi import APIRouter, Depends, Query, status as http_status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from foodie_hub.core.exceptions import InvalidState, NotFound
from foodie_hub.database import get_db
from foodie_hub.models import MenuItem, OrderLine, Restaurant
from foodie_hub.schemas import (
    ErrorResponse,
    MenuItemCreate,
    MenuItemResponse,
    MenuItemUpdate,
    MenuSearchResult,
    PopularMenuItem,
)
from foodie_hub.services import reports
from foodie_hub.api.restaurants import get_active_restaurant

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/menu", tags=["Menu"])


async def get_menu_item_or_404(db: AsyncSession, menu_item_id: int) -> MenuItem:
    menu_item = await db.get(MenuItem, menu_item_id)
    if menu_item is None:
        raise NotFound("menu_item")
    return menu_item


@router.post(
    "",
    response_model=MenuItemResponse,
    status_code=http_status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def create_menu_item(
    payload: MenuItemCreate,
    db: AsyncSession = Depends(get_db),
) -> MenuItemResponse:
    await get_active_restaurant(db, payload.restaurant_id)

    data = payload.model_dump()
    data["price"] = Decimal(str(data["price"]))
    menu_item = MenuItem(**data)
    db.add(menu_item)
    await db.commit()
    await db.refresh(menu_item)

    logger.info(f"Menu item #{menu_item.id} created for restaurant #{menu_item.restaurant_id}")
    return MenuItemResponse.model_validate(menu_item)


@router.get("/popular/items", response_model=list[PopularMenuItem])
async def get_popular_menu_items(
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
) -> list[PopularMenuItem]:
    """Available menu items ranked by quantity ordered, including never-ordered ones."""
    rows = await reports.popular_menu_items(db, limit, include_unordered=True)
    return [PopularMenuItem(**row) for row in rows]


@router.get("/search/category", response_model=list[MenuSearchResult])
async def search_by_category(
    category: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_db),
) -> list[MenuSearchResult]:
    """Case-insensitive category match over available items of active restaurants."""
    result = await db.execute(
        select(MenuItem)
        .join(Restaurant, MenuItem.restaurant_id == Restaurant.id)
        .where(
            func.lower(MenuItem.category).contains(category.lower()),
            MenuItem.is_available.is_(True),
            Restaurant.is_active.is_(True),
        )
        .options(selectinload(MenuItem.restaurant))
        .order_by(Restaurant.name, MenuItem.name)
    )
    return [MenuSearchResult.model_validate(m) for m in result.scalars().all()]


@router.get("/{menu_item_id}", response_model=MenuItemResponse, responses={404: {"model": ErrorResponse}})
async def get_menu_item(
    menu_item_id: int,
    db: AsyncSession = Depends(get_db),
) -> MenuItemResponse:
    menu_item = await get_menu_item_or_404(db, menu_item_id)
    return MenuItemResponse.model_validate(menu_item)


@router.put("/{menu_item_id}", response_model=MenuItemResponse, responses={404: {"model": ErrorResponse}})
async def update_menu_item(
    menu_item_id: int,
    payload: MenuItemUpdate,
    db: AsyncSession = Depends(get_db),
) -> MenuItemResponse:
    menu_item = await get_menu_item_or_404(db, menu_item_id)

    changes = payload.model_dump(exclude_unset=True)
    if changes.get("price") is not None:
        changes["price"] = Decimal(str(changes["price"]))
    for key, value in changes.items():
        setattr(menu_item, key, value)

    await db.commit()
    await db.refresh(menu_item)
    return MenuItemResponse.model_validate(menu_item)


@router.delete(
    "/{menu_item_id}",
    response_model=MenuItemResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def delete_menu_item(
    menu_item_id: int,
    db: AsyncSession = Depends(get_db),
) -> MenuItemResponse:
    """Physically delete a menu item that no order line references."""
    menu_item = await get_menu_item_or_404(db, menu_item_id)

    used = await db.execute(
        select(func.count(OrderLine.id)).where(OrderLine.menu_item_id == menu_item_id)
    )
    if used.scalar():
        raise InvalidState(
            "menu_item_in_use",
            f'Menu item "{menu_item.name}" appears in existing orders; mark it unavailable instead',
        )

    response = MenuItemResponse.model_validate(menu_item)
    await db.delete(menu_item)
    await db.commit()

    logger.info(f"Menu item #{menu_item_id} deleted")
    return response


@router.patch("/{menu_item_id}/toggle-availability", response_model=MenuItemResponse)
async def toggle_availability(
    menu_item_id: int,
    db: AsyncSession = Depends(get_db),
) -> MenuItemResponse:
    menu_item = await get_menu_item_or_404(db, menu_item_id)
    menu_item.is_available = not menu_item.is_available

    await db.commit()
    await db.refresh(menu_item)

    logger.info(
        f"Menu item #{menu_item.id} {'enabled' if menu_item.is_available else 'disabled'}"
    )
    return MenuItemResponse.model_validate(menu_item)
