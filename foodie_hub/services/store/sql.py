"""
SQLAlchemy Order Store

Store implementation over an AsyncSession. Menu items are read with
SELECT ... FOR SHARE and orders with SELECT ... FOR UPDATE while a
transaction is open; on SQLite those clauses are ignored.
"""

import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from foodie_hub.models import Customer, MenuItem, Order, OrderLine, OrderStatus, Restaurant
from foodie_hub.services.store.base import (
    BaseOrderStore,
    CustomerRecord,
    MenuItemRecord,
    OrderRecord,
    RestaurantRecord,
)

logger = logging.getLogger(__name__)


class SqlAlchemyOrderStore(BaseOrderStore):
    """Order store backed by the application's relational database."""

    fault_types = (SQLAlchemyError, OSError)

    def __init__(self, session: AsyncSession):
        self.session = session

    @property
    def provider_name(self) -> str:
        return "sqlalchemy"

    async def begin(self) -> None:
        if self.session.in_transaction():
            # Reads done by the caller (autobegin) belong to this unit of work.
            return
        await self.session.begin()

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()

    async def get_customer(self, customer_id: int) -> Optional[CustomerRecord]:
        customer = await self.session.get(Customer, customer_id)
        if customer is None:
            return None
        return CustomerRecord(
            id=customer.id,
            name=customer.name,
            phone=customer.phone,
            address=customer.address,
        )

    async def get_restaurant(self, restaurant_id: int) -> Optional[RestaurantRecord]:
        result = await self.session.execute(
            select(Restaurant).where(
                Restaurant.id == restaurant_id,
                Restaurant.is_active.is_(True),
            )
        )
        restaurant = result.scalar_one_or_none()
        if restaurant is None:
            return None
        return RestaurantRecord(id=restaurant.id, name=restaurant.name, is_active=True)

    async def get_menu_item(
        self,
        menu_item_id: int,
        lock: bool = False,
    ) -> Optional[MenuItemRecord]:
        query = select(MenuItem).where(MenuItem.id == menu_item_id)
        if lock:
            query = query.with_for_update(read=True)
        # Always take the row as it is now, not a copy cached by the session.
        query = query.execution_options(populate_existing=True)

        result = await self.session.execute(query)
        item = result.scalar_one_or_none()
        if item is None:
            return None
        return MenuItemRecord(
            id=item.id,
            restaurant_id=item.restaurant_id,
            name=item.name,
            price=Decimal(item.price),
            is_available=item.is_available,
        )

    async def get_order(self, order_id: int, lock: bool = False) -> Optional[OrderRecord]:
        query = select(Order).where(Order.id == order_id)
        if lock:
            query = query.with_for_update()
        query = query.execution_options(populate_existing=True)

        result = await self.session.execute(query)
        order = result.scalar_one_or_none()
        if order is None:
            return None
        return OrderRecord(
            id=order.id,
            customer_id=order.customer_id,
            restaurant_id=order.restaurant_id,
            status=order.status,
            total_amount=Decimal(order.total_amount),
        )

    async def insert_order(
        self,
        customer_id: int,
        restaurant_id: int,
        total: Decimal,
        address: Optional[str],
        instructions: Optional[str],
    ) -> int:
        order = Order(
            customer_id=customer_id,
            restaurant_id=restaurant_id,
            status=OrderStatus.PENDING,
            total_amount=total,
            delivery_address=address,
            special_instructions=instructions,
        )
        self.session.add(order)
        await self.session.flush()
        logger.debug(f"Inserted order header #{order.id}")
        return order.id

    async def insert_order_line(
        self,
        order_id: int,
        menu_item_id: int,
        quantity: int,
        unit_price: Decimal,
        special_request: Optional[str],
    ) -> int:
        line = OrderLine(
            order_id=order_id,
            menu_item_id=menu_item_id,
            quantity=quantity,
            unit_price=unit_price,
            subtotal=unit_price * quantity,
            special_requests=special_request,
        )
        self.session.add(line)
        await self.session.flush()
        return line.id

    async def update_order_status(self, order_id: int, status: OrderStatus) -> None:
        order = await self.session.get(Order, order_id)
        order.status = status
        await self.session.flush()
