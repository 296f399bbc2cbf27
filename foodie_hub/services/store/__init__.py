"""
Order Store Factory

Provides the store instance the order workflows run against.

Usage:
    from foodie_hub.services.store import get_order_store

    @app.post("/api/orders")
    async def create_order(store: BaseOrderStore = Depends(get_order_store)):
        ...

Tests build an InMemoryOrderStore directly, or override get_db.
"""

import logging

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from foodie_hub.database import get_db
from foodie_hub.services.store.base import (
    BaseOrderStore,
    CustomerRecord,
    MenuItemRecord,
    OrderRecord,
    RestaurantRecord,
)
from foodie_hub.services.store.memory import InMemoryOrderStore, StoreFault
from foodie_hub.services.store.sql import SqlAlchemyOrderStore

logger = logging.getLogger(__name__)


def get_order_store(db: AsyncSession = Depends(get_db)) -> BaseOrderStore:
    """
    FastAPI dependency returning a store bound to the request's session.

    One store per request: the session, and therefore the transaction,
    is never shared between requests.
    """
    return SqlAlchemyOrderStore(db)


__all__ = [
    "get_order_store",
    "BaseOrderStore",
    "CustomerRecord",
    "MenuItemRecord",
    "OrderRecord",
    "RestaurantRecord",
    "InMemoryOrderStore",
    "StoreFault",
    "SqlAlchemyOrderStore",
]
