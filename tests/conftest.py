import os

# Settings are cached on first import; point them at SQLite before anything loads.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ.setdefault("ENV_MODE", "development")

from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import func, select  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from foodie_hub import models  # noqa: E402
from foodie_hub.database import Base, enable_sqlite_foreign_keys, get_db  # noqa: E402
from foodie_hub.main import app  # noqa: E402
from foodie_hub.services.store import (  # noqa: E402
    CustomerRecord,
    InMemoryOrderStore,
    MenuItemRecord,
    RestaurantRecord,
)


# =============================================================================
# DATABASE + HTTP CLIENT
# =============================================================================

@pytest.fixture
async def engine():
    test_engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_foreign_keys(test_engine)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def client(session_maker):
    async def override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http:
        yield http
    app.dependency_overrides.clear()


@pytest.fixture
def count_rows(session_maker):
    """Count the rows of a mapped class straight from the database."""
    async def _count(model) -> int:
        async with session_maker() as session:
            result = await session.execute(select(func.count()).select_from(model))
            return result.scalar()

    return _count


# =============================================================================
# API SEEDING
# =============================================================================

@pytest.fixture
def seed(client):
    """Helpers that create catalog rows through the API and return their JSON."""

    class Seeder:
        phones = iter(range(5550000001, 5559999999))

        async def restaurant(self, **overrides):
            payload = {"name": "Bella Napoli", "address": "12 Mulberry St", "phone": "2125550100"}
            payload.update(overrides)
            response = await client.post("/api/restaurants", json=payload)
            assert response.status_code == 201, response.text
            return response.json()

        async def menu_item(self, restaurant_id, **overrides):
            payload = {"restaurantId": restaurant_id, "name": "Pizza", "price": 10.0, "category": "pizza"}
            payload.update(overrides)
            response = await client.post("/api/menu", json=payload)
            assert response.status_code == 201, response.text
            return response.json()

        async def customer(self, **overrides):
            payload = {"name": "Ana Lopez", "phone": str(next(self.phones)), "address": "350 Fifth Avenue"}
            payload.update(overrides)
            response = await client.post("/api/customers", json=payload)
            assert response.status_code == 201, response.text
            return response.json()

        async def order(self, customer_id, restaurant_id, items, expected=201, **extra):
            payload = {"customerId": customer_id, "restaurantId": restaurant_id, "items": items}
            payload.update(extra)
            response = await client.post("/api/orders", json=payload)
            assert response.status_code == expected, response.text
            return response.json()

    return Seeder()


@pytest.fixture
async def catalog(seed):
    """One customer and one restaurant with A ($10, available) and B ($5, unavailable)."""
    restaurant = await seed.restaurant()
    item_a = await seed.menu_item(restaurant["id"], name="A", price=10.0)
    item_b = await seed.menu_item(restaurant["id"], name="B", price=5.0, isAvailable=False)
    customer = await seed.customer()
    return {"restaurant": restaurant, "a": item_a, "b": item_b, "customer": customer}


# =============================================================================
# IN-MEMORY STORE
# =============================================================================

def build_memory_store(**kwargs) -> InMemoryOrderStore:
    """Customer 1; restaurants 1 and 2; A ($10) and B ($5, unavailable) at 1, C ($7) at 2."""
    store = InMemoryOrderStore(**kwargs)
    store.add_customer(CustomerRecord(1, "Ana Lopez", "5551234567", "350 Fifth Avenue"))
    store.add_restaurant(RestaurantRecord(1, "Bella Napoli"))
    store.add_restaurant(RestaurantRecord(2, "Sushi Go"))
    store.add_restaurant(RestaurantRecord(3, "Closed Diner", is_active=False))
    store.add_menu_item(MenuItemRecord(1, 1, "A", Decimal("10.00"), True))
    store.add_menu_item(MenuItemRecord(2, 1, "B", Decimal("5.00"), False))
    store.add_menu_item(MenuItemRecord(3, 2, "C", Decimal("7.00"), True))
    return store


@pytest.fixture
def memory_store():
    return build_memory_store()


@pytest.fixture
def make_store():
    """Factory for seeded stores with fault injection options."""
    return build_memory_store
