"""
SQLAlchemy Database Models

Tables:
- restaurants (soft-deleted through is_active)
- customers (phone is the unique business key)
- menu_items (price + availability, owned by a restaurant)
- orders (header with derived total and status)
- order_items (lines with snapshotted unit price)

Version: 1.0.0
"""

import enum
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from foodie_hub.database import Base

MONEY = Numeric(10, 2)
# Largest value a MONEY column holds
MAX_AMOUNT = Decimal("99999999.99")


class OrderStatus(str, enum.Enum):
    """Order status workflow."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class Restaurant(Base):
    """
    Restaurant table.

    Never physically removed: deleting a restaurant flips is_active so that
    menu items and historical orders keep a valid reference.
    """
    __tablename__ = "restaurants"
    __mapper_args__ = {"eager_defaults": True}

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    address = Column(String(255), nullable=False)
    phone = Column(String(20), nullable=False)
    email = Column(String(255), nullable=True)
    cuisine_type = Column(String(50), nullable=True, index=True)
    opening_hours = Column(String(255), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    menu_items = relationship("MenuItem", back_populates="restaurant")
    orders = relationship("Order", back_populates="restaurant")

    def __repr__(self):
        state = "active" if self.is_active else "inactive"
        return f"<Restaurant #{self.id} - {self.name} - {state}>"


class Customer(Base):
    """Customer table. Deletion is restricted while orders reference the row."""
    __tablename__ = "customers"
    __mapper_args__ = {"eager_defaults": True}

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    name = Column(String(100), nullable=False, index=True)
    phone = Column(String(20), nullable=False, unique=True)
    email = Column(String(255), nullable=True)
    address = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    orders = relationship("Order", back_populates="customer", passive_deletes="all")

    def __repr__(self):
        return f"<Customer #{self.id} - {self.name} - {self.phone}>"


class MenuItem(Base):
    """
    Menu item table.

    Price and availability can change at any time; order lines copy the
    price at order time so those changes never reach historical orders.
    """
    __tablename__ = "menu_items"
    __mapper_args__ = {"eager_defaults": True}
    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_menu_items_price_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    restaurant_id = Column(
        Integer,
        ForeignKey("restaurants.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(MONEY, nullable=False)
    category = Column(String(50), nullable=True, index=True)
    preparation_time = Column(Integer, nullable=True)  # minutes
    image_url = Column(String(500), nullable=True)
    is_available = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    restaurant = relationship("Restaurant", back_populates="menu_items")

    @property
    def restaurant_name(self) -> str:
        return self.restaurant.name

    def __repr__(self):
        return f"<MenuItem #{self.id} - {self.name} - {self.price}>"


class Order(Base):
    """
    Order header.

    total_amount is computed once at creation as the sum of the line
    subtotals and is never recomputed.
    """
    __tablename__ = "orders"
    __mapper_args__ = {"eager_defaults": True}

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    customer_id = Column(
        Integer,
        ForeignKey("customers.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    restaurant_id = Column(
        Integer,
        ForeignKey("restaurants.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    status = Column(
        Enum(OrderStatus),
        default=OrderStatus.PENDING,
        nullable=False,
        index=True
    )
    total_amount = Column(MONEY, nullable=False)
    delivery_address = Column(Text, nullable=True)
    special_instructions = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    customer = relationship("Customer", back_populates="orders")
    restaurant = relationship("Restaurant", back_populates="orders")
    lines = relationship(
        "OrderLine",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderLine.id",
    )

    @property
    def customer_name(self) -> str:
        return self.customer.name

    @property
    def restaurant_name(self) -> str:
        return self.restaurant.name

    def __repr__(self):
        return f"<Order #{self.id} - {self.total_amount} - {self.status.value}>"


class OrderLine(Base):
    """One quantity-priced entry of an order, bound to a frozen unit price."""
    __tablename__ = "order_items"
    __mapper_args__ = {"eager_defaults": True}
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_order_items_quantity_positive"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    order_id = Column(
        Integer,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    menu_item_id = Column(
        Integer,
        ForeignKey("menu_items.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    quantity = Column(Integer, nullable=False)
    unit_price = Column(MONEY, nullable=False)
    subtotal = Column(MONEY, nullable=False)
    special_requests = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    order = relationship("Order", back_populates="lines")
    menu_item = relationship("MenuItem")

    @property
    def menu_item_name(self) -> str:
        return self.menu_item.name

    def __repr__(self):
        return f"<OrderLine #{self.id} - order #{self.order_id} - {self.quantity} x {self.unit_price}>"
