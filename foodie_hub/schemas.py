"""
Pydantic Schemas for Request/Response Validation

Request bodies accept camelCase keys (customerId, menuItemId, ...) as well
as snake_case; responses are always snake_case.

Version: 1.0.0
"""

import re
from datetime import datetime
from typing import Annotated, List, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from foodie_hub.models import MAX_AMOUNT, OrderStatus


class CamelModel(BaseModel):
    """Base for request bodies sent by JavaScript clients."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _validate_phone(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    cleaned = re.sub(r'[^\d]', '', v)
    if len(cleaned) < 10:
        raise ValueError('Phone number must have at least 10 digits')
    return v


Phone = Annotated[str, AfterValidator(_validate_phone)]


# =============================================================================
# RESTAURANTS
# =============================================================================

class RestaurantCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100, examples=["Bella Napoli"])
    description: Optional[str] = None
    address: str = Field(..., min_length=1, max_length=255, examples=["12 Mulberry St"])
    phone: Phone = Field(..., max_length=20, examples=["212-555-0100"])
    email: Optional[EmailStr] = None
    cuisine_type: Optional[str] = Field(None, max_length=50, examples=["italian"])
    opening_hours: Optional[str] = Field(None, max_length=255, examples=["Mon-Sun 11:00-23:00"])


class RestaurantUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    address: Optional[str] = Field(None, min_length=1, max_length=255)
    phone: Optional[Phone] = Field(None, max_length=20)
    email: Optional[EmailStr] = None
    cuisine_type: Optional[str] = Field(None, max_length=50)
    opening_hours: Optional[str] = Field(None, max_length=255)


class RestaurantResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str]
    address: str
    phone: str
    email: Optional[str]
    cuisine_type: Optional[str]
    opening_hours: Optional[str]
    is_active: bool
    created_at: Optional[datetime]
    updated_at: Optional[datetime]


class RestaurantListResponse(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int
    restaurants: List[RestaurantResponse]


# =============================================================================
# MENU ITEMS
# =============================================================================

class MenuItemCreate(CamelModel):
    restaurant_id: int
    name: str = Field(..., min_length=1, max_length=100, examples=["Pizza Margherita"])
    description: Optional[str] = None
    price: float = Field(..., ge=0, le=float(MAX_AMOUNT), examples=[14.99])
    category: Optional[str] = Field(None, max_length=50, examples=["pizza"])
    preparation_time: Optional[int] = Field(None, ge=0, examples=[15])
    image_url: Optional[str] = Field(None, max_length=500)
    is_available: bool = True


class MenuItemUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0, le=float(MAX_AMOUNT))
    category: Optional[str] = Field(None, max_length=50)
    preparation_time: Optional[int] = Field(None, ge=0)
    image_url: Optional[str] = Field(None, max_length=500)
    is_available: Optional[bool] = None


class MenuItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    restaurant_id: int
    name: str
    description: Optional[str]
    price: float
    category: Optional[str]
    preparation_time: Optional[int]
    image_url: Optional[str]
    is_available: bool
    created_at: Optional[datetime]
    updated_at: Optional[datetime]


class RestaurantMenuResponse(BaseModel):
    restaurant: str
    menu_items: List[MenuItemResponse]


class MenuSearchResult(MenuItemResponse):
    restaurant_name: str


class PopularMenuItem(BaseModel):
    id: int
    name: str
    description: Optional[str]
    price: float
    category: Optional[str]
    restaurant_name: str
    total_ordered: int
    order_count: int


# =============================================================================
# CUSTOMERS
# =============================================================================

class CustomerCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100, examples=["John Doe"])
    phone: Phone = Field(..., max_length=20, examples=["555-123-4567"])
    email: Optional[EmailStr] = Field(None, examples=["john@example.com"])
    address: Optional[str] = Field(None, examples=["350 Fifth Avenue"])


class CustomerUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[Phone] = Field(None, max_length=20)
    email: Optional[EmailStr] = None
    address: Optional[str] = None


class CustomerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    phone: str
    email: Optional[str]
    address: Optional[str]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]


class CustomerListResponse(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int
    customers: List[CustomerResponse]


class OrderHistoryEntry(BaseModel):
    id: int
    restaurant_id: int
    restaurant_name: str
    cuisine_type: Optional[str]
    status: OrderStatus
    total_amount: float
    created_at: Optional[datetime]
    total_items: int
    total_quantity: int


class CustomerOrderHistoryResponse(BaseModel):
    customer: str
    order_history: List[OrderHistoryEntry]


# =============================================================================
# ORDERS
# =============================================================================

class OrderItemCreate(CamelModel):
    """Single line of an order request. Range rules live in the workflow."""
    menu_item_id: int
    # strict: JSON true, "2" and 2.0 are not quantities
    quantity: int = Field(..., strict=True, examples=[2])
    special_requests: Optional[str] = Field(None, max_length=500)


class OrderCreate(CamelModel):
    """Request schema for placing a new order."""
    customer_id: int
    restaurant_id: int
    items: List[OrderItemCreate]
    delivery_address: Optional[str] = Field(None, max_length=500)
    special_instructions: Optional[str] = Field(None, max_length=1000)


class OrderStatusUpdate(BaseModel):
    # Plain str so that unknown values reach the lifecycle rules.
    status: str


class OrderLineResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    menu_item_id: int
    menu_item_name: str
    quantity: int
    unit_price: float
    subtotal: float
    special_requests: Optional[str]


class OrderSummaryResponse(BaseModel):
    """Order header without its lines."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    customer_id: int
    customer_name: str
    restaurant_id: int
    restaurant_name: str
    status: OrderStatus
    total_amount: float
    delivery_address: Optional[str]
    special_instructions: Optional[str]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]


class OrderResponse(OrderSummaryResponse):
    """Order header plus its persisted lines."""
    items: List[OrderLineResponse] = Field(validation_alias="lines")


class OrderListResponse(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int
    orders: List[OrderSummaryResponse]


class RecentOrder(OrderSummaryResponse):
    item_count: int


class CustomerOrdersResponse(BaseModel):
    customer: str
    orders: List[OrderSummaryResponse]


class RestaurantOrdersResponse(BaseModel):
    restaurant: str
    orders: List[OrderSummaryResponse]


# =============================================================================
# REPORTS
# =============================================================================

class SalesReportRow(BaseModel):
    menu_item_id: int
    menu_item_name: str
    category: Optional[str]
    restaurant_name: str
    total_quantity: int
    total_revenue: float
    unique_orders: int
    avg_unit_price: float


class SalesReportPeriod(BaseModel):
    start_date: str
    end_date: str


class SalesReportResponse(BaseModel):
    period: SalesReportPeriod
    report: List[SalesReportRow]


# =============================================================================
# SERVICE
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    message: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    environment: str
    timestamp: datetime
