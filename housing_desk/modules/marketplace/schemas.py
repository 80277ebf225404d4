"""
Marketplace Module - Pydantic Schemas
"""
import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from housing_desk.modules.marketplace.models import MarketplaceOrderStatus


class OrderItemCreate(BaseModel):
    product_name: str = Field(..., min_length=1, max_length=255)
    quantity: int = Field(..., ge=1, le=1000)
    unit_price: float = Field(..., ge=0)


class OrderCreate(BaseModel):
    items: list[OrderItemCreate] = Field(..., min_length=1)
    delivery_note: str | None = Field(None, max_length=2000)


class OrderAssign(BaseModel):
    executor_id: uuid.UUID


class OrderStatusUpdate(BaseModel):
    status: MarketplaceOrderStatus


class OrderCancel(BaseModel):
    reason: str | None = Field(None, max_length=2000)


class OrderRate(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    feedback: str | None = None


class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    product_name: str
    quantity: int
    unit_price: float
    total: float


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_number: str
    resident_id: uuid.UUID
    resident_name: str
    resident_phone: str | None
    resident_address: str | None
    resident_apartment: str | None
    status: str
    executor_id: uuid.UUID | None
    executor_name: str | None
    executor_phone: str | None
    items: list[OrderItemResponse]
    total_amount: float
    items_count: int
    delivery_note: str | None
    rating: int | None
    feedback: str | None
    confirmed_at: datetime | None
    preparing_at: datetime | None
    ready_at: datetime | None
    delivering_at: datetime | None
    delivered_at: datetime | None
    cancelled_at: datetime | None
    cancellation_reason: str | None
    created_at: datetime
    updated_at: datetime


class OrderListResponse(BaseModel):
    items: list[OrderResponse]
    total: int
    page: int
    page_size: int
