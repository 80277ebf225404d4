"""
Marketplace Module - API Router
"""
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from housing_desk.core.database import get_db
from housing_desk.core.exceptions import ForbiddenError
from housing_desk.modules.auth.dependencies import CurrentUser
from housing_desk.modules.marketplace.models import MarketplaceOrderStatus
from housing_desk.modules.marketplace.schemas import (
    OrderAssign,
    OrderCancel,
    OrderCreate,
    OrderListResponse,
    OrderRate,
    OrderResponse,
    OrderStatusUpdate,
)
from housing_desk.modules.marketplace.service import MarketplaceService, is_marketplace_manager

router = APIRouter(prefix="/marketplace", tags=["Marketplace"])


async def get_marketplace_service(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MarketplaceService:
    return MarketplaceService(db)


MarketplaceServiceDep = Annotated[MarketplaceService, Depends(get_marketplace_service)]


def _page(items, total: int, page: int, page_size: int) -> OrderListResponse:
    return OrderListResponse(
        items=[OrderResponse.model_validate(o) for o in items],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/orders", response_model=OrderListResponse, summary="All orders (managers)")
async def list_orders(
    current_user: CurrentUser,
    service: MarketplaceServiceDep,
    status: MarketplaceOrderStatus | None = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> OrderListResponse:
    if not is_marketplace_manager(current_user):
        raise ForbiddenError("Only marketplace managers can list all orders")
    items, total = await service.list_orders(status=status, page=page, page_size=page_size)
    return _page(items, total, page, page_size)


@router.get("/orders/my", response_model=OrderListResponse, summary="My orders (resident)")
async def list_my_orders(
    current_user: CurrentUser,
    service: MarketplaceServiceDep,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> OrderListResponse:
    items, total = await service.list_orders(resident_id=current_user.id, page=page, page_size=page_size)
    return _page(items, total, page, page_size)


@router.get("/orders/courier", response_model=OrderListResponse, summary="My deliveries (courier)")
async def list_courier_orders(
    current_user: CurrentUser,
    service: MarketplaceServiceDep,
    status: MarketplaceOrderStatus | None = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> OrderListResponse:
    if not current_user.is_executor:
        raise ForbiddenError("Only couriers have deliveries")
    items, total = await service.list_orders(
        status=status,
        executor_id=current_user.id,
        page=page,
        page_size=page_size,
    )
    return _page(items, total, page, page_size)


@router.post("/orders", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    data: OrderCreate,
    current_user: CurrentUser,
    service: MarketplaceServiceDep,
) -> OrderResponse:
    """Place an order."""
    order = await service.create(data, current_user)
    return OrderResponse.model_validate(order)


@router.get("/orders/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: uuid.UUID,
    current_user: CurrentUser,
    service: MarketplaceServiceDep,
) -> OrderResponse:
    order = await service.get_for_user(order_id, current_user)
    return OrderResponse.model_validate(order)


@router.post("/orders/{order_id}/assign", response_model=OrderResponse)
async def assign_courier(
    order_id: uuid.UUID,
    data: OrderAssign,
    current_user: CurrentUser,
    service: MarketplaceServiceDep,
) -> OrderResponse:
    order = await service.assign_courier(order_id, data.executor_id, current_user)
    return OrderResponse.model_validate(order)


@router.post("/orders/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: uuid.UUID,
    data: OrderStatusUpdate,
    current_user: CurrentUser,
    service: MarketplaceServiceDep,
) -> OrderResponse:
    """Advance the order one step along the delivery flow."""
    order = await service.advance(order_id, data.status, current_user)
    return OrderResponse.model_validate(order)


@router.post("/orders/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(
    order_id: uuid.UUID,
    current_user: CurrentUser,
    service: MarketplaceServiceDep,
    data: OrderCancel | None = None,
) -> OrderResponse:
    order = await service.cancel(order_id, current_user, data.reason if data else None)
    return OrderResponse.model_validate(order)


@router.post("/orders/{order_id}/rate", response_model=OrderResponse)
async def rate_order(
    order_id: uuid.UUID,
    data: OrderRate,
    current_user: CurrentUser,
    service: MarketplaceServiceDep,
) -> OrderResponse:
    order = await service.rate(order_id, current_user, data.rating, data.feedback)
    return OrderResponse.model_validate(order)
