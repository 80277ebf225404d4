"""
Marketplace Module - Service Layer
"""
import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from housing_desk.core.exceptions import ConflictError, ForbiddenError, NotFoundError
from housing_desk.core.logging import get_logger
from housing_desk.core.metrics import record_order_transition
from housing_desk.core.models import utc_now
from housing_desk.modules.auth.models import STAFF_ROLES, User, UserRole
from housing_desk.modules.executors.models import ExecutorSpecialization
from housing_desk.modules.executors.service import ExecutorService
from housing_desk.modules.marketplace.models import (
    MarketplaceOrder,
    MarketplaceOrderItem,
    MarketplaceOrderStatus,
)
from housing_desk.modules.marketplace.schemas import OrderCreate
from housing_desk.modules.marketplace.workflow import (
    ASSIGNABLE,
    COURIER_STEPS,
    ensure_advance,
    ensure_cancel,
)
from housing_desk.modules.notifications.models import NotificationType
from housing_desk.modules.notifications.service import NotificationService
from housing_desk.modules.sse.broker import broker

logger = get_logger(__name__)

# Roles that run the marketplace back office
MARKETPLACE_ROLES: frozenset[str] = STAFF_ROLES | {UserRole.MARKETPLACE_MANAGER.value}

STATUS_LABELS = {
    MarketplaceOrderStatus.CONFIRMED: "confirmed",
    MarketplaceOrderStatus.PREPARING: "being prepared",
    MarketplaceOrderStatus.READY: "ready for delivery",
    MarketplaceOrderStatus.DELIVERING: "on its way",
    MarketplaceOrderStatus.DELIVERED: "delivered",
    MarketplaceOrderStatus.CANCELLED: "cancelled",
}


def is_marketplace_manager(user: User) -> bool:
    return user.role in MARKETPLACE_ROLES


class MarketplaceService:
    """Order intake, courier assignment and delivery flow."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.notifications = NotificationService(db)

    async def get_or_404(self, order_id: uuid.UUID) -> MarketplaceOrder:
        result = await self.db.execute(select(MarketplaceOrder).where(MarketplaceOrder.id == order_id))
        order = result.scalar_one_or_none()
        if not order:
            raise NotFoundError("MarketplaceOrder", order_id)
        return order

    async def get_for_user(self, order_id: uuid.UUID, user: User) -> MarketplaceOrder:
        order = await self.get_or_404(order_id)
        if is_marketplace_manager(user) or user.id in (order.resident_id, order.executor_id):
            return order
        raise ForbiddenError("You do not have access to this order")

    async def list_orders(
        self,
        status: MarketplaceOrderStatus | None = None,
        resident_id: uuid.UUID | None = None,
        executor_id: uuid.UUID | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[MarketplaceOrder], int]:
        query = select(MarketplaceOrder)
        count_query = select(func.count(MarketplaceOrder.id))

        filters = []
        if status:
            filters.append(MarketplaceOrder.status == status.value)
        if resident_id:
            filters.append(MarketplaceOrder.resident_id == resident_id)
        if executor_id:
            filters.append(MarketplaceOrder.executor_id == executor_id)
        if filters:
            query = query.where(*filters)
            count_query = count_query.where(*filters)

        total = (await self.db.execute(count_query)).scalar() or 0
        query = (
            query.order_by(MarketplaceOrder.created_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def _next_order_number(self) -> str:
        """MKT-<year>-<5 digit sequence>, restarting every year."""
        prefix = f"MKT-{utc_now().year}-"
        result = await self.db.execute(
            select(func.max(MarketplaceOrder.order_number)).where(
                MarketplaceOrder.order_number.like(f"{prefix}%")
            )
        )
        last = result.scalar()
        sequence = int(last[len(prefix):]) + 1 if last else 1
        return f"{prefix}{sequence:05d}"

    async def create(self, data: OrderCreate, actor: User) -> MarketplaceOrder:
        """Place an order; line and order totals are computed here."""
        if not actor.is_resident:
            raise ForbiddenError("Only residents can place marketplace orders")

        items = [
            MarketplaceOrderItem(
                product_name=item.product_name,
                quantity=item.quantity,
                unit_price=round(item.unit_price, 2),
                total=round(item.unit_price * item.quantity, 2),
            )
            for item in data.items
        ]
        order = MarketplaceOrder(
            order_number=await self._next_order_number(),
            resident_id=actor.id,
            resident_name=actor.name,
            resident_phone=actor.phone,
            resident_address=actor.address,
            resident_apartment=actor.apartment,
            status=MarketplaceOrderStatus.NEW.value,
            delivery_note=data.delivery_note,
            items=items,
            items_count=sum(item.quantity for item in data.items),
            total_amount=round(sum(i.total for i in items), 2),
        )
        self.db.add(order)
        await self.db.commit()
        await self.db.refresh(order)

        logger.info(
            "Marketplace order created",
            order_id=str(order.id),
            order_number=order.order_number,
            total_amount=order.total_amount,
        )
        self._publish(order)
        return order

    async def assign_courier(
        self,
        order_id: uuid.UUID,
        executor_id: uuid.UUID,
        actor: User,
    ) -> MarketplaceOrder:
        """Hand the order to a courier; a new order becomes confirmed."""
        if not is_marketplace_manager(actor):
            raise ForbiddenError("Only marketplace managers can assign couriers")

        order = await self.get_or_404(order_id)
        if order.status not in {s.value for s in ASSIGNABLE}:
            raise ConflictError(
                f"Order in status '{order.status}' cannot be reassigned",
                code="ORDER_NOT_ASSIGNABLE",
            )

        executor = await ExecutorService(self.db).get_by_user_id(executor_id)
        if not executor or not executor.user.is_active:
            raise NotFoundError("Executor", executor_id)
        if executor.specialization != ExecutorSpecialization.COURIER.value:
            raise ConflictError(
                "Only couriers can deliver marketplace orders",
                code="SPECIALIZATION_MISMATCH",
                details={"specialization": executor.specialization},
            )

        order.executor_id = executor.user_id
        order.executor_name = executor.user.name
        order.executor_phone = executor.user.phone

        await self.notifications.notify(
            executor.user_id,
            NotificationType.ORDER_ASSIGNED,
            "New delivery",
            f"Order {order.order_number} is assigned to you",
            order_id=order.id,
        )

        previous = order.status
        if order.status == MarketplaceOrderStatus.NEW.value:
            self._set_status(order, MarketplaceOrderStatus.CONFIRMED)
            await self._notify_resident(order)

        await self.db.commit()
        await self.db.refresh(order)
        if order.status != previous:
            record_order_transition(order.status)
        logger.info(
            "Courier assigned",
            order_id=str(order.id),
            executor_id=str(executor.user_id),
            status=order.status,
        )
        self._publish(order)
        return order

    async def advance(
        self,
        order_id: uuid.UUID,
        target: MarketplaceOrderStatus,
        actor: User,
    ) -> MarketplaceOrder:
        """
        Move the order one step forward.

        Managers may take any step; the assigned courier only
        ready -> delivering and delivering -> delivered.
        """
        order = await self.get_or_404(order_id)

        if not is_marketplace_manager(actor):
            is_courier = order.executor_id is not None and actor.id == order.executor_id
            if not is_courier:
                raise ForbiddenError("Only the assigned courier or a manager can update this order")
            if order.status not in {s.value for s in COURIER_STEPS}:
                raise ForbiddenError("Couriers can only update orders that are ready or on the way")

        ensure_advance(order.status, target)
        if target is MarketplaceOrderStatus.CONFIRMED and order.executor_id is None:
            raise ConflictError("Assign a courier before confirming", code="COURIER_REQUIRED")

        self._set_status(order, target)
        await self._notify_resident(order)
        await self.db.commit()
        await self.db.refresh(order)

        record_order_transition(order.status)
        logger.info("Order status changed", order_id=str(order.id), status=order.status)
        self._publish(order)
        return order

    async def cancel(
        self,
        order_id: uuid.UUID,
        actor: User,
        reason: str | None = None,
    ) -> MarketplaceOrder:
        """Residents cancel while the order is new; managers until delivery."""
        order = await self.get_or_404(order_id)
        if is_marketplace_manager(actor):
            ensure_cancel(order.status)
        elif actor.id == order.resident_id:
            ensure_cancel(order.status, resident=True)
        else:
            raise ForbiddenError("Only the resident or a manager can cancel this order")

        self._set_status(order, MarketplaceOrderStatus.CANCELLED)
        order.cancellation_reason = reason
        if actor.id != order.resident_id:
            await self._notify_resident(order)
        if order.executor_id:
            await self.notifications.notify(
                order.executor_id,
                NotificationType.ORDER_STATUS_CHANGED,
                "Order cancelled",
                f"Order {order.order_number} was cancelled",
                order_id=order.id,
            )
        await self.db.commit()
        await self.db.refresh(order)

        record_order_transition(order.status)
        logger.info("Order cancelled", order_id=str(order.id), actor_id=str(actor.id))
        self._publish(order)
        return order

    async def rate(
        self,
        order_id: uuid.UUID,
        actor: User,
        rating: int,
        feedback: str | None = None,
    ) -> MarketplaceOrder:
        order = await self.get_or_404(order_id)
        if actor.id != order.resident_id:
            raise ForbiddenError("Only the resident can rate this order")
        if order.status != MarketplaceOrderStatus.DELIVERED.value:
            raise ConflictError("Only delivered orders can be rated", code="ORDER_NOT_DELIVERED")

        order.rating = rating
        order.feedback = feedback
        await self.db.commit()
        await self.db.refresh(order)
        return order

    # ============== Helpers ==============

    @staticmethod
    def _set_status(order: MarketplaceOrder, status: MarketplaceOrderStatus) -> None:
        order.status = status.value
        setattr(order, f"{status.value}_at", utc_now())

    async def _notify_resident(self, order: MarketplaceOrder) -> None:
        label = STATUS_LABELS.get(MarketplaceOrderStatus(order.status), order.status)
        await self.notifications.notify(
            order.resident_id,
            NotificationType.ORDER_STATUS_CHANGED,
            "Order update",
            f"Order {order.order_number} is {label}",
            order_id=order.id,
        )

    @staticmethod
    def _publish(order: MarketplaceOrder) -> None:
        broker.publish(
            "order.updated",
            {
                "order_id": str(order.id),
                "order_number": order.order_number,
                "status": order.status,
            },
            user_ids=[order.resident_id, order.executor_id],
            roles=[UserRole.MARKETPLACE_MANAGER.value],
        )
