"""
Marketplace Module - Database Models

Resident orders fulfilled and delivered by courier executors.
"""
import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from housing_desk.core.models import Base


class MarketplaceOrderStatus(str, Enum):
    """Delivery flow, in order; `cancelled` branches off before delivery."""
    NEW = "new"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    DELIVERING = "delivering"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class MarketplaceOrder(Base):
    __tablename__ = "marketplace_order"

    __table_args__ = (
        Index("idx_order_status_created", "status", "created_at"),
        Index("idx_order_executor_status", "executor_id", "status"),
    )

    order_number: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)

    # Resident snapshot
    resident_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("user.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    resident_name: Mapped[str] = mapped_column(String(200), nullable=False)
    resident_phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    resident_address: Mapped[str | None] = mapped_column(String(500), nullable=True)
    resident_apartment: Mapped[str | None] = mapped_column(String(20), nullable=True)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=MarketplaceOrderStatus.NEW.value,
    )

    # Courier
    executor_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("user.id", ondelete="SET NULL"),
        nullable=True,
    )
    executor_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    executor_phone: Mapped[str | None] = mapped_column(String(30), nullable=True)

    total_amount: Mapped[float] = mapped_column(
        Numeric(12, 2, asdecimal=False),
        nullable=False,
        default=0,
    )
    items_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    delivery_note: Mapped[str | None] = mapped_column(Text, nullable=True)

    rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    feedback: Mapped[str | None] = mapped_column(Text, nullable=True)

    # One timestamp per status
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    preparing_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    ready_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    delivering_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    delivered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancellation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    items: Mapped[list["MarketplaceOrderItem"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="MarketplaceOrderItem.created_at",
    )

    def __repr__(self) -> str:
        return f"<MarketplaceOrder {self.order_number} ({self.status})>"


class MarketplaceOrderItem(Base):
    __tablename__ = "marketplace_order_item"

    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("marketplace_order.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_name: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[float] = mapped_column(Numeric(12, 2, asdecimal=False), nullable=False)
    total: Mapped[float] = mapped_column(Numeric(12, 2, asdecimal=False), nullable=False)

    order: Mapped[MarketplaceOrder] = relationship(back_populates="items")
