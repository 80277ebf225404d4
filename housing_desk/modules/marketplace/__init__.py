"""
Marketplace Module - Courier fulfilment of resident orders.

Order -> courier assigned (confirmed) -> preparing -> ready -> delivering -> delivered
"""
from housing_desk.modules.marketplace.models import (
    MarketplaceOrder,
    MarketplaceOrderItem,
    MarketplaceOrderStatus,
)

__all__ = [
    "MarketplaceOrder",
    "MarketplaceOrderItem",
    "MarketplaceOrderStatus",
]
