"""
Marketplace order flow.

new -> confirmed -> preparing -> ready -> delivering -> delivered,
with `cancelled` reachable from any status before delivery.
"""
from housing_desk.core.exceptions import InvalidTransitionError
from housing_desk.modules.marketplace.models import MarketplaceOrderStatus

ORDER_FLOW: tuple[MarketplaceOrderStatus, ...] = (
    MarketplaceOrderStatus.NEW,
    MarketplaceOrderStatus.CONFIRMED,
    MarketplaceOrderStatus.PREPARING,
    MarketplaceOrderStatus.READY,
    MarketplaceOrderStatus.DELIVERING,
    MarketplaceOrderStatus.DELIVERED,
)

# Steps a courier may take on their own order
COURIER_STEPS: frozenset[MarketplaceOrderStatus] = frozenset({
    MarketplaceOrderStatus.READY,
    MarketplaceOrderStatus.DELIVERING,
})

CANCELLABLE: frozenset[MarketplaceOrderStatus] = frozenset(ORDER_FLOW[:-1])
RESIDENT_CANCELLABLE: frozenset[MarketplaceOrderStatus] = frozenset({MarketplaceOrderStatus.NEW})

# Orders a courier can still be (re)assigned to
ASSIGNABLE: frozenset[MarketplaceOrderStatus] = frozenset({
    MarketplaceOrderStatus.NEW,
    MarketplaceOrderStatus.CONFIRMED,
    MarketplaceOrderStatus.PREPARING,
    MarketplaceOrderStatus.READY,
})


def next_status(current: str) -> MarketplaceOrderStatus | None:
    """The following step of the flow, or None at the end / when cancelled."""
    for index, step in enumerate(ORDER_FLOW[:-1]):
        if step.value == current:
            return ORDER_FLOW[index + 1]
    return None


def ensure_advance(current: str, target: MarketplaceOrderStatus) -> MarketplaceOrderStatus:
    """Orders only move one step forward."""
    expected = next_status(current)
    if expected is None or target is not expected:
        raise InvalidTransitionError(
            "MarketplaceOrder",
            current,
            target.value,
            [step.value for step in ORDER_FLOW[:-1] if next_status(step.value) is target],
        )
    return target


def ensure_cancel(current: str, resident: bool = False) -> MarketplaceOrderStatus:
    allowed = RESIDENT_CANCELLABLE if resident else CANCELLABLE
    if current not in {s.value for s in allowed}:
        raise InvalidTransitionError(
            "MarketplaceOrder",
            current,
            MarketplaceOrderStatus.CANCELLED.value,
            sorted(s.value for s in allowed),
        )
    return MarketplaceOrderStatus.CANCELLED
