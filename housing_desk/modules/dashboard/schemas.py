"""Dashboard Schemas."""
from pydantic import BaseModel


class RequestSummary(BaseModel):
    total_requests: int = 0
    new_requests: int = 0
    in_progress: int = 0
    pending_approval: int = 0
    completed_today: int = 0
    cancelled: int = 0
    by_category: dict[str, int] = {}


class ExecutorSummary(BaseModel):
    total: int = 0
    available: int = 0
    busy: int = 0
    offline: int = 0


class MarketplaceSummary(BaseModel):
    awaiting_action: int = 0
    delivering: int = 0
    delivered_today: int = 0


class DashboardSummaryResponse(BaseModel):
    requests: RequestSummary
    executors: ExecutorSummary
    marketplace: MarketplaceSummary
