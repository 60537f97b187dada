from decimal import Decimal
from pydantic import BaseModel, Field
from typing import Optional, List

from constants.analytics import DEFAULT_RECENT_LIMIT, MAX_METRICS_DAYS
from .analytics import CostCategoryItem, RecentCall
from .calls import Money


# -----------------------------
# Request
# -----------------------------
class MetricsRequest(BaseModel):
    start: Optional[str] = None  # ISO date string or e.g. "2 weeks ago"
    end: Optional[str] = None
    days: Optional[int] = Field(default=None, gt=0, le=MAX_METRICS_DAYS)   # e.g., last 7 days
    compare_previous: bool = True
    granularity: str = "month"
    recent_limit: int = DEFAULT_RECENT_LIMIT


# -----------------------------
# Responses
# -----------------------------
class RecentCallsResponse(BaseModel):
    recent_calls: List[RecentCall]
    skipped_count: int = 0
    skipped_ids: List[str] = Field(default_factory=list)


class CallBreakdownResponse(BaseModel):
    call_id: str
    total_cost: Money = Decimal(0)
    breakdown: List[CostCategoryItem]
