from decimal import Decimal
from datetime import datetime
from typing import Annotated, Any, Iterable, List, Optional

from pydantic import BaseModel, Field, PlainSerializer

from constants.analytics import DEFAULT_RECENT_LIMIT
from .calls import Money, TimeWindow

# Shares in percent, rounded to cents and summing to exactly 100
Percent = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class ResultList(list):
    """A list of result items that also reports the records left out of it."""

    def __init__(self, items: Iterable = (), skipped_count: int = 0, skipped_ids: Optional[List[str]] = None):
        super().__init__(items)
        self.skipped_count = skipped_count
        self.skipped_ids = list(skipped_ids or [])


# -----------------------------
# Results
# -----------------------------
class AggregateResult(BaseModel):
    call_count: int = 0
    total_duration: float = 0.0
    total_cost: Money = Decimal(0)
    avg_cost: Money = Decimal(0)
    avg_duration: float = 0.0

    call_count_trend: float = 0.0
    total_duration_trend: float = 0.0
    total_cost_trend: float = 0.0
    avg_cost_trend: float = 0.0
    avg_duration_trend: float = 0.0

    skipped_count: int = 0
    skipped_ids: List[str] = Field(default_factory=list)


class DistributionItem(BaseModel):
    label: str
    count: int
    fraction: Percent


class TimeSeriesPoint(BaseModel):
    period_key: str
    count: int = 0
    cost: Money = Decimal(0)
    duration: float = 0.0
    success_count: int = 0
    success_rate: float = 0.0


class CostCategoryItem(BaseModel):
    category: str
    amount: Money
    fraction: Percent


class HourlyCount(BaseModel):
    hour: int  # 0-23, UTC
    count: int = 0


class StatusCounts(BaseModel):
    completed: int = 0
    failed: int = 0
    in_progress: int = 0
    other: int = 0


class RecentCall(BaseModel):
    id: Optional[str] = None
    started_at: Optional[datetime] = None
    status: Optional[str] = None
    type: Optional[str] = None
    ended_reason: Optional[str] = None
    duration_seconds: float = 0.0
    duration_minutes: float = 0.0
    cost: Money = Decimal(0)


class DashboardOverview(BaseModel):
    summary: AggregateResult
    status_counts: StatusCounts
    success_rate: float = 0.0
    status_distribution: List[DistributionItem] = Field(default_factory=list)
    type_distribution: List[DistributionItem] = Field(default_factory=list)
    time_series: List[TimeSeriesPoint] = Field(default_factory=list)
    cost_breakdown: List[CostCategoryItem] = Field(default_factory=list)
    recent_calls: List[RecentCall] = Field(default_factory=list)
    hourly_distribution: List[HourlyCount] = Field(default_factory=list)
    peak_hour: Optional[int] = None
    window: Optional[TimeWindow] = None
    compare_window: Optional[TimeWindow] = None
    # Set when the record source hit its read cap
    truncated: bool = False


# HTTP envelopes for list results, carrying the skip diagnostics
class DistributionResponse(BaseModel):
    items: List[DistributionItem] = Field(default_factory=list)
    skipped_count: int = 0
    skipped_ids: List[str] = Field(default_factory=list)


class TimeSeriesResponse(BaseModel):
    points: List[TimeSeriesPoint] = Field(default_factory=list)
    skipped_count: int = 0
    skipped_ids: List[str] = Field(default_factory=list)


class CostBreakdownResponse(BaseModel):
    items: List[CostCategoryItem] = Field(default_factory=list)
    skipped_count: int = 0
    skipped_ids: List[str] = Field(default_factory=list)


# -----------------------------
# Requests
# -----------------------------
# Records stay untyped here so one malformed record is skipped, not a 422
class SummaryRequest(BaseModel):
    records: List[Any] = Field(default_factory=list)
    window: Optional[TimeWindow] = None
    compare_window: Optional[TimeWindow] = None


class DistributionRequest(BaseModel):
    records: List[Any] = Field(default_factory=list)
    key: str = "status"


class TimeSeriesRequest(BaseModel):
    records: List[Any] = Field(default_factory=list)
    granularity: str = "day"
    fill_range: Optional[TimeWindow] = None


class CostBreakdownRequest(BaseModel):
    records: List[Any] = Field(default_factory=list)


class DashboardRequest(BaseModel):
    records: List[Any] = Field(default_factory=list)
    window: Optional[TimeWindow] = None
    compare_window: Optional[TimeWindow] = None
    granularity: str = "month"
    recent_limit: int = DEFAULT_RECENT_LIMIT


class StoredDashboardRequest(BaseModel):
    window: Optional[TimeWindow] = None
    compare_window: Optional[TimeWindow] = None
    compare_previous: bool = False
    granularity: str = "month"
    recent_limit: int = DEFAULT_RECENT_LIMIT
