from fastapi import APIRouter
import logging

from analytics.aggregator import CallAnalyticsAggregator
from analytics.errors import InvalidArgumentError
from models.analytics import (
    AggregateResult,
    CostBreakdownRequest,
    CostBreakdownResponse,
    DashboardOverview,
    DashboardRequest,
    DistributionRequest,
    DistributionResponse,
    SummaryRequest,
    TimeSeriesRequest,
    TimeSeriesResponse,
)
from constants.analytics import DISTRIBUTION_KEYS
from utils.responses import http_error

router = APIRouter(prefix="/analytics")
logger = logging.getLogger("analytics")


# ---------------- Aggregations over posted records ---------------- #
@router.post("/summary", response_model=AggregateResult)
def summarize_calls(req: SummaryRequest):
    try:
        result = CallAnalyticsAggregator.summarize(req.records, req.window, req.compare_window)
    except InvalidArgumentError as e:
        logger.warning("Invalid summary request: %s", e)
        raise http_error(e.code, str(e))
    logger.info("Summary computed", extra={"call_count": result.call_count, "skipped_count": result.skipped_count})
    return result


@router.post("/distribution", response_model=DistributionResponse)
def call_distribution(req: DistributionRequest):
    # Only plain label fields are exposed over HTTP
    if req.key not in DISTRIBUTION_KEYS:
        raise http_error("UNKNOWN_KEY", f"Unknown distribution key: {req.key!r}")
    items = CallAnalyticsAggregator.distribution(req.records, req.key)
    return DistributionResponse(items=items, skipped_count=items.skipped_count, skipped_ids=items.skipped_ids)


@router.post("/time-series", response_model=TimeSeriesResponse)
def call_time_series(req: TimeSeriesRequest):
    try:
        points = CallAnalyticsAggregator.time_series(req.records, req.granularity, req.fill_range)
    except InvalidArgumentError as e:
        logger.warning("Invalid time series request: %s", e)
        raise http_error(e.code, str(e))
    return TimeSeriesResponse(points=points, skipped_count=points.skipped_count, skipped_ids=points.skipped_ids)


@router.post("/cost-breakdown", response_model=CostBreakdownResponse)
def cost_breakdown(req: CostBreakdownRequest):
    items = CallAnalyticsAggregator.cost_breakdown(req.records)
    return CostBreakdownResponse(items=items, skipped_count=items.skipped_count, skipped_ids=items.skipped_ids)


@router.post("/dashboard", response_model=DashboardOverview)
def dashboard(req: DashboardRequest):
    try:
        return CallAnalyticsAggregator.overview(
            req.records,
            window=req.window,
            compare_window=req.compare_window,
            granularity=req.granularity,
            recent_limit=req.recent_limit,
        )
    except InvalidArgumentError as e:
        logger.warning("Invalid dashboard request: %s", e)
        raise http_error(e.code, str(e))
