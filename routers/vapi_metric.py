from fastapi import APIRouter, Query
from datetime import datetime, timedelta, timezone
import logging
import requests

from analytics.aggregator import CallAnalyticsAggregator, check_window
from analytics.errors import InvalidArgumentError
from models.analytics import DashboardOverview
from models.vapi_metrics import (
    MetricsRequest,
    RecentCallsResponse,
    CallBreakdownResponse,
)
from services import vapi_client
from utils.responses import http_error

router = APIRouter()
logger = logging.getLogger("vapi_metrics")

DEFAULT_START = "2020-01-01T00:00:00Z"


def _fetch_calls(fetch, **params):
    try:
        return fetch(**params)
    except requests.RequestException as e:
        logger.error("VAPI calls request failed: %s", e)
        raise http_error("VAPI_REQUEST_FAILED")


# -----------------------------
# Metrics
# -----------------------------
@router.post("/metrics", response_model=DashboardOverview)
def get_metrics(req: MetricsRequest):
    now = datetime.now(timezone.utc)
    try:
        if req.days:
            window = check_window((now - timedelta(days=req.days), now))
        else:
            window = check_window((req.start or DEFAULT_START, req.end or now))
        compare_window = CallAnalyticsAggregator.previous_window(window) if req.compare_previous else None
    except InvalidArgumentError as e:
        raise http_error(e.code, str(e))

    fetch_from = compare_window.start if compare_window else window.start
    calls, truncated = _fetch_calls(vapi_client.list_all_calls, created_at_ge=fetch_from, created_at_le=window.end)

    try:
        overview = CallAnalyticsAggregator.overview(
            calls,
            window=window,
            compare_window=compare_window,
            granularity=req.granularity,
            recent_limit=req.recent_limit,
        )
    except InvalidArgumentError as e:
        raise http_error(e.code, str(e))

    logger.info(
        "Metrics computed",
        extra={"fetched": len(calls), "call_count": overview.summary.call_count, "truncated": truncated},
    )
    overview.truncated = truncated
    return overview


# -----------------------------
# Recent Calls
# -----------------------------
@router.get("/metrics/recent-calls", response_model=RecentCallsResponse)
def get_recent_calls(limit: int = Query(default=10, ge=0, le=1000)):
    calls = _fetch_calls(vapi_client.list_calls, limit=max(limit, 1))
    recent = CallAnalyticsAggregator.recent_calls(calls, limit)
    return {"recent_calls": recent, "skipped_count": recent.skipped_count, "skipped_ids": recent.skipped_ids}


# -----------------------------
# Call Breakdown
# -----------------------------
@router.get("/metrics/call/{call_id}/breakdown", response_model=CallBreakdownResponse)
def get_call_breakdown(call_id: str):
    try:
        row = vapi_client.get_call(call_id)
    except requests.RequestException as e:
        if e.response is not None and e.response.status_code == 404:
            raise http_error("CALL_NOT_FOUND", f"Call {call_id} not found")
        logger.error("VAPI call request failed for %s: %s", call_id, e)
        raise http_error("VAPI_REQUEST_FAILED")

    # A malformed call is reported with an empty breakdown
    records = [row] if isinstance(row, dict) else []
    breakdown = CallAnalyticsAggregator.cost_breakdown(records)
    summary = CallAnalyticsAggregator.summarize(records)
    return {"call_id": call_id, "total_cost": summary.total_cost, "breakdown": breakdown}
