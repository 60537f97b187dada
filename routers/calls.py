from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase
import logging

from analytics.aggregator import CallAnalyticsAggregator, check_window, coerce_records, SkippedRecords
from analytics.errors import InvalidArgumentError
from constants.analytics import SUCCESS
from database import get_database
from models.analytics import DashboardOverview, StoredDashboardRequest
from models.calls import StoreRecordsRequest, StoreRecordsResponse
from services.call_store_service import CallStoreService
from utils.responses import http_error

router = APIRouter(prefix="/calls")
logger = logging.getLogger("calls")


# ---------------- Ingest ---------------- #
@router.post("", response_model=StoreRecordsResponse)
async def store_calls(req: StoreRecordsRequest, db: AsyncIOMotorDatabase = Depends(get_database)):
    skipped = SkippedRecords()
    records = coerce_records(req.records, skipped)
    stored = await CallStoreService.save_records(db, records)
    logger.info("Call records ingested", extra={"stored": stored, "skipped_count": skipped.count})
    return StoreRecordsResponse(
        message=SUCCESS["RECORDS_STORED"],
        stored=stored,
        skipped_count=skipped.count,
        skipped_ids=skipped.ids,
    )


# ---------------- Dashboard over stored records ---------------- #
@router.post("/dashboard", response_model=DashboardOverview)
async def stored_dashboard(req: StoredDashboardRequest, db: AsyncIOMotorDatabase = Depends(get_database)):
    try:
        window = check_window(req.window, "window")
        compare_window = check_window(req.compare_window, "compare_window")
        if compare_window is None and req.compare_previous and window is not None:
            compare_window = CallAnalyticsAggregator.previous_window(window)
    except InvalidArgumentError as e:
        raise http_error(e.code, str(e))

    windows = [window] + ([compare_window] if compare_window else [])
    records, truncated = await CallStoreService.list_records(db, windows)

    try:
        overview = CallAnalyticsAggregator.overview(
            records,
            window=window,
            compare_window=compare_window,
            granularity=req.granularity,
            recent_limit=req.recent_limit,
        )
    except InvalidArgumentError as e:
        raise http_error(e.code, str(e))
    overview.truncated = truncated
    return overview
