"""
Call analytics aggregation.

Turns call records into the derived metrics the dashboard renders: scalar
totals and averages, period-over-period trends, categorical distributions,
cost-category breakdowns, hour-of-day load and day/month time series.

Every operation is a pure function of its arguments. Malformed records are
skipped and reported, never raised; only invalid arguments raise
InvalidArgumentError.
"""
import logging
import math
from collections import Counter, defaultdict
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Dict, Iterable, List, Optional, Tuple, Union

from pydantic import ValidationError

from analytics.errors import InvalidArgumentError
from constants.analytics import (
    COMPLETED_STATUSES,
    DEFAULT_RECENT_LIMIT,
    FAILED_STATUSES,
    GRANULARITIES,
    IN_PROGRESS_STATUSES,
    UNKNOWN_LABEL,
)
from models.analytics import (
    AggregateResult,
    CostCategoryItem,
    DashboardOverview,
    DistributionItem,
    HourlyCount,
    RecentCall,
    ResultList,
    StatusCounts,
    TimeSeriesPoint,
)
from models.calls import CallRecord, TimeWindow

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal(0)
HUNDRED = Decimal(100)

WindowArg = Union[TimeWindow, Mapping, Tuple, None]
KeyArg = Union[str, Callable[[CallRecord], object]]


# ---------- ARGUMENT CHECKS ----------
def check_window(window: WindowArg, name: str = "window") -> Optional[TimeWindow]:
    """Normalize a window argument and reject start > end."""
    if window is None:
        return None
    try:
        if isinstance(window, TimeWindow):
            checked = window
        elif isinstance(window, Mapping):
            checked = TimeWindow.model_validate(window)
        elif isinstance(window, (tuple, list)) and len(window) == 2:
            checked = TimeWindow(start=window[0], end=window[1])
        else:
            raise InvalidArgumentError("INVALID_WINDOW", f"{name} must be a (start, end) range")
    except ValidationError as e:
        raise InvalidArgumentError("INVALID_WINDOW", f"{name} has unparseable bounds") from e

    if checked.start > checked.end:
        raise InvalidArgumentError(
            "INVALID_WINDOW",
            f"{name} start {checked.start.isoformat()} is after end {checked.end.isoformat()}",
        )
    return checked


def check_granularity(granularity: str) -> str:
    if granularity not in GRANULARITIES:
        raise InvalidArgumentError(
            "UNSUPPORTED_GRANULARITY", f"Unsupported granularity: {granularity!r}"
        )
    return granularity


def check_limit(limit: int) -> int:
    if limit is None or limit < 0:
        raise InvalidArgumentError("INVALID_LIMIT", f"Invalid limit: {limit!r}")
    return limit


def key_function(key: KeyArg) -> Callable[[CallRecord], object]:
    if callable(key):
        return key
    if isinstance(key, str) and key in CallRecord.model_fields:
        return lambda record: getattr(record, key)
    raise InvalidArgumentError("UNKNOWN_KEY", f"Unknown distribution key: {key!r}")


# ---------- RECORD HELPERS ----------
class SkippedRecords:
    """Diagnostics for records left out of a computation."""

    def __init__(self):
        self.count = 0
        self.ids: List[str] = []

    def add(self, record_id) -> None:
        self.count += 1
        if record_id is not None:
            self.ids.append(str(record_id))


def coerce_records(records: Optional[Iterable], skipped: Optional[SkippedRecords] = None) -> List[CallRecord]:
    """Validate raw records; malformed ones are logged and counted, not raised."""
    skipped = skipped if skipped is not None else SkippedRecords()
    valid: List[CallRecord] = []
    for item in records or ():
        if isinstance(item, CallRecord):
            valid.append(item)
            continue
        if not isinstance(item, Mapping):
            skipped.add(None)
            logger.warning("Skipping call record that is not a mapping", extra={"record_type": type(item).__name__})
            continue
        try:
            valid.append(CallRecord.model_validate(dict(item)))
        except ValidationError as e:
            skipped.add(item.get("id"))
            logger.warning(
                "Skipping malformed call record",
                extra={"call_id": item.get("id"), "errors": e.error_count()},
            )
    return valid


def select_records(
    records: List[CallRecord],
    window: Optional[TimeWindow],
    skipped: SkippedRecords,
    require_timestamp: bool = False,
) -> List[CallRecord]:
    """Keep records starting inside window. Without a window every record is
    kept unless a timestamp is required (bucketing needs one)."""
    if window is None and not require_timestamp:
        return list(records)
    selected = []
    for record in records:
        if record.startedAt is None:
            skipped.add(record.id)
            continue
        if window is None or window.contains(record.startedAt):
            selected.append(record)
    if skipped.count:
        logger.debug("Records without startedAt skipped", extra={"skipped_count": skipped.count})
    return selected


@dataclass(frozen=True)
class _Totals:
    count: int = 0
    duration: float = 0.0
    cost: Decimal = ZERO

    @classmethod
    def of(cls, records: List[CallRecord]) -> "_Totals":
        return cls(
            count=len(records),
            duration=math.fsum(r.duration for r in records),
            cost=sum((r.cost for r in records), ZERO),
        )

    @property
    def avg_cost(self) -> Decimal:
        return self.cost / self.count if self.count else ZERO

    @property
    def avg_duration(self) -> float:
        return self.duration / self.count if self.count else 0.0


def running_fractions(values: List) -> List[Decimal]:
    """Percent shares rounded on the running total, so they add up to exactly 100."""
    total = sum(values, ZERO)
    if not total:
        return [ZERO.quantize(CENT) for _ in values]
    fractions = []
    running = ZERO
    previous = ZERO.quantize(CENT)
    for value in values:
        running += value
        cumulative = (running * HUNDRED / total).quantize(CENT, rounding=ROUND_HALF_UP)
        fractions.append(cumulative - previous)
        previous = cumulative
    return fractions


def period_key(ts: datetime, granularity: str) -> str:
    if granularity == "day":
        return f"{ts.year:04d}-{ts.month:02d}-{ts.day:02d}"
    return f"{ts.year:04d}-{ts.month:02d}"


def period_range(window: TimeWindow, granularity: str) -> List[str]:
    """Every period key from window.start to window.end, inclusive."""
    keys = []
    if granularity == "day":
        day: date = window.start.date()
        last = window.end.date()
        while day <= last:
            keys.append(period_key(datetime(day.year, day.month, day.day), "day"))
            day += timedelta(days=1)
        return keys

    year, month = window.start.year, window.start.month
    while (year, month) <= (window.end.year, window.end.month):
        keys.append(f"{year:04d}-{month:02d}")
        year, month = (year + 1, 1) if month == 12 else (year, month + 1)
    return keys


def _classify_status(status: Optional[str]) -> str:
    value = (status or "").lower()
    if value in COMPLETED_STATUSES:
        return "completed"
    if value in FAILED_STATUSES:
        return "failed"
    if value in IN_PROGRESS_STATUSES:
        return "in_progress"
    return "other"


_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def _busiest_hour(hours: List[HourlyCount]) -> Optional[int]:
    if not hours:
        return None
    return max(hours, key=lambda h: (h.count, -h.hour)).hour


def trend(current, previous) -> float:
    """Percent change from previous to current; 0 when previous is 0."""
    if not previous:
        return 0.0
    return float((current - previous) / previous * 100)


def _summarize(
    valid: List[CallRecord],
    skipped: SkippedRecords,
    window: Optional[TimeWindow],
    compare_window: Optional[TimeWindow],
) -> Tuple[AggregateResult, List[CallRecord]]:
    selected = select_records(valid, window, skipped)
    current = _Totals.of(selected)
    result = {
        "call_count": current.count,
        "total_duration": current.duration,
        "total_cost": current.cost,
        "avg_cost": current.avg_cost,
        "avg_duration": current.avg_duration,
        "skipped_count": skipped.count,
        "skipped_ids": skipped.ids,
    }

    if compare_window is not None:
        # Diagnostics describe the current window only
        previous = _Totals.of(select_records(valid, compare_window, SkippedRecords()))
        result.update(
            call_count_trend=trend(current.count, previous.count),
            total_duration_trend=trend(current.duration, previous.duration),
            total_cost_trend=trend(current.cost, previous.cost),
            avg_cost_trend=trend(current.avg_cost, previous.avg_cost),
            avg_duration_trend=trend(current.avg_duration, previous.avg_duration),
        )

    logger.debug(
        "Summarized call records",
        extra={"call_count": current.count, "skipped_count": skipped.count},
    )
    return AggregateResult(**result), selected


class CallAnalyticsAggregator:
    """Stateless aggregation of call records into dashboard metrics."""

    trend = staticmethod(trend)

    @staticmethod
    def previous_window(window: WindowArg) -> TimeWindow:
        """The window of the same length ending just before ``window`` starts."""
        window = check_window(window)
        if window is None:
            raise InvalidArgumentError("INVALID_WINDOW", "A window is required to derive the previous one")
        try:
            end = window.start - timedelta(microseconds=1)
            return TimeWindow(start=end - (window.end - window.start), end=end)
        except OverflowError:
            raise InvalidArgumentError("INVALID_WINDOW", "The previous window would start before year 1")

    # ---------- SCALARS ----------
    @staticmethod
    def summarize(records, window: WindowArg = None, compare_window: WindowArg = None) -> AggregateResult:
        window = check_window(window, "window")
        compare_window = check_window(compare_window, "compare_window")

        skipped = SkippedRecords()
        result, _ = _summarize(coerce_records(records, skipped), skipped, window, compare_window)
        return result

    # ---------- DISTRIBUTIONS ----------
    @staticmethod
    def distribution(records, key: KeyArg) -> ResultList:
        """Counts per label as DistributionItems; the list carries skip diagnostics."""
        label_of = key_function(key)
        skipped = SkippedRecords()
        counts: Counter = Counter()
        for record in coerce_records(records, skipped):
            label = label_of(record)
            counts[UNKNOWN_LABEL if label is None or label == "" else str(label)] += 1

        # most_common keeps first-seen order for equal counts
        ordered = counts.most_common()
        fractions = running_fractions([Decimal(count) for _, count in ordered])
        return ResultList(
            (
                DistributionItem(label=label, count=count, fraction=fraction)
                for (label, count), fraction in zip(ordered, fractions)
            ),
            skipped.count,
            skipped.ids,
        )

    @staticmethod
    def hourly_distribution(records) -> ResultList:
        """Calls per UTC hour of day, ascending by hour. Undated calls are skipped."""
        skipped = SkippedRecords()
        dated = select_records(coerce_records(records, skipped), None, skipped, require_timestamp=True)
        counts = Counter(record.startedAt.hour for record in dated)
        return ResultList(
            (HourlyCount(hour=hour, count=counts[hour]) for hour in sorted(counts)),
            skipped.count,
            skipped.ids,
        )

    @staticmethod
    def peak_hour(records) -> Optional[int]:
        """The busiest UTC hour; the earliest one wins a tie. None without dated calls."""
        return _busiest_hour(CallAnalyticsAggregator.hourly_distribution(records))

    @staticmethod
    def cost_breakdown(records) -> ResultList:
        """Per-category spend summed from costBreakdown, largest first."""
        skipped = SkippedRecords()
        totals: Dict[str, Decimal] = {}
        for record in coerce_records(records, skipped):
            for category, amount in record.costBreakdown.items():
                totals[category] = totals.get(category, ZERO) + amount

        ordered = sorted(totals.items(), key=lambda item: item[1], reverse=True)
        fractions = running_fractions([amount for _, amount in ordered])
        return ResultList(
            (
                CostCategoryItem(category=category, amount=amount, fraction=fraction)
                for (category, amount), fraction in zip(ordered, fractions)
            ),
            skipped.count,
            skipped.ids,
        )

    @staticmethod
    def status_counts(records) -> StatusCounts:
        counts = Counter(_classify_status(r.status) for r in coerce_records(records))
        return StatusCounts(**counts)

    @staticmethod
    def success_rate(records) -> float:
        valid = coerce_records(records)
        if not valid:
            return 0.0
        completed = sum(1 for r in valid if _classify_status(r.status) == "completed")
        return completed / len(valid) * 100

    # ---------- TIME SERIES ----------
    @staticmethod
    def time_series(records, granularity: str = "day", fill_range: WindowArg = None) -> ResultList:
        granularity = check_granularity(granularity)
        fill_range = check_window(fill_range, "fill_range")

        skipped = SkippedRecords()
        valid = coerce_records(records, skipped)
        buckets: Dict[str, List[CallRecord]] = defaultdict(list)
        for record in select_records(valid, fill_range, skipped, require_timestamp=True):
            buckets[period_key(record.startedAt, granularity)].append(record)

        if skipped.count:
            logger.warning("Records left out of time series", extra={"skipped_count": skipped.count})

        keys = sorted(buckets) if fill_range is None else period_range(fill_range, granularity)
        points = ResultList(skipped_count=skipped.count, skipped_ids=skipped.ids)
        for key in keys:
            bucket = buckets.get(key, [])
            totals = _Totals.of(bucket)
            succeeded = sum(1 for r in bucket if _classify_status(r.status) == "completed")
            points.append(
                TimeSeriesPoint(
                    period_key=key,
                    count=totals.count,
                    cost=totals.cost,
                    duration=totals.duration,
                    success_count=succeeded,
                    success_rate=succeeded / totals.count * 100 if totals.count else 0.0,
                )
            )
        return points

    # ---------- RECENT CALLS ----------
    @staticmethod
    def recent_calls(records, limit: int = DEFAULT_RECENT_LIMIT) -> ResultList:
        """Newest calls first; calls without startedAt go last."""
        limit = check_limit(limit)
        skipped = SkippedRecords()
        ordered = sorted(
            coerce_records(records, skipped),
            key=lambda r: (r.startedAt is not None, r.startedAt or _OLDEST),
            reverse=True,
        )
        return ResultList(
            (
                RecentCall(
                    id=r.id,
                    started_at=r.startedAt,
                    status=r.status,
                    type=r.type,
                    ended_reason=r.endedReason,
                    duration_seconds=r.duration,
                    duration_minutes=round(r.duration / 60, 2),
                    cost=r.cost,
                )
                for r in ordered[:limit]
            ),
            skipped.count,
            skipped.ids,
        )

    # ---------- DASHBOARD ----------
    @staticmethod
    def overview(
        records,
        window: WindowArg = None,
        compare_window: WindowArg = None,
        granularity: str = "month",
        recent_limit: int = DEFAULT_RECENT_LIMIT,
    ) -> DashboardOverview:
        """Everything the dashboard overview page shows, over one window."""
        window = check_window(window, "window")
        compare_window = check_window(compare_window, "compare_window")
        granularity = check_granularity(granularity)
        recent_limit = check_limit(recent_limit)

        aggregator = CallAnalyticsAggregator
        skipped = SkippedRecords()
        summary, current = _summarize(coerce_records(records, skipped), skipped, window, compare_window)
        hours = aggregator.hourly_distribution(current)

        return DashboardOverview(
            summary=summary,
            status_counts=aggregator.status_counts(current),
            success_rate=aggregator.success_rate(current),
            status_distribution=aggregator.distribution(current, "status"),
            type_distribution=aggregator.distribution(current, "type"),
            time_series=aggregator.time_series(current, granularity),
            cost_breakdown=aggregator.cost_breakdown(current),
            recent_calls=aggregator.recent_calls(current, recent_limit),
            hourly_distribution=hours,
            peak_hour=_busiest_hour(hours),
            window=window,
            compare_window=compare_window,
        )
