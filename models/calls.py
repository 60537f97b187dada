from decimal import Decimal, InvalidOperation
from datetime import datetime, time, timezone
from typing import Annotated, Any, Dict, List, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    ValidationInfo,
    field_validator,
)

from constants.analytics import NON_COST_KEYS
from utils.dateparse import is_date_only, parse_timestamp

# Decimals stay exact in Python and go out as JSON numbers
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


def to_decimal(value: Any) -> Decimal:
    """Convert a provider amount to Decimal without binary float artifacts."""
    if value is None:
        return Decimal(0)
    if isinstance(value, bool):
        raise ValueError("amount must be a number")
    try:
        if isinstance(value, float):
            amount = Decimal(str(value))
        elif isinstance(value, str):
            amount = Decimal(value.strip())
        else:
            amount = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValueError(f"invalid amount: {value!r}")
    if not amount.is_finite():
        raise ValueError(f"invalid amount: {value!r}")
    return amount


class TimeWindow(BaseModel):
    """Inclusive [start, end] range. Ordering is checked by the aggregator."""
    start: datetime
    end: datetime

    model_config = ConfigDict(frozen=True)

    @field_validator("start", "end", mode="before")
    @classmethod
    def _parse_bound(cls, value, info: ValidationInfo):
        parsed = parse_timestamp(value)
        if parsed is None:
            raise ValueError(f"Cannot parse window bound: {value!r}")
        # A date-only end bound covers that whole day
        if info.field_name == "end" and is_date_only(value):
            parsed = datetime.combine(parsed.date(), time.max, tzinfo=timezone.utc)
        return parsed

    def contains(self, ts: Optional[datetime]) -> bool:
        return ts is not None and self.start <= ts <= self.end


class CallRecord(BaseModel):
    id: Optional[str] = None
    startedAt: Optional[datetime] = None
    endedAt: Optional[datetime] = None
    durationSeconds: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("durationSeconds", "duration")
    )
    cost: Money = Decimal(0)
    status: Optional[str] = None
    type: Optional[str] = None
    endedReason: Optional[str] = None
    costBreakdown: Dict[str, Money] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    @field_validator("id", "status", "type", "endedReason", mode="before")
    @classmethod
    def _as_label(cls, value):
        if value is None:
            return None
        return str(value)

    @field_validator("startedAt", "endedAt", mode="before")
    @classmethod
    def _parse_time(cls, value):
        # Unparseable timestamps count as missing, the record itself stays valid
        return parse_timestamp(value)

    @field_validator("durationSeconds", mode="before")
    @classmethod
    def _check_duration(cls, value):
        if value is None:
            return None
        if isinstance(value, bool):
            raise ValueError("durationSeconds must be a number")
        try:
            seconds = float(value)
        except (TypeError, ValueError):
            raise ValueError(f"invalid durationSeconds: {value!r}")
        if seconds != seconds or seconds in (float("inf"), float("-inf")):
            raise ValueError("durationSeconds must be finite")
        if seconds < 0:
            raise ValueError("durationSeconds must be non-negative")
        return seconds

    @field_validator("cost", mode="before")
    @classmethod
    def _check_cost(cls, value):
        amount = to_decimal(value)
        if amount < 0:
            raise ValueError("cost must be non-negative")
        return amount

    @field_validator("costBreakdown", mode="before")
    @classmethod
    def _clean_breakdown(cls, value):
        """Keep only per-category amounts; token counters and totals are dropped."""
        if not isinstance(value, dict):
            return {}
        cleaned = {}
        for category, raw in value.items():
            category = str(category)
            if category in NON_COST_KEYS or category.endswith(("Tokens", "Characters")):
                continue
            if isinstance(raw, dict):
                raw = raw.get("summary")
            try:
                amount = to_decimal(raw)
            except ValueError:
                continue
            if amount >= 0:
                cleaned[category] = amount
        return cleaned

    @property
    def duration(self) -> float:
        """Duration in seconds, derived from the timestamps when not reported."""
        if self.durationSeconds is not None:
            return self.durationSeconds
        if self.startedAt and self.endedAt and self.endedAt >= self.startedAt:
            return (self.endedAt - self.startedAt).total_seconds()
        return 0.0


# -----------------------------
# Store requests / responses
# -----------------------------
class StoreRecordsRequest(BaseModel):
    records: List[Any] = Field(default_factory=list)


class StoreRecordsResponse(BaseModel):
    message: str
    stored: int
    skipped_count: int = 0
    skipped_ids: List[str] = Field(default_factory=list)
