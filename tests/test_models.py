"""Tests for call record parsing."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError

from models.calls import CallRecord, TimeWindow
from utils.dateparse import parse_timestamp


class TestCallRecord:

    def test_provider_payload(self, vapi_calls):
        record = CallRecord.model_validate(vapi_calls[0])
        assert record.id == "c1"
        assert record.startedAt == datetime(2024, 3, 5, 10, 0, tzinfo=timezone.utc)
        assert record.cost == Decimal("0.15")
        assert record.duration == 150
        assert set(record.costBreakdown) == {"transport", "stt", "llm", "tts", "vapi"}

    def test_duration_alias(self):
        assert CallRecord.model_validate({"duration": 42}).duration == 42

    def test_reported_duration_wins_over_timestamps(self):
        record = CallRecord.model_validate(
            {"durationSeconds": 5, "startedAt": "2024-01-01T00:00:00Z", "endedAt": "2024-01-01T00:01:00Z"}
        )
        assert record.duration == 5

    def test_ongoing_call_has_zero_duration(self):
        assert CallRecord.model_validate({"startedAt": "2024-01-01T00:00:00Z"}).duration == 0

    def test_end_before_start_has_zero_duration(self):
        record = CallRecord.model_validate(
            {"startedAt": "2024-01-01T00:01:00Z", "endedAt": "2024-01-01T00:00:00Z"}
        )
        assert record.duration == 0

    def test_missing_fields_default(self):
        record = CallRecord.model_validate({})
        assert record.cost == 0
        assert record.duration == 0
        assert record.costBreakdown == {}
        assert record.status is None

    def test_unparseable_timestamp_is_missing(self):
        assert CallRecord.model_validate({"startedAt": "garbage"}).startedAt is None

    def test_naive_timestamp_is_utc(self):
        record = CallRecord.model_validate({"startedAt": "2024-01-01T12:00:00"})
        assert record.startedAt.tzinfo == timezone.utc

    @pytest.mark.parametrize("payload", [
        {"cost": -0.01},
        {"cost": "lots"},
        {"cost": float("nan")},
        {"cost": True},
        {"durationSeconds": -1},
        {"durationSeconds": {"value": 3}},
    ])
    def test_invalid_values_are_rejected(self, payload):
        with pytest.raises(ValidationError):
            CallRecord.model_validate(payload)

    def test_breakdown_drops_invalid_entries(self):
        record = CallRecord.model_validate({"costBreakdown": {"llm": "x", "stt": -1, "tts": 0.2}})
        assert record.costBreakdown == {"tts": Decimal("0.2")}

    def test_breakdown_not_a_mapping(self):
        assert CallRecord.model_validate({"costBreakdown": [1, 2]}).costBreakdown == {}

    def test_json_output_uses_numbers(self):
        record = CallRecord.model_validate({"cost": "1.50"})
        assert record.model_dump(mode="json")["cost"] == 1.5


class TestTimeWindow:

    def test_date_only_end_covers_the_day(self):
        window = TimeWindow(start="2024-01-01", end="2024-01-03")
        assert window.contains(datetime(2024, 1, 3, 23, 59, tzinfo=timezone.utc))
        assert not window.contains(datetime(2024, 1, 4, tzinfo=timezone.utc))

    def test_contains_is_inclusive(self):
        window = TimeWindow(start="2024-01-01T00:00:00Z", end="2024-01-02T00:00:00Z")
        assert window.contains(window.start)
        assert window.contains(window.end)
        assert not window.contains(None)

    def test_unparseable_bound(self):
        with pytest.raises(ValidationError):
            TimeWindow(start="garbage", end="2024-01-01")


class TestParseTimestamp:

    def test_iso_with_z(self):
        assert parse_timestamp("2024-03-05T10:00:00.000Z") == datetime(2024, 3, 5, 10, tzinfo=timezone.utc)

    def test_epoch_milliseconds(self):
        assert parse_timestamp(1704067200000) == datetime(2024, 1, 1, tzinfo=timezone.utc)

    def test_converts_offsets_to_utc(self):
        assert parse_timestamp("2024-01-01T05:00:00+05:00") == datetime(2024, 1, 1, tzinfo=timezone.utc)

    @pytest.mark.parametrize("raw", [None, "", "   ", True, [], "garbage"])
    def test_missing_or_invalid(self, raw):
        assert parse_timestamp(raw) is None
