"""Tests for the MongoDB-backed call record store."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from bson.decimal128 import Decimal128

from models.calls import CallRecord, TimeWindow
from services.call_store_service import COLLECTION, CallStoreService


class TestDocuments:

    def test_decimal128_round_trip(self, vapi_calls):
        record = CallRecord.model_validate(vapi_calls[0])
        doc = CallStoreService.to_document(record)
        assert isinstance(doc["cost"], Decimal128)
        assert isinstance(doc["costBreakdown"]["llm"], Decimal128)

        restored = CallRecord.model_validate(CallStoreService.from_document({"_id": "x", **doc}))
        assert restored == record

    def test_window_query(self):
        january = TimeWindow(start="2024-01-01", end="2024-01-31")
        december = TimeWindow(start="2023-12-01", end="2023-12-31")
        assert CallStoreService.window_query([]) == {}
        assert CallStoreService.window_query([None]) == {}
        assert CallStoreService.window_query([january]) == {
            "startedAt": {"$gte": january.start, "$lte": january.end}
        }
        assert len(CallStoreService.window_query([january, december])["$or"]) == 2


class TestService:

    @pytest.mark.asyncio
    async def test_upsert_by_id(self, fake_db):
        first = CallRecord.model_validate({"id": "a", "cost": "1.00", "startedAt": "2024-01-01"})
        second = CallRecord.model_validate({"id": "a", "cost": "2.00", "startedAt": "2024-01-01"})
        anonymous = CallRecord.model_validate({"cost": "3.00"})

        assert await CallStoreService.save_records(fake_db, [first, second, anonymous]) == 3
        assert len(fake_db[COLLECTION].docs) == 2

        records, truncated = await CallStoreService.list_records(fake_db)
        assert truncated is False
        assert [r.get("id") for r in records] == ["a", None]
        assert records[0]["cost"] == Decimal("2.00")

    @pytest.mark.asyncio
    async def test_list_by_window(self, fake_db, vapi_calls):
        records = [CallRecord.model_validate(c) for c in vapi_calls]
        await CallStoreService.save_records(fake_db, records)

        march = TimeWindow(start="2024-03-01", end="2024-03-31")
        listed, _ = await CallStoreService.list_records(fake_db, [march])
        assert [r["id"] for r in listed] == ["c2", "c1"]

    @pytest.mark.asyncio
    async def test_read_cap_is_reported(self, fake_db, vapi_calls):
        await CallStoreService.save_records(fake_db, [CallRecord.model_validate(c) for c in vapi_calls])

        listed, truncated = await CallStoreService.list_records(fake_db, limit=2)
        assert [r["id"] for r in listed] == ["c2", "c1"]
        assert truncated is True

        listed, truncated = await CallStoreService.list_records(fake_db, limit=3)
        assert len(listed) == 3
        assert truncated is False


class TestRoutes:

    def test_store_then_dashboard(self, client, vapi_calls):
        response = client.post("/calls", json={"records": vapi_calls + [{"id": "bad", "cost": "x"}]})
        assert response.status_code == 200
        body = response.json()
        assert body["stored"] == 3
        assert body["skipped_count"] == 1
        assert body["skipped_ids"] == ["bad"]

        dashboard = client.post(
            "/calls/dashboard",
            json={"window": {"start": "2024-03-01", "end": "2024-03-31"}, "compare_previous": True},
        ).json()
        assert dashboard["summary"]["call_count"] == 2
        assert dashboard["summary"]["call_count_trend"] == pytest.approx(100.0)
        assert dashboard["compare_window"]["end"].startswith("2024-02-29T23:59:59")
        assert dashboard["truncated"] is False

    def test_dashboard_flags_capped_read(self, client, vapi_calls, monkeypatch):
        client.post("/calls", json={"records": vapi_calls})
        monkeypatch.setattr("services.call_store_service.MAX_RECORDS", 2)
        body = client.post("/calls/dashboard", json={}).json()
        assert body["truncated"] is True
        assert body["summary"]["call_count"] == 2

    def test_dashboard_without_window(self, client, vapi_calls):
        client.post("/calls", json={"records": vapi_calls})
        body = client.post("/calls/dashboard", json={}).json()
        assert body["summary"]["call_count"] == 3
        assert [p["period_key"] for p in body["time_series"]] == ["2024-02", "2024-03"]

    def test_inverted_window(self, client):
        response = client.post("/calls/dashboard", json={"window": {"start": "2024-02-01", "end": "2024-01-01"}})
        assert response.status_code == 400

    def test_store_disabled(self, app, client, vapi_calls):
        app.mongodb = None
        assert client.post("/calls", json={"records": vapi_calls}).status_code == 503
        assert client.post("/calls/dashboard", json={}).status_code == 503

    def test_stored_at_is_utc(self, client, fake_db, vapi_calls):
        client.post("/calls", json={"records": vapi_calls[:1]})
        stored = fake_db[COLLECTION].docs[0]
        assert stored["startedAt"] == datetime(2024, 3, 5, 10, tzinfo=timezone.utc)
