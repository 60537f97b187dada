from motor.motor_asyncio import AsyncIOMotorDatabase
from bson.decimal128 import Decimal128
from typing import Any, Dict, List, Optional, Tuple
import logging

from models.calls import CallRecord, TimeWindow

logger = logging.getLogger(__name__)

COLLECTION = "call_records"
MAX_RECORDS = 50000


class CallStoreService:
    """Persist call records in MongoDB and read them back for aggregation."""

    # ---------- BSON HELPERS ----------
    @staticmethod
    def to_document(record: CallRecord) -> Dict[str, Any]:
        doc = record.model_dump()
        # Mongo has no native Decimal, Decimal128 keeps amounts exact
        doc["cost"] = Decimal128(record.cost)
        doc["costBreakdown"] = {k: Decimal128(v) for k, v in record.costBreakdown.items()}
        return doc

    @staticmethod
    def from_document(doc: Dict[str, Any]) -> Dict[str, Any]:
        """Turn a stored document back into a plain record mapping."""
        data = {k: v for k, v in doc.items() if k != "_id"}
        if isinstance(data.get("cost"), Decimal128):
            data["cost"] = data["cost"].to_decimal()
        breakdown = data.get("costBreakdown")
        if isinstance(breakdown, dict):
            data["costBreakdown"] = {
                k: v.to_decimal() if isinstance(v, Decimal128) else v
                for k, v in breakdown.items()
            }
        return data

    @staticmethod
    def window_query(windows: List[Optional[TimeWindow]]) -> Dict[str, Any]:
        """A None window means unbounded, so it matches everything."""
        if not windows or any(w is None for w in windows):
            return {}
        ranges = [{"startedAt": {"$gte": w.start, "$lte": w.end}} for w in windows]
        if len(ranges) == 1:
            return ranges[0]
        return {"$or": ranges}

    # ---------- SAVE ----------
    @staticmethod
    async def save_records(db: AsyncIOMotorDatabase, records: List[CallRecord]) -> int:
        """Upsert records by id; records without an id are inserted as-is."""
        stored = 0
        for record in records:
            doc = CallStoreService.to_document(record)
            if record.id:
                await db[COLLECTION].update_one({"id": record.id}, {"$set": doc}, upsert=True)
            else:
                await db[COLLECTION].insert_one(doc)
            stored += 1
        logger.info("Stored call records", extra={"stored": stored})
        return stored

    # ---------- READ ----------
    @staticmethod
    async def list_records(
        db: AsyncIOMotorDatabase,
        windows: Optional[List[Optional[TimeWindow]]] = None,
        limit: Optional[int] = None,
    ) -> Tuple[List[Dict[str, Any]], bool]:
        """Newest records first, at most ``limit`` (MAX_RECORDS by default).
        The returned flag is True when more records matched than were read."""
        limit = MAX_RECORDS if limit is None else limit
        query = CallStoreService.window_query(windows or [])
        # One extra document tells a full result from a truncated one
        cursor = db[COLLECTION].find(query, {"_id": 0}).sort("startedAt", -1).limit(limit + 1)
        docs = await cursor.to_list(length=limit + 1)
        truncated = len(docs) > limit
        if truncated:
            logger.warning("Call record read capped", extra={"limit": limit})
            docs = docs[:limit]
        logger.info("Loaded call records", extra={"count": len(docs)})
        return [CallStoreService.from_document(doc) for doc in docs], truncated
