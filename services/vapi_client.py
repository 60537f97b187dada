import os
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import requests
from dotenv import load_dotenv

from utils.dateparse import parse_timestamp

load_dotenv()

logger = logging.getLogger(__name__)

BASE_URL = os.getenv("VAPI_BASE_URL", "https://api.vapi.ai")
REQUEST_TIMEOUT = 20
DEFAULT_CALL_LIMIT = 1000
MAX_CALL_PAGES = 50


def _headers() -> Dict[str, str]:
    return {
        "Authorization": f"Bearer {os.getenv('VAPI_API_KEY')}",
        "Content-Type": "application/json"
    }


def _iso(dt: Optional[datetime]) -> Optional[str]:
    return dt.isoformat().replace("+00:00", "Z") if dt else None


# --- Calls API --- #

def list_calls(
    created_at_ge: Optional[datetime] = None,
    created_at_le: Optional[datetime] = None,
    limit: int = DEFAULT_CALL_LIMIT,
    created_at_lt: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    """Fetch one page of raw call objects from VAPI, newest first.
    Non-2xx responses raise requests.HTTPError."""
    params = {"limit": limit}
    if created_at_ge:
        params["createdAtGe"] = _iso(created_at_ge)
    if created_at_le:
        params["createdAtLe"] = _iso(created_at_le)
    if created_at_lt:
        params["createdAtLt"] = _iso(created_at_lt)

    response = requests.get(f"{BASE_URL}/call", headers=_headers(), params=params, timeout=REQUEST_TIMEOUT)
    logger.info("🔎 Fetched calls: %s (params=%s)", response.status_code, params)
    response.raise_for_status()

    calls = response.json()
    if not isinstance(calls, list):
        logger.warning("Unexpected calls payload type: %s", type(calls).__name__)
        return []
    return calls


def list_all_calls(
    created_at_ge: Optional[datetime] = None,
    created_at_le: Optional[datetime] = None,
    page_size: Optional[int] = None,
    max_pages: Optional[int] = None,
) -> Tuple[List[Dict[str, Any]], bool]:
    """
    Page backwards through createdAtLt until the provider returns a short page.
    Returns the calls and whether the result was cut short (page cap reached,
    or a full page without createdAt to continue from).
    """
    page_size = page_size or DEFAULT_CALL_LIMIT
    max_pages = max_pages or MAX_CALL_PAGES
    calls: List[Dict[str, Any]] = []
    created_at_lt = None
    for _ in range(max_pages):
        page = list_calls(
            created_at_ge=created_at_ge,
            created_at_le=created_at_le,
            limit=page_size,
            created_at_lt=created_at_lt,
        )
        calls.extend(page)
        if len(page) < page_size:
            return calls, False

        stamps = [parse_timestamp(c.get("createdAt")) for c in page if isinstance(c, dict)]
        oldest = min((s for s in stamps if s is not None), default=None)
        if oldest is None or (created_at_lt is not None and oldest >= created_at_lt):
            logger.warning("Cannot page past %s calls, no older createdAt on the last page", len(calls))
            return calls, True
        created_at_lt = oldest

    logger.warning("Stopped paging VAPI calls after %s pages (%s calls)", max_pages, len(calls))
    return calls, True


def get_call(call_id: str) -> Dict[str, Any]:
    """Fetch one call with its cost breakdown."""
    response = requests.get(f"{BASE_URL}/call/{call_id}", headers=_headers(), timeout=REQUEST_TIMEOUT)
    logger.info("🔎 Fetched call %s: %s", call_id, response.status_code)
    response.raise_for_status()
    return response.json()
