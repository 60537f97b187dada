# constants/analytics.py
from fastapi import status

GRANULARITIES = ("day", "month")

DEFAULT_RECENT_LIMIT = 10

# Upper bound for "last N days" provider metrics
MAX_METRICS_DAYS = 36500

UNKNOWN_LABEL = "unknown"

# Fields a distribution can be grouped by from the HTTP layer
DISTRIBUTION_KEYS = ("status", "type", "endedReason")

# Status vocabularies seen from the call provider
COMPLETED_STATUSES = {"ended", "completed"}
FAILED_STATUSES = {"failed", "error"}
IN_PROGRESS_STATUSES = {"in-progress", "in_progress", "ringing", "queued"}

# costBreakdown entries that are counters or totals, not amounts
NON_COST_KEYS = {
    "total",
    "llmPromptTokens",
    "llmCompletionTokens",
    "ttsCharacters",
    "promptTokens",
    "completionTokens",
    "totalTokens",
    "analysisCostBreakdown",
}

ERRORS = {
    # ------- Aggregation arguments -------
    "INVALID_WINDOW": {
        "status_code": status.HTTP_400_BAD_REQUEST,
        "detail": "Window start must not be after window end"
    },
    "UNSUPPORTED_GRANULARITY": {
        "status_code": status.HTTP_400_BAD_REQUEST,
        "detail": "Granularity must be one of: day, month"
    },
    "UNKNOWN_KEY": {
        "status_code": status.HTTP_400_BAD_REQUEST,
        "detail": "Unknown distribution key"
    },
    "INVALID_LIMIT": {
        "status_code": status.HTTP_400_BAD_REQUEST,
        "detail": "Limit must not be negative"
    },

    # ------- Record sources -------
    "VAPI_REQUEST_FAILED": {
        "status_code": status.HTTP_502_BAD_GATEWAY,
        "detail": "VAPI request failed"
    },
    "CALL_NOT_FOUND": {
        "status_code": status.HTTP_404_NOT_FOUND,
        "detail": "Call not found"
    },
    "STORE_UNAVAILABLE": {
        "status_code": status.HTTP_503_SERVICE_UNAVAILABLE,
        "detail": "Call record store is not configured"
    },
}

SUCCESS = {
    "RECORDS_STORED": "Call records stored",
}
