from typing import Optional

from fastapi import HTTPException
from constants.analytics import ERRORS


def http_error(code: str, detail: Optional[str] = None) -> HTTPException:
    """
    Build the HTTPException for an ERRORS entry, optionally with a specific detail
    """
    error = dict(ERRORS[code])
    if detail:
        error["detail"] = detail
    return HTTPException(**error)
