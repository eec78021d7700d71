"""Error codes and HTTPException builders for the agent engine API."""

from __future__ import annotations

from enum import Enum

from fastapi import HTTPException, status


class ApiErrorCode(str, Enum):
    """Error taxonomy shared by pickup, assign, and complete."""

    BAD_REQUEST = "bad_request"
    NOT_FOUND = "not_found"
    INTERNAL_ERROR = "internal_error"


_STATUS_BY_CODE = {
    ApiErrorCode.BAD_REQUEST: status.HTTP_400_BAD_REQUEST,
    ApiErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ApiErrorCode.INTERNAL_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def api_error(
    code: ApiErrorCode,
    message: str,
    *,
    details: object | None = None,
) -> HTTPException:
    """Build an HTTPException whose detail is `{code, message, details?}`."""
    detail: dict[str, object] = {"code": code.value, "message": message}
    if details is not None:
        detail["details"] = details
    return HTTPException(
        status_code=_STATUS_BY_CODE[code],
        detail=detail,
        headers={"Cache-Control": "no-store"},
    )
