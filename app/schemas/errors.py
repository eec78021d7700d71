"""Structured error payload schemas used by API responses."""

from __future__ import annotations

from typing import Any

from pydantic import Field
from sqlmodel import SQLModel
from sqlmodel._compat import SQLModelConfig


class ApiErrorDetail(SQLModel):
    """Machine-readable error detail carried inside `detail`."""

    code: str = Field(
        description="Error code: bad_request, not_found, or internal_error.",
        examples=["not_found"],
    )
    message: str = Field(examples=["Task not found"])
    details: Any | None = Field(
        default=None,
        description="Optional underlying error text for diagnostics.",
    )


class ApiErrorResponse(SQLModel):
    """Error envelope returned by every failing API call."""

    model_config = SQLModelConfig(
        json_schema_extra={
            "x-llm-intent": "error_handling",
            "x-when-to-use": [
                "Branch on `detail.code` when an agent route call fails",
            ],
        },
    )

    detail: ApiErrorDetail | str | list[object]
    request_id: str | None = Field(
        default=None,
        description="Request correlation identifier injected by middleware.",
    )
