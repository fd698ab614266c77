"""ServiceResult and ServiceError, the contract every use case returns.

INVARIANT: All service-layer methods return ServiceResult. Domain
exceptions never cross this boundary; the CLI only sees ``ok``/``error``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ErrorCode:
    """Error codes carried by :class:`ServiceError`."""

    INVALID_BILL = "INVALID_BILL"
    INVALID_CUSTOMER = "INVALID_CUSTOMER"
    CUSTOMER_NOT_FOUND = "CUSTOMER_NOT_FOUND"
    BILL_NOT_FOUND = "BILL_NOT_FOUND"
    CUSTOMER_EXISTS = "CUSTOMER_EXISTS"


class ServiceError(BaseModel):
    """Structured error payload within a ServiceResult."""

    model_config = {"frozen": True}

    code: str
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)


class ServiceResult(BaseModel):
    """Return type of every service operation.

    Attributes:
        ok: Whether the operation succeeded.
        op: Name of the operation (e.g. ``"calculate_bill"``).
        data: Operation-specific payload on success.
        warnings: Non-fatal issues, such as a failing plugin hook.
        error: Structured error if ``ok`` is False.
        meta: Optional metadata (counts, store path).
    """

    model_config = {"frozen": True}

    ok: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None
    meta: dict[str, Any] | None = None

    @classmethod
    def failure(
        cls,
        op: str,
        code: str,
        message: str,
        **detail: Any,
    ) -> ServiceResult:
        return cls(ok=False, op=op, error=ServiceError(code=code, message=message, detail=detail))
