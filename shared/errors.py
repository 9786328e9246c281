"""
Shared error handling for the PS Validation service.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error response format."""

    request_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class ServiceException(Exception):
    """Base exception for validation services."""

    status_code: int = 400

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    def to_response(self, request_id: Optional[str] = None) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            request_id=request_id,
            code=self.code,
            message=self.message,
            details=self.details
        )


class RequestError(ServiceException):
    """Malformed or oversized requests."""

    def __init__(self, message: str = "Invalid request", details: Optional[Dict[str, Any]] = None):
        super().__init__("REQUEST_ERROR", message, details, status_code=400)


class RuleNotFoundError(ServiceException):
    """Lookup of a rule id that the catalog does not know."""

    def __init__(self, rule_id: str):
        super().__init__(
            "RULE_NOT_FOUND",
            f"Rule '{rule_id}' not found",
            {"rule_id": rule_id},
            status_code=404
        )


class RuleExecutionError(ServiceException):
    """A rule implementation raised while evaluating an entitlement set.

    Data-quality problems never end up here; this signals a defect in the
    rule itself.
    """

    def __init__(self, rule_id: str, error: str):
        self.rule_id = rule_id
        super().__init__(
            "RULE_EXECUTION_ERROR",
            f"Rule '{rule_id}' failed to execute",
            {"rule_id": rule_id, "error": error},
            status_code=500
        )
