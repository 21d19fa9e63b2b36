"""Domain exception hierarchy for structured error responses."""

from __future__ import annotations


class AppException(Exception):
    """Base exception for all domain errors.

    Subclasses set ``code`` and ``status_code`` at the class level; callers
    provide ``message`` and an optional ``details`` list.
    """

    code: str = "APP_ERROR"
    status_code: int = 500

    def __init__(self, message: str, details: list[dict] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or []


class NotFoundException(AppException):
    code = "NOT_FOUND"
    status_code = 404


class ConflictException(AppException):
    code = "CONFLICT"
    status_code = 409


class DuplicateIdentifierException(ConflictException):
    code = "DUPLICATE_IDENTIFIER"


class ValidationException(AppException):
    code = "VALIDATION_ERROR"
    status_code = 422


class BusinessRuleException(AppException):
    code = "BUSINESS_RULE_VIOLATION"
    status_code = 422


class OverReceiptException(BusinessRuleException):
    """Receiving more units than are still outstanding on a line item."""

    code = "OVER_RECEIPT"

    def __init__(self, max_receivable: int) -> None:
        super().__init__(
            f"You can receive only {max_receivable}",
            details=[{"field": "receive_qty", "message": f"max_receivable={max_receivable}"}],
        )
        self.max_receivable = max_receivable


class UpstreamException(AppException):
    """The storefront API or file storage failed; the caller may re-submit."""

    code = "UPSTREAM_ERROR"
    status_code = 502
