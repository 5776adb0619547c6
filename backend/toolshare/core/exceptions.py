# backend/toolshare/core/exceptions.py
"""
Domain-specific exceptions for the ToolShare platform.

These exceptions provide clear, business-focused error messages
that can be caught and handled appropriately at the API layer.
Booking-scoped failures carry the current status and the actions
still open to the caller so the client can render its controls.
"""

from typing import Any, Dict, Iterable, Optional

from fastapi import HTTPException, status

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Raised when business validation fails."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(
        self,
        message: str = "Resource not found",
        code: Optional[str] = "NOT_FOUND",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, code=code, details=details)


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT


class BusinessRuleException(DomainException):
    """Raised when a business rule is violated."""

    status_code = HTTP_422_UNPROCESSABLE


class ForbiddenException(DomainException):
    """Raised when user lacks permission for an action."""

    status_code = status.HTTP_403_FORBIDDEN


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "message": self.message or "An error occurred processing your request",
                "code": self.code,
                "details": self.details if self.details else {},
            },
        )


def booking_error_details(
    current_status: Optional[str],
    allowed_actions: Optional[Iterable[str]],
    extra: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    details: Dict[str, Any] = dict(extra or {})
    if current_status is not None:
        details["current_status"] = current_status
    if allowed_actions is not None:
        details["allowed_actions"] = sorted(allowed_actions)
    return details


# Booking lifecycle exceptions


class InvalidTransitionException(ConflictException):
    """Raised when a booking transition is not defined from its current status."""

    def __init__(
        self,
        message: str,
        *,
        current_status: Optional[str] = None,
        allowed_actions: Optional[Iterable[str]] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="INVALID_TRANSITION",
            details=booking_error_details(current_status, allowed_actions, details),
        )


class CancellationNotAllowedException(BusinessRuleException):
    """Raised when the cancellation policy rejects a renter's cancellation."""

    def __init__(
        self,
        message: str = "Cancellation is no longer possible for this booking",
        *,
        current_status: Optional[str] = None,
        allowed_actions: Optional[Iterable[str]] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="CANCELLATION_NOT_ALLOWED",
            details=booking_error_details(current_status, allowed_actions, details),
        )


class ActivationTooEarlyException(BusinessRuleException):
    """Raised when a pickup is confirmed before the rental start date."""

    def __init__(self, start_date: str, today: str, *, current_status: Optional[str] = None):
        super().__init__(
            message="The rental cannot start before its start date",
            code="ACTIVATION_TOO_EARLY",
            details=booking_error_details(
                current_status, None, {"start_date": start_date, "today": today}
            ),
        )


class InvalidValidationCodeException(ValidationException):
    """Raised when the code presented at pickup does not match."""

    def __init__(self, *, current_status: Optional[str] = None):
        super().__init__(
            message="The validation code does not match this booking",
            code="INVALID_VALIDATION_CODE",
            details=booking_error_details(current_status, None),
        )


class AlreadyConfirmedException(ConflictException):
    """Raised when the renter's one-shot return confirmation is used twice."""

    def __init__(
        self,
        message: str = "The return of this tool has already been confirmed",
        *,
        current_status: Optional[str] = None,
        allowed_actions: Optional[Iterable[str]] = None,
    ):
        super().__init__(
            message=message,
            code="ALREADY_CONFIRMED",
            details=booking_error_details(current_status, allowed_actions),
        )


# Dispute exceptions


class DisputeAlreadyActiveException(ConflictException):
    """Raised when a booking already has an unresolved dispute."""

    def __init__(self, booking_id: str, *, current_status: Optional[str] = None):
        super().__init__(
            message="A claim is already open for this booking",
            code="DISPUTE_ALREADY_ACTIVE",
            details=booking_error_details(current_status, None, {"booking_id": booking_id}),
        )


class EvidenceTooLargeException(BusinessRuleException):
    """Raised when any evidence file exceeds the per-file size limit."""

    def __init__(self, filename: str, size_bytes: int, max_bytes: int):
        super().__init__(
            message=f"Evidence file {filename} is too large. Maximum size is {max_bytes} bytes.",
            code="EVIDENCE_TOO_LARGE",
            details={"filename": filename, "size_bytes": size_bytes, "max_bytes": max_bytes},
        )


# Review exceptions


class InvalidReviewInputException(ValidationException):
    """Raised when a review's rating or comment is malformed."""

    def __init__(self, message: str, *, field: str):
        super().__init__(message=message, code="INVALID_REVIEW_INPUT", details={"field": field})


class ReviewNotAllowedException(BusinessRuleException):
    """Raised when the reviewer is not eligible to review."""

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="REVIEW_NOT_ALLOWED", details=details or {})


class InvalidReasonCodeException(ValidationException):
    """Raised when a reason code is not part of the closed enumeration for its kind."""

    def __init__(self, kind: str, value: Any, allowed: Iterable[str]):
        super().__init__(
            message=f"Unknown {kind} reason: {value!r}",
            code="INVALID_REASON_CODE",
            details={"kind": kind, "value": value, "allowed": sorted(allowed)},
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """
