# backend/rackbook/core/exceptions.py
"""
Domain-specific exceptions for the rackbook capacity engine.

Validators never raise for a failed check; they return structured results.
The exceptions below come from the submission gate, from missing rows and
from an unreadable store. Each maps to an HTTP response for an API layer.
"""

from typing import Any, Dict, List, Optional

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
        """Convert to an HTTPException using the class status code."""
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


class ConflictException(DomainException):
    """The request collides with stored bookings or schedules."""

    status_code = status.HTTP_409_CONFLICT


class BusinessRuleException(DomainException):
    """The request is well-formed but a capacity rule forbids it."""

    status_code = HTTP_422_UNPROCESSABLE


class ServiceException(DomainException):
    """A service could not finish its work; maps to 500 unless overridden."""


# Specific business exceptions


class CapacityExceededException(BusinessRuleException):
    """Raised when a booking series would exceed the side's capacity ceiling."""

    def __init__(self, max_used: int, max_limit: Optional[int], violations: List[Dict[str, Any]]):
        over_by = max_used - max_limit if max_limit is not None else 0
        plural = "" if over_by == 1 else "s"
        super().__init__(
            message=(
                f"This booking would exceed the facility capacity by {over_by} "
                f"athlete{plural} at peak times"
            ),
            code="CAPACITY_EXCEEDED",
            details={
                "max_used": max_used,
                "max_limit": max_limit,
                "violations": violations,
            },
        )


class CapacityNotConfiguredException(BusinessRuleException):
    """Raised when no ceiling can be resolved and policy requires one."""

    def __init__(self, side_id: int, period_type: str):
        super().__init__(
            message=f"No capacity is configured for {period_type} on side {side_id}; cannot save",
            code="CAPACITY_NOT_CONFIGURED",
            details={"side_id": side_id, "period_type": period_type},
        )


class ClosedPeriodConflictException(ConflictException):
    """Raised when a booking or schedule would fall inside a closed period."""

    def __init__(self, conflicting_dates: List[str], start_time: str, end_time: str):
        super().__init__(
            message=(
                f"{start_time}-{end_time} overlaps a closed period on "
                f"{len(conflicting_dates)} date(s)"
            ),
            code="CLOSED_PERIOD_CONFLICT",
            details={
                "dates": conflicting_dates,
                "start_time": start_time,
                "end_time": end_time,
            },
        )


class RackConflictException(ConflictException):
    """Raised when requested racks are already claimed by another booking."""

    def __init__(self, conflicts: List[Dict[str, Any]]):
        super().__init__(
            message="Requested racks are already booked for part of this time range",
            code="RACK_CONFLICT",
            details={"conflicts": conflicts},
        )


class ScheduleOverlapException(ConflictException):
    """Raised when a capacity schedule overlaps an existing schedule."""

    def __init__(self, conflicts: List[Dict[str, Any]]):
        super().__init__(
            message="Schedule conflicts detected",
            code="SCHEDULE_OVERLAP",
            details={"conflicts": conflicts},
        )


class CapacityValidationUnavailableException(ServiceException):
    """
    Raised when validation could not read the stored state it depends on.

    A store outage must never be reported as "no violations".
    """

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(self, operation: str, reason: str):
        super().__init__(
            message=f"Could not verify booking legality ({operation}): {reason}",
            code="VALIDATION_UNAVAILABLE",
            details={"operation": operation},
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """
