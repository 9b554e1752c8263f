"""
Custom exception classes for EasyBuy.

This module defines a hierarchy of exceptions with:
- Structured error responses on the dispatcher contract ({"error": ...})
- Error codes for client-side handling
"""

from enum import StrEnum
from typing import Any

# =============================================================================
# Error Codes Enum
# =============================================================================


class ErrorCode(StrEnum):
    """Standardized error codes for client-side handling."""

    # General errors (1xxx)
    INTERNAL_ERROR = "ERR_1000"
    VALIDATION_ERROR = "ERR_1001"
    NOT_FOUND = "ERR_1002"
    MISSING_PARAMETER = "ERR_1003"
    INVALID_PAGE = "ERR_1004"
    MISSING_ACTION = "ERR_1005"

    # Database errors (2xxx)
    DATABASE_ERROR = "ERR_2000"
    DATABASE_CONNECTION = "ERR_2001"
    DATABASE_INTEGRITY = "ERR_2003"

    # Business logic errors (4xxx)
    VEHICLE_NOT_FOUND = "ERR_4001"
    VEHICLE_UNAVAILABLE = "ERR_4002"
    ORDER_NOT_FOUND = "ERR_4003"
    PAYMENT_NOT_FOUND = "ERR_4004"
    USER_NOT_FOUND = "ERR_4005"
    CONFLICT = "ERR_4006"
    INVALID_STATUS_TRANSITION = "ERR_4007"
    SHIPPING_NOT_ELIGIBLE = "ERR_4008"
    UPLOAD_ERROR = "ERR_4009"
    OPERATION_FAILED = "ERR_4010"

    # Authentication errors (5xxx)
    INVALID_CREDENTIALS = "ERR_5001"


# =============================================================================
# Base Exception Class
# =============================================================================


class EasyBuyException(Exception):
    """
    Base exception class for all EasyBuy exceptions.

    Attributes:
        message: Human-readable error message, sent verbatim as "error"
        code: Machine-readable error code
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to the dispatcher error body."""
        body: dict[str, Any] = {"error": self.message, "code": self.code.value}
        if self.details:
            body["details"] = self.details
        return body


# =============================================================================
# Request Exceptions
# =============================================================================


class ValidationException(EasyBuyException):
    """Exception for invalid input."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        error_details = details or {}
        if field:
            error_details["field"] = field

        super().__init__(
            message=message,
            code=ErrorCode.VALIDATION_ERROR,
            details=error_details,
        )


class MissingParameterException(ValidationException):
    """A required request parameter was absent or empty."""

    def __init__(self, name: str):
        super().__init__(message=f"Missing parameter: {name}")
        self.code = ErrorCode.MISSING_PARAMETER
        self.parameter = name


class InvalidPageException(ValidationException):
    """The read dispatcher got a page it does not serve."""

    def __init__(self, page: Any):
        super().__init__(message=f"Invalid page request: {page}")
        self.code = ErrorCode.INVALID_PAGE


class MissingActionException(ValidationException):
    """The write dispatcher got a body with no action flag."""

    def __init__(self, message: str = "Missing controller action"):
        super().__init__(message=message)
        self.code = ErrorCode.MISSING_ACTION


class UploadException(ValidationException):
    """Rejected file upload (extension, size or storage failure)."""

    def __init__(self, message: str, filename: str | None = None):
        super().__init__(message=message, field="file", details={"filename": filename} if filename else None)
        self.code = ErrorCode.UPLOAD_ERROR


# =============================================================================
# Resource Exceptions
# =============================================================================


class NotFoundException(EasyBuyException):
    """Exception for missing resources."""

    def __init__(
        self,
        message: str,
        resource_type: str | None = None,
        resource_id: Any = None,
        code: ErrorCode = ErrorCode.NOT_FOUND,
    ):
        details: dict[str, Any] = {}
        if resource_type:
            details["resource_type"] = resource_type
        if resource_id is not None:
            details["resource_id"] = resource_id

        super().__init__(
            message=message,
            code=code,
            details=details,
        )


class VehicleNotFoundException(NotFoundException):
    def __init__(self, vehicle_id: Any = None, message: str = "Vehicle not found"):
        super().__init__(message, "vehicle", vehicle_id, ErrorCode.VEHICLE_NOT_FOUND)


class OrderNotFoundException(NotFoundException):
    def __init__(self, order_id: Any = None, message: str = "Order not found"):
        super().__init__(message, "order", order_id, ErrorCode.ORDER_NOT_FOUND)


class PaymentNotFoundException(NotFoundException):
    def __init__(self, payment_id: Any = None, message: str = "Payment not found"):
        super().__init__(message, "payment", payment_id, ErrorCode.PAYMENT_NOT_FOUND)


class UserNotFoundException(NotFoundException):
    def __init__(self, email: str | None = None, message: str = "User not found"):
        super().__init__(message, "user", email, ErrorCode.USER_NOT_FOUND)


class ConflictException(EasyBuyException):
    """Exception for writes clashing with existing rows."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            message=message,
            code=ErrorCode.CONFLICT,
            details=details,
        )


class OperationFailedException(EasyBuyException):
    """A write the record store reported as not performed."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            message=message,
            code=ErrorCode.OPERATION_FAILED,
            details=details,
        )


# =============================================================================
# Order Workflow Exceptions
# =============================================================================


class VehicleUnavailableException(EasyBuyException):
    def __init__(self, vehicle_id: Any, current_status: str):
        super().__init__(
            message="Vehicle is not available",
            code=ErrorCode.VEHICLE_UNAVAILABLE,
            details={"vehicle_id": vehicle_id, "status": current_status},
        )


class InvalidStatusTransitionException(EasyBuyException):
    """Status change outside the allowed order or payment workflow."""

    def __init__(self, entity: str, current: str, requested: str):
        super().__init__(
            message=f"Invalid status transition for {entity}: {current} -> {requested}",
            code=ErrorCode.INVALID_STATUS_TRANSITION,
            details={"entity": entity, "current": current, "requested": requested},
        )


class ShippingNotEligibleException(EasyBuyException):
    """Order has not reached the paid share required to ship."""

    def __init__(self, paid_percentage: int, threshold: int):
        super().__init__(
            message=(
                f"Order is not eligible for shipping: {paid_percentage}% paid, "
                f"{threshold}% required"
            ),
            code=ErrorCode.SHIPPING_NOT_ELIGIBLE,
            details={"paid_percentage": paid_percentage, "shipping_threshold": threshold},
        )


# =============================================================================
# Authentication Exceptions
# =============================================================================


class InvalidCredentialsException(EasyBuyException):
    def __init__(self, message: str = "Invalid email or password"):
        super().__init__(
            message=message,
            code=ErrorCode.INVALID_CREDENTIALS,
        )


# =============================================================================
# Database Exceptions
# =============================================================================


class DatabaseException(EasyBuyException):
    """Exception for database failures."""

    def __init__(
        self,
        message: str = "Database error",
        code: ErrorCode = ErrorCode.DATABASE_ERROR,
        details: dict[str, Any] | None = None,
        original_error: Exception | None = None,
    ):
        error_details = details or {}
        if original_error:
            error_details["original_error"] = type(original_error).__name__

        super().__init__(
            message=message,
            code=code,
            details=error_details,
        )
        self.original_error = original_error
