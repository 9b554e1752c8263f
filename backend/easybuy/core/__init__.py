# Core module
"""
Core module for the EasyBuy backend.

This module provides:
- Configuration management (config.py)
- Custom exceptions (exceptions.py)
- Global error handlers (error_handlers.py)
- Structured logging (logging.py)
- Password hashing (security.py)
"""

from easybuy.core.config import settings, get_settings
from easybuy.core.exceptions import (
    # Base exceptions
    EasyBuyException,
    ValidationException,
    MissingParameterException,
    NotFoundException,
    ConflictException,
    DatabaseException,
    # Business logic exceptions
    VehicleNotFoundException,
    OrderNotFoundException,
    PaymentNotFoundException,
    UserNotFoundException,
    InvalidStatusTransitionException,
    ShippingNotEligibleException,
    UploadException,
    # Authentication exceptions
    InvalidCredentialsException,
    # Error codes
    ErrorCode,
)
from easybuy.core.logging import (
    StoreOperation,
    bind_dispatch,
    get_logger,
    setup_logging,
)

__all__ = [
    # Config
    "settings",
    "get_settings",
    # Exceptions
    "EasyBuyException",
    "ValidationException",
    "MissingParameterException",
    "NotFoundException",
    "ConflictException",
    "DatabaseException",
    "VehicleNotFoundException",
    "OrderNotFoundException",
    "PaymentNotFoundException",
    "UserNotFoundException",
    "InvalidStatusTransitionException",
    "ShippingNotEligibleException",
    "UploadException",
    "InvalidCredentialsException",
    "ErrorCode",
    # Logging
    "StoreOperation",
    "bind_dispatch",
    "get_logger",
    "setup_logging",
]
