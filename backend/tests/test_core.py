"""
Tests for configuration, password hashing, exceptions and logging helpers.
"""

import json
import logging

import pytest

from easybuy.core.config import Settings
from easybuy.core.error_handlers import describe_validation_errors
from easybuy.core.exceptions import (
    ErrorCode,
    InvalidPageException,
    MissingParameterException,
    VehicleNotFoundException,
)
from easybuy.core.logging import (
    ContextFilter,
    StoreOperation,
    StructuredJsonFormatter,
    bind_dispatch,
    dispatch_var,
    request_id_var,
)
from easybuy.core.security import get_password_hash, verify_password


class TestSettings:
    """Tests for settings parsing."""

    def test_plain_postgres_url_uses_asyncpg(self):
        settings = Settings(DATABASE_URL="postgres://u:p@db:5432/easybuy")

        assert settings.DATABASE_URL == "postgresql+asyncpg://u:p@db:5432/easybuy"

    def test_sqlite_url_untouched(self):
        settings = Settings(DATABASE_URL="sqlite+aiosqlite:///./easybuy.db")

        assert settings.DATABASE_URL == "sqlite+aiosqlite:///./easybuy.db"

    def test_cors_origins_from_comma_list(self):
        settings = Settings(BACKEND_CORS_ORIGINS="https://shop.example, https://admin.example")

        assert settings.BACKEND_CORS_ORIGINS == ["https://shop.example", "https://admin.example"]

    def test_extensions_normalized(self):
        settings = Settings(UPLOAD_ALLOWED_EXTENSIONS=".JPG,png")

        assert settings.UPLOAD_ALLOWED_EXTENSIONS == ["jpg", "png"]


class TestPasswords:
    def test_hash_and_verify(self):
        hashed = get_password_hash("Secret123!")

        assert hashed != "Secret123!"
        assert verify_password("Secret123!", hashed)
        assert not verify_password("secret123!", hashed)

    def test_plaintext_row_never_verifies(self):
        assert verify_password("Secret123!", "Secret123!") is False

    def test_empty_values(self):
        assert verify_password("", get_password_hash("x")) is False
        assert verify_password("x", None) is False


class TestExceptions:
    def test_to_dict(self):
        body = VehicleNotFoundException(12).to_dict()

        assert body == {
            "error": "Vehicle not found",
            "code": "ERR_4001",
            "details": {"resource_type": "vehicle", "resource_id": 12},
        }

    def test_request_exception_codes(self):
        assert MissingParameterException("id").code == ErrorCode.MISSING_PARAMETER
        assert InvalidPageException("x").message == "Invalid page request: x"


class TestDescribeValidationErrors:
    def test_missing_field(self):
        message, errors = describe_validation_errors(
            [{"loc": ("body", "email"), "msg": "Field required", "type": "missing"}]
        )

        assert message == "Missing parameter: email"
        assert errors[0]["field"] == "email"

    def test_first_error_decides(self):
        message, _ = describe_validation_errors([
            {"loc": ("year",), "msg": "Input should be a valid integer", "type": "int_parsing"},
            {"loc": ("vin",), "msg": "Field required", "type": "missing"},
        ])

        assert message == "Invalid parameter: year"

    def test_no_errors(self):
        assert describe_validation_errors([])[0] == "Invalid request"


class TestStructuredJsonFormatter:
    def test_adds_service_and_request_id(self):
        formatter = StructuredJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s")
        record = logging.LogRecord("easybuy.test", logging.INFO, __file__, 10, "hello", None, None)
        token = request_id_var.set("req-42")
        try:
            data = json.loads(formatter.format(record))
        finally:
            request_id_var.reset(token)

        assert data["message"] == "hello"
        assert data["level"] == "INFO"
        assert data["request_id"] == "req-42"
        assert data["service"]["name"] == "EasyBuy"

    @pytest.mark.parametrize("level", ["DEBUG", "WARNING"])
    def test_level_name(self, level):
        formatter = StructuredJsonFormatter()
        record = logging.LogRecord("x", getattr(logging, level), __file__, 1, "m", None, None)

        assert json.loads(formatter.format(record))["level"] == level


class TestCorrelation:
    """Tests for request and dispatch correlation fields."""

    def test_filter_copies_context(self):
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "m", None, None)
        id_token = request_id_var.set("req-7")
        dispatch_token = dispatch_var.set(None)
        try:
            bind_dispatch("action", "placeOrder")
            ContextFilter().filter(record)
        finally:
            dispatch_var.reset(dispatch_token)
            request_id_var.reset(id_token)

        assert record.request_id == "req-7"
        assert record.dispatch == "action:placeOrder"

    def test_filter_placeholders_outside_requests(self):
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "m", None, None)

        ContextFilter().filter(record)

        assert record.request_id == "-"
        assert record.dispatch == "-"


class TestStoreOperation:
    """Tests for record store call logging."""

    def test_success_logged_at_debug(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="easybuy.store"):
            with StoreOperation("select", "vehicles") as op:
                op.rows = 3

        record = caplog.records[-1]
        assert record.levelno == logging.DEBUG
        assert record.event == "database_operation"
        assert record.rows_affected == 3
        assert record.success is True

    def test_handled_failure(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="easybuy.store"):
            with StoreOperation("insert", "users") as op:
                op.fail("UNIQUE constraint failed: users.email")

        record = caplog.records[-1]
        assert record.levelno == logging.ERROR
        assert record.success is False
        assert record.error_message == "UNIQUE constraint failed: users.email"

    def test_exception_logged_and_reraised(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="easybuy.store"):
            with pytest.raises(RuntimeError):
                with StoreOperation("update", "orders"):
                    raise RuntimeError("connection lost")

        assert caplog.records[-1].error_message == "RuntimeError: connection lost"
