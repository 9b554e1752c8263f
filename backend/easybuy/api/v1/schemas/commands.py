"""
Write dispatcher command schemas.

Bodies arrive as JSON or as multipart form fields, so every value may be a
string: numbers are coerced, and an empty form field counts as absent for
optional values. Unknown keys (including the action flag itself) are
ignored.
"""

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from easybuy.services.order_status import OrderStatus, PaymentStatus, VehicleStatus


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class Command(BaseModel):
    """Base for write dispatcher commands."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True, protected_namespaces=())


# =============================================================================
# Accounts
# =============================================================================


class LoginCommand(Command):
    email: str
    password: str


class RegisterCommand(Command):
    username: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=1)
    phone: str = ""
    country: str = ""

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("phone", "country", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v


class ResetPasswordCommand(Command):
    email: str
    password: str = Field(..., min_length=1)


class UpdateProfileCommand(Command):
    email: str
    username: str = Field(..., min_length=1, max_length=100)


# =============================================================================
# Orders and payments
# =============================================================================


class PlaceOrderCommand(Command):
    """
    New order for one vehicle.

    Either the client sends the plan it computed (deposit_amount,
    monthly_installment, payment_period) or it sends deposit_percent and
    payment_period and the server quotes the plan from the vehicle price.
    """

    vehicle_id: int
    buyer_email: str = Field(..., min_length=1)
    payment_type: Literal["full", "installments"]
    deposit_amount: Optional[float] = Field(None, ge=0)
    deposit_percent: Optional[int] = None
    monthly_installment: Optional[float] = Field(None, ge=0)
    payment_period: Optional[int] = Field(None, ge=0)
    country: str = "United States"
    state: str
    city: str = ""
    address: str
    zip_code: str

    @field_validator(
        "deposit_amount",
        "deposit_percent",
        "monthly_installment",
        "payment_period",
        mode="before",
    )
    @classmethod
    def blank_numbers(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @field_validator("country", mode="before")
    @classmethod
    def default_country(cls, v: Any) -> Any:
        return _blank_to_none(v) or "United States"

    @field_validator("city", mode="before")
    @classmethod
    def default_city(cls, v: Any) -> Any:
        return "" if v is None else v


class VerifyPaymentCommand(Command):
    """Status change for an installment (payment_id) or an order (order_id)."""

    status: str = Field(..., min_length=1)
    payment_id: Optional[int] = None
    order_id: Optional[int] = None

    @field_validator("payment_id", "order_id", mode="before")
    @classmethod
    def blank_ids(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @property
    def is_installment(self) -> bool:
        return self.payment_id is not None

    def known_status(self) -> bool:
        allowed = PaymentStatus if self.is_installment else OrderStatus
        return self.status in allowed.__members__.values()


class AddPaymentCommand(Command):
    order_id: int
    amount: float = Field(0, ge=0)
    month_number: int = Field(0, ge=0)

    @field_validator("amount", "month_number", mode="before")
    @classmethod
    def blank_to_zero(cls, v: Any) -> Any:
        return 0 if _blank_to_none(v) is None else v


# =============================================================================
# Inventory
# =============================================================================


class AddVehicleCommand(Command):
    make: str = Field(..., min_length=1, max_length=100)
    model: str = Field(..., min_length=1, max_length=100)
    year: int
    price: float = Field(..., ge=0)
    vin: str
    mileage: int = Field(..., ge=0)
    engine: str = ""
    transmission: str = ""
    color: str = ""
    image: str = ""

    @field_validator("engine", "transmission", "color", "image", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v


class UpdateVehicleCommand(Command):
    """Partial vehicle update: only the keys present in the body are written."""

    id: int
    make: Optional[str] = Field(None, min_length=1, max_length=100)
    model: Optional[str] = Field(None, min_length=1, max_length=100)
    year: Optional[int] = None
    price: Optional[float] = Field(None, ge=0)
    vin: Optional[str] = None
    mileage: Optional[int] = Field(None, ge=0)
    engine: Optional[str] = None
    transmission: Optional[str] = None
    color: Optional[str] = None
    image: Optional[str] = None
    status: Optional[VehicleStatus] = None

    @field_validator("year", "price", "mileage", "status", mode="before")
    @classmethod
    def blank_values(cls, v: Any) -> Any:
        return _blank_to_none(v)

    def changes(self) -> dict[str, Any]:
        """Columns to write, skipping absent keys and explicit nulls."""
        data = self.model_dump(exclude_unset=True, exclude={"id"})
        return {key: (value.value if isinstance(value, VehicleStatus) else value)
                for key, value in data.items() if value is not None}


class DeleteVehicleCommand(Command):
    id: int


class ToggleWishlistCommand(Command):
    email: str = Field(..., min_length=1)
    vehicle_id: int
