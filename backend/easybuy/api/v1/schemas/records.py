"""
Row schemas returned by the dispatchers.

Rows are serialized from ORM instances with `from_attributes`. User rows
never carry the password column.
"""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class VehicleRecord(BaseModel):
    """Vehicle row."""

    model_config = ConfigDict(from_attributes=True, protected_namespaces=())

    id: int
    make: str
    model: str
    year: int
    price: float
    vin: Optional[str] = ""
    mileage: Optional[int] = 0
    engine: Optional[str] = ""
    transmission: Optional[str] = ""
    color: Optional[str] = ""
    image: Optional[str] = ""
    status: str


class VehicleDetail(VehicleRecord):
    """Vehicle row with its gallery image paths."""

    gallery: List[str] = Field(default_factory=list)


class UserRecord(BaseModel):
    """Account row without the password hash."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    phone: Optional[str] = ""
    country: Optional[str] = ""
    role: str
    created_at: Optional[datetime] = None


class OrderRecord(BaseModel):
    """Order row."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    vehicle_id: int
    buyer_email: str
    payment_type: str
    deposit_amount: float = 0
    monthly_installment: float = 0
    payment_period: int = 0
    status: str
    country: Optional[str] = ""
    state: Optional[str] = ""
    city: Optional[str] = ""
    address: Optional[str] = ""
    zip_code: Optional[str] = ""
    receipt_path: Optional[str] = None
    created_at: Optional[datetime] = None


class PaymentRecord(BaseModel):
    """Installment row."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    order_id: int
    amount: float
    month_number: int = 0
    receipt_path: Optional[str] = None
    status: str
    created_at: Optional[datetime] = None


class WishlistRecord(BaseModel):
    """Wishlist row."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_email: str
    vehicle_id: int


def dump(schema: type[BaseModel], row: Any) -> dict[str, Any]:
    """Serialize an ORM row through `schema` into JSON-ready values."""
    return schema.model_validate(row).model_dump(mode="json")
