"""
SQLAlchemy models for the marketplace database.

Timestamps are naive UTC and set on the Python side, so a freshly inserted
row carries its created_at without a refresh.
"""

from datetime import datetime, UTC

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Money columns: NUMERIC(15,2) in the database, float in Python
Money = Numeric(15, 2, asdecimal=False)


def _utcnow() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class User(Base):
    """Marketplace account. The password column holds a bcrypt hash."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    password: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str] = mapped_column(String(50), default="")
    country: Mapped[str] = mapped_column(String(100), default="")
    role: Mapped[str] = mapped_column(String(20), default="user")  # admin, user
    created_at: Mapped[datetime] = mapped_column(DateTime(), default=_utcnow)


class Vehicle(Base):
    """Vehicle listed in the inventory."""

    __tablename__ = "vehicles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    make: Mapped[str] = mapped_column(String(100), nullable=False)
    model: Mapped[str] = mapped_column(String(100), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[float] = mapped_column(Money, nullable=False)
    vin: Mapped[str] = mapped_column(String(50), default="")
    mileage: Mapped[int] = mapped_column(Integer, default=0)
    engine: Mapped[str] = mapped_column(String(100), default="")
    transmission: Mapped[str] = mapped_column(String(100), default="")
    color: Mapped[str] = mapped_column(String(50), default="")
    image: Mapped[str] = mapped_column(Text, default="")
    status: Mapped[str] = mapped_column(String(20), default="available", index=True)


class VehicleImage(Base):
    """Gallery image of a vehicle."""

    __tablename__ = "vehicle_images"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    vehicle_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("vehicles.id", ondelete="CASCADE"), index=True, nullable=False
    )
    image_path: Mapped[str] = mapped_column(String(500), nullable=False)


class Order(Base):
    """Purchase order for one vehicle.

    vehicle_id is a plain column: deleting a vehicle leaves its orders in
    place, pointing at an id that no longer resolves.
    """

    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    vehicle_id: Mapped[int] = mapped_column(Integer, index=True, nullable=False)
    buyer_email: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    payment_type: Mapped[str] = mapped_column(String(20), nullable=False)  # full, installments
    deposit_amount: Mapped[float] = mapped_column(Money, default=0)
    monthly_installment: Mapped[float] = mapped_column(Money, default=0)
    payment_period: Mapped[int] = mapped_column(Integer, default=0)
    status: Mapped[str] = mapped_column(String(30), default="Pending Verification", index=True)
    country: Mapped[str] = mapped_column(String(100), default="United States")
    state: Mapped[str] = mapped_column(String(100), default="")
    city: Mapped[str] = mapped_column(String(100), default="")
    address: Mapped[str] = mapped_column(String(255), default="")
    zip_code: Mapped[str] = mapped_column(String(20), default="")
    receipt_path: Mapped[str | None] = mapped_column(String(500))
    created_at: Mapped[datetime] = mapped_column(DateTime(), default=_utcnow)


class Payment(Base):
    """Monthly installment paid against an order."""

    __tablename__ = "payments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("orders.id", ondelete="CASCADE"), index=True, nullable=False
    )
    amount: Mapped[float] = mapped_column(Money, nullable=False)
    month_number: Mapped[int] = mapped_column(Integer, default=0)
    receipt_path: Mapped[str | None] = mapped_column(String(500))
    status: Mapped[str] = mapped_column(String(30), default="Pending Verification")
    created_at: Mapped[datetime] = mapped_column(DateTime(), default=_utcnow)


class WishlistEntry(Base):
    """A vehicle saved by a user. Presence of the row is the state."""

    __tablename__ = "wishlist"
    __table_args__ = (UniqueConstraint("user_email", "vehicle_id", name="uq_wishlist_user_vehicle"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_email: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    vehicle_id: Mapped[int] = mapped_column(Integer, index=True, nullable=False)
