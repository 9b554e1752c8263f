"""
Pytest configuration and fixtures for EasyBuy tests.
"""

import os
import sys
from collections.abc import AsyncGenerator
from pathlib import Path

# Add backend to path for imports
backend_path = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(backend_path))

# Set environment variables for testing BEFORE any imports
# These need to be set before the modules are imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("DB_AUTO_CREATE", "false")
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_FORMAT", "text")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("ENFORCE_STATUS_TRANSITIONS", "true")

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from easybuy.core.config import settings
from easybuy.core.security import get_password_hash
from easybuy.db.models import Base, Order, Payment, User, Vehicle


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest_asyncio.fixture(scope="function")
async def async_engine():
    """Create an async SQLite engine for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(async_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for testing."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def upload_dir(tmp_path, monkeypatch) -> Path:
    """Point uploads at a temporary directory."""
    target = tmp_path / "uploads"
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(target))
    return target


# =============================================================================
# Row Fixtures
# =============================================================================


@pytest.fixture
def buyer_password() -> str:
    return "BuyerPass123!"


@pytest_asyncio.fixture
async def buyer(db_session: AsyncSession, buyer_password: str) -> User:
    """A registered buyer account."""
    user = User(
        username="Jane Buyer",
        email="jane@example.com",
        password=get_password_hash(buyer_password),
        phone="+1 555 0100",
        country="United States",
        role="user",
    )
    db_session.add(user)
    await db_session.commit()
    return user


@pytest_asyncio.fixture
async def admin(db_session: AsyncSession) -> User:
    user = User(
        username="Administrator",
        email="admin@easybuy.example",
        password=get_password_hash("AdminPass123!"),
        role="admin",
    )
    db_session.add(user)
    await db_session.commit()
    return user


@pytest_asyncio.fixture
async def vehicle(db_session: AsyncSession) -> Vehicle:
    """An available 20,000.00 sedan."""
    row = Vehicle(
        make="Toyota",
        model="Camry",
        year=2021,
        price=20000.0,
        vin="4T1B11HK5MU000001",
        mileage=32000,
        engine="2.5L I4",
        transmission="Automatic",
        color="Silver",
        image="uploads/vehicles/camry.jpg",
        status="available",
    )
    db_session.add(row)
    await db_session.commit()
    return row


@pytest_asyncio.fixture
async def installment_order(db_session: AsyncSession, vehicle: Vehicle, buyer: User) -> Order:
    """A 25% deposit, 12 month order for `vehicle`, awaiting verification."""
    order = Order(
        vehicle_id=vehicle.id,
        buyer_email=buyer.email,
        payment_type="installments",
        deposit_amount=5000.0,
        monthly_installment=1250.0,
        payment_period=12,
        status="Pending Verification",
        state="Texas",
        city="Austin",
        address="1 Main St",
        zip_code="73301",
    )
    vehicle.status = "reserved"
    db_session.add(order)
    await db_session.commit()
    return order


@pytest_asyncio.fixture
async def pending_installment(db_session: AsyncSession, installment_order: Order) -> Payment:
    payment = Payment(
        order_id=installment_order.id,
        amount=1250.0,
        month_number=1,
        status="Pending Verification",
    )
    db_session.add(payment)
    await db_session.commit()
    return payment
