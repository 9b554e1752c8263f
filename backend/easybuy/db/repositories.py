"""
Repository classes for the marketplace tables.

Each repository is a thin typed view over the RecordStore: it fixes the
table name and exposes the lookups the dispatchers need, so every query
still goes through the store's identifier checks and logging.
"""

from typing import Any, Generic, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from easybuy.db.models import Base, Order, Payment, User, Vehicle, VehicleImage, WishlistEntry
from easybuy.db.record_store import RecordStore

# Generic type for models
ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Base repository with common CRUD operations on one table.

    Attributes:
        table: The table name served by this repository.
        store: The record store bound to the request session.
    """

    table: str = ""

    def __init__(self, db: AsyncSession | RecordStore) -> None:
        self.store = db if isinstance(db, RecordStore) else RecordStore(db)

    @property
    def db(self) -> AsyncSession:
        return self.store.db

    async def get(self, id: Any) -> ModelType | None:
        """Get a single record by ID."""
        rows = await self.store.select(self.table, {"id": id}, limit=1)
        return rows[0] if rows else None

    async def get_all(
        self,
        conditions: dict[str, Any] | None = None,
        newest_first: bool = True,
        limit: int | None = None,
    ) -> list[ModelType]:
        """Get records matching conditions, ordered by id."""
        return await self.store.select(
            self.table,
            conditions or {},
            order_by="id",
            order="DESC" if newest_first else "ASC",
            limit=limit,
        )

    async def count(self, conditions: dict[str, Any] | None = None) -> int:
        return await self.store.count(self.table, conditions or {})

    async def create(self, data: dict[str, Any]) -> Any | None:
        """Create a new record, returning its id or None when refused."""
        return await self.store.insert(self.table, data)

    async def update(self, id: Any, data: dict[str, Any]) -> bool:
        """Update an existing record by id."""
        return await self.store.update(self.table, data, {"id": id})

    async def delete(self, id: Any) -> bool:
        """Delete a record by id."""
        return await self.store.delete(self.table, {"id": id})


class UserRepository(BaseRepository[User]):
    """Repository for accounts, looked up by normalized email."""

    table = "users"

    async def get_by_email(self, email: str) -> User | None:
        """
        Get user by email address.

        Args:
            email: The email address to search for (case-insensitive).

        Returns:
            User if found, None otherwise.
        """
        rows = await self.store.select(self.table, {"email": normalize_email(email)}, limit=1)
        return rows[0] if rows else None

    async def update_by_email(self, email: str, data: dict[str, Any]) -> bool:
        return await self.store.update(self.table, data, {"email": normalize_email(email)})


class VehicleRepository(BaseRepository[Vehicle]):
    """Repository for the vehicle inventory."""

    table = "vehicles"

    async def set_status(self, vehicle_id: Any, status: str) -> bool:
        return await self.update(vehicle_id, {"status": status})


class VehicleImageRepository(BaseRepository[VehicleImage]):
    """Repository for vehicle gallery images."""

    table = "vehicle_images"

    async def gallery(self, vehicle_id: Any) -> list[str]:
        """Image paths of a vehicle, in upload order."""
        rows = await self.store.select(self.table, {"vehicle_id": vehicle_id}, order_by="id")
        return [row.image_path for row in rows]

    async def delete_for_vehicle(self, vehicle_id: Any) -> bool:
        return await self.store.delete(self.table, {"vehicle_id": vehicle_id})


class OrderRepository(BaseRepository[Order]):
    """Repository for purchase orders."""

    table = "orders"

    async def list_for_buyer(self, email: str) -> list[Order]:
        """Orders placed by one buyer, newest first."""
        return await self.get_all({"buyer_email": normalize_email(email)})


class PaymentRepository(BaseRepository[Payment]):
    """Repository for monthly installments."""

    table = "payments"

    async def list_for_order(self, order_id: Any) -> list[Payment]:
        """Installments of one order, oldest first."""
        return await self.store.select(self.table, {"order_id": order_id}, order_by="id")


class WishlistRepository(BaseRepository[WishlistEntry]):
    """Repository for saved vehicles."""

    table = "wishlist"

    async def list_for_user(self, email: str) -> list[WishlistEntry]:
        return await self.store.select(
            self.table, {"user_email": normalize_email(email)}, order_by="id", order="DESC"
        )

    async def find_entry(self, email: str, vehicle_id: Any) -> WishlistEntry | None:
        rows = await self.store.select(
            self.table,
            {"user_email": normalize_email(email), "vehicle_id": vehicle_id},
            limit=1,
        )
        return rows[0] if rows else None

    async def delete_for_vehicle(self, vehicle_id: Any) -> bool:
        return await self.store.delete(self.table, {"vehicle_id": vehicle_id})


def normalize_email(email: str) -> str:
    """Emails are stored and compared lowercase."""
    return (email or "").strip().lower()
