"""
Read dispatcher.

Answers `{"page": <name>, ...}` requests with JSON-ready rows. Nested rows
(the vehicle of an order, the parent order of an installment) are resolved
with one point query per row.
"""

from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from easybuy.api.v1.schemas import (
    EmailQuery,
    IdQuery,
    OrderRecord,
    OrdersQuery,
    PaymentRecord,
    ProfileQuery,
    UserRecord,
    VehicleDetail,
    VehicleRecord,
    WishlistRecord,
    dump,
)
from easybuy.core.config import settings
from easybuy.core.exceptions import (
    InvalidPageException,
    MissingParameterException,
    OrderNotFoundException,
    UserNotFoundException,
    ValidationException,
    VehicleNotFoundException,
)
from easybuy.core.logging import bind_dispatch, get_logger
from easybuy.db.models import Vehicle
from easybuy.db.record_store import RecordStore
from easybuy.db.repositories import (
    OrderRepository,
    PaymentRepository,
    UserRepository,
    VehicleImageRepository,
    VehicleRepository,
    WishlistRepository,
)
from easybuy.services.order_status import OrderStatus, VehicleStatus, summarize_payments

logger = get_logger(__name__)

RECENT_VEHICLES_LIMIT = 4


def order_reference(order_id: int) -> str:
    return f"#EB-{order_id:04d}"


def installment_reference(payment_id: int, order_id: int) -> str:
    return f"#PL-{payment_id:04d} (Ord #{order_id})"


class ActionService:
    """
    Serves the read pages of the marketplace.

    Attributes:
        store: Record store bound to the request session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.store = RecordStore(db)
        self.users = UserRepository(self.store)
        self.vehicles = VehicleRepository(self.store)
        self.images = VehicleImageRepository(self.store)
        self.orders = OrderRepository(self.store)
        self.payments = PaymentRepository(self.store)
        self.wishlist = WishlistRepository(self.store)

        self._pages: dict[str, Callable[[dict[str, Any]], Awaitable[Any]]] = {
            "vehicles": self.vehicles_page,
            "vehicle": self.vehicle_page,
            "orders": self.orders_page,
            "transactions": self.transactions_page,
            "order": self.order_page,
            "dashboard": self.dashboard_page,
            "profile": self.profile_page,
            "wishlist": self.wishlist_page,
        }

    async def dispatch(self, payload: dict[str, Any]) -> Any:
        """
        Route a read request to its page.

        Raises:
            ValidationException: No page in the payload
            InvalidPageException: Unknown page name
        """
        page = payload.get("page")
        if page is None or page == "":
            raise ValidationException("Missing page parameter", field="page")

        handler = self._pages.get(page) if isinstance(page, str) else None
        if handler is None:
            raise InvalidPageException(page)

        bind_dispatch("page", page)
        logger.debug("Serving page", extra={"page": page})
        return await handler(payload)

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _vehicle_dict(self, vehicle_id: Any) -> dict[str, Any] | None:
        vehicle = await self.vehicles.get(vehicle_id)
        return dump(VehicleRecord, vehicle) if vehicle else None

    async def _order_with_vehicle(self, order: Any) -> dict[str, Any]:
        data = dump(OrderRecord, order)
        vehicle = await self._vehicle_dict(order.vehicle_id)
        if vehicle is not None:
            data["vehicle"] = vehicle
        return data

    # =========================================================================
    # Pages
    # =========================================================================

    async def vehicles_page(self, payload: dict[str, Any]) -> list[dict[str, Any]]:
        """Every vehicle, newest first."""
        return [dump(VehicleRecord, v) for v in await self.vehicles.get_all()]

    async def vehicle_page(self, payload: dict[str, Any]) -> dict[str, Any]:
        """One vehicle with its gallery."""
        query = IdQuery.model_validate(payload)
        vehicle = await self.vehicles.get(query.id)
        if vehicle is None:
            raise VehicleNotFoundException(query.id)

        detail = VehicleDetail.model_validate(vehicle)
        detail.gallery = await self.images.gallery(query.id)
        return detail.model_dump(mode="json")

    async def orders_page(self, payload: dict[str, Any]) -> list[dict[str, Any]]:
        """Orders newest first; a buyer with role "user" only sees their own."""
        query = OrdersQuery.model_validate(payload)
        if query.buyer_scope:
            orders = await self.orders.list_for_buyer(query.buyer_scope)
        else:
            orders = await self.orders.get_all()
        return [await self._order_with_vehicle(order) for order in orders]

    async def transactions_page(self, payload: dict[str, Any]) -> list[dict[str, Any]]:
        """
        Payment ledger: every order deposit and every installment.

        Installments whose order no longer exists are left out. Entries are
        sorted by creation time, newest first.
        """
        entries: list[tuple[datetime, dict[str, Any]]] = []

        for order in await self.orders.get_all():
            data = await self._order_with_vehicle(order)
            data["type"] = "Initial Deposit"
            data["amount_display"] = data["deposit_amount"]
            data["reference"] = order_reference(order.id)
            entries.append((order.created_at or datetime.min, data))

        for payment in await self.payments.get_all():
            order = await self.orders.get(payment.order_id)
            if order is None:
                continue
            data = dump(PaymentRecord, payment)
            data["type"] = f"Month {payment.month_number or '?'} Installment"
            data["amount_display"] = data["amount"]
            data["buyer_email"] = order.buyer_email
            data["reference"] = installment_reference(payment.id, order.id)
            vehicle = await self._vehicle_dict(order.vehicle_id)
            if vehicle is not None:
                data["vehicle"] = vehicle
            entries.append((payment.created_at or datetime.min, data))

        entries.sort(key=lambda entry: entry[0], reverse=True)
        return [data for _, data in entries]

    async def order_page(self, payload: dict[str, Any]) -> dict[str, Any]:
        """One order with its vehicle, installments and payment summary."""
        query = IdQuery.model_validate(payload)
        order = await self.orders.get(query.id)
        if order is None:
            raise OrderNotFoundException(query.id)

        vehicle: Vehicle | None = await self.vehicles.get(order.vehicle_id)
        payments = await self.payments.list_for_order(order.id)

        data = dump(OrderRecord, order)
        if vehicle is not None:
            data["vehicle"] = dump(VehicleRecord, vehicle)
        data["payments"] = [dump(PaymentRecord, p) for p in payments]
        data["payment_summary"] = summarize_payments(
            order.status,
            order.deposit_amount,
            vehicle.price if vehicle is not None else 0,
            payments,
            threshold=settings.SHIPPING_THRESHOLD_PERCENT,
        ).to_dict()
        return data

    async def dashboard_page(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Inventory and sales figures for the admin dashboard."""
        total_revenue = 0.0
        for order in await self.orders.get_all({"status": OrderStatus.DELIVERED.value}):
            vehicle = await self.vehicles.get(order.vehicle_id)
            if vehicle is not None:
                total_revenue += float(vehicle.price or 0)

        recent = await self.vehicles.get_all(limit=RECENT_VEHICLES_LIMIT)
        return {
            "total_vehicles": await self.vehicles.count(),
            "available_vehicles": await self.vehicles.count({"status": VehicleStatus.AVAILABLE.value}),
            "total_orders": await self.orders.count(),
            "total_revenue": round(total_revenue, 2),
            "recent_vehicles": [dump(VehicleRecord, v) for v in recent],
        }

    async def profile_page(self, payload: dict[str, Any]) -> Any:
        """One account by email, or every account when `all` is true."""
        query = ProfileQuery.model_validate(payload)
        if query.all:
            return [dump(UserRecord, u) for u in await self.users.get_all()]

        if not query.email:
            raise MissingParameterException("email")
        user = await self.users.get_by_email(query.email)
        if user is None:
            raise UserNotFoundException(query.email)
        return dump(UserRecord, user)

    async def wishlist_page(self, payload: dict[str, Any]) -> list[dict[str, Any]]:
        """Saved vehicles of one user; entries whose vehicle is gone are skipped."""
        query = EmailQuery.model_validate(payload)
        results = []
        for entry in await self.wishlist.list_for_user(query.email):
            vehicle = await self._vehicle_dict(entry.vehicle_id)
            if vehicle is None:
                continue
            data = dump(WishlistRecord, entry)
            data["vehicle"] = vehicle
            results.append(data)
        return results
