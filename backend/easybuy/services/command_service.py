"""
Write dispatcher.

A write request carries exactly one action flag (login, register,
placeOrder, ...) next to the action's fields. Flags are checked in a fixed
order and the first one present wins. Each action validates its fields,
performs its writes through the record store and answers
{"success": <message>, ...}; failures are raised as EasyBuy exceptions and
rendered as {"error": <message>} by the global handlers.
"""

from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile

from easybuy.api.v1.schemas import (
    AddPaymentCommand,
    AddVehicleCommand,
    DeleteVehicleCommand,
    LoginCommand,
    PlaceOrderCommand,
    RegisterCommand,
    ResetPasswordCommand,
    ToggleWishlistCommand,
    UpdateProfileCommand,
    UpdateVehicleCommand,
    UserRecord,
    VerifyPaymentCommand,
    dump,
)
from easybuy.core.config import settings
from easybuy.core.exceptions import (
    ConflictException,
    InvalidCredentialsException,
    MissingActionException,
    MissingParameterException,
    OperationFailedException,
    OrderNotFoundException,
    PaymentNotFoundException,
    UserNotFoundException,
    ValidationException,
    VehicleNotFoundException,
    VehicleUnavailableException,
)
from easybuy.core.logging import bind_dispatch, get_logger
from easybuy.core.security import get_password_hash, verify_password
from easybuy.db.record_store import RecordStore
from easybuy.db.repositories import (
    OrderRepository,
    PaymentRepository,
    UserRepository,
    VehicleImageRepository,
    VehicleRepository,
    WishlistRepository,
    normalize_email,
)
from easybuy.services.order_status import (
    PAYMENT_PERIODS,
    VEHICLE_HOLDING_STATES,
    OrderStatus,
    PaymentStatus,
    PaymentType,
    VehicleStatus,
    ensure_order_transition,
    ensure_payment_transition,
    quote_plan,
    summarize_payments,
)
from easybuy.services.upload_service import (
    RECEIPTS_DIR,
    VEHICLES_DIR,
    PendingUpload,
    has_content,
    read_upload,
    write_uploads,
)

logger = get_logger(__name__)

# Action flags in dispatch order
ACTION_FLAGS = (
    "login",
    "register",
    "resetPassword",
    "updateProfile",
    "placeOrder",
    "addVehicle",
    "updateVehicle",
    "deleteVehicle",
    "toggleWishlist",
    "verifyPayment",
    "addPayment",
)

# Multipart field names of the vehicle gallery
GALLERY_FIELDS = ("images[]", "images")

Files = Mapping[str, Sequence[UploadFile]]


def find_action(payload: Mapping[str, Any]) -> str | None:
    """First action flag present in `payload` with a non-null value."""
    for flag in ACTION_FLAGS:
        if payload.get(flag) is not None:
            return flag
    return None


class CommandService:
    """
    Executes write dispatcher actions.

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

        self._actions: dict[str, Callable[[dict[str, Any], Files], Awaitable[dict[str, Any]]]] = {
            "login": self.login,
            "register": self.register,
            "resetPassword": self.reset_password,
            "updateProfile": self.update_profile,
            "placeOrder": self.place_order,
            "addVehicle": self.add_vehicle,
            "updateVehicle": self.update_vehicle,
            "deleteVehicle": self.delete_vehicle,
            "toggleWishlist": self.toggle_wishlist,
            "verifyPayment": self.verify_payment,
            "addPayment": self.add_payment,
        }

    async def dispatch(self, payload: dict[str, Any], files: Files | None = None) -> dict[str, Any]:
        """
        Run the action flagged in `payload`.

        Args:
            payload: Body fields (JSON object or multipart text fields)
            files: Multipart file parts by field name

        Raises:
            MissingActionException: No action flag present
        """
        action = find_action(payload)
        if action is None:
            raise MissingActionException()

        bind_dispatch("action", action)
        logger.info("Running action", extra={"action": action})
        return await self._actions[action](payload, files or {})

    @staticmethod
    def _first_file(files: Files, *names: str) -> UploadFile | None:
        for name in names:
            for upload in files.get(name, ()):
                if has_content(upload):
                    return upload
        return None

    async def _read_receipt(self, files: Files) -> PendingUpload | None:
        receipt = self._first_file(files, "receipt")
        return None if receipt is None else await read_upload(receipt, RECEIPTS_DIR)

    # =========================================================================
    # Accounts
    # =========================================================================

    async def login(self, payload: dict[str, Any], files: Files) -> dict[str, Any]:
        cmd = LoginCommand.model_validate(payload)
        user = await self.users.get_by_email(cmd.email)
        if user is None or not verify_password(cmd.password, user.password):
            logger.info("Failed login", extra={"email": normalize_email(cmd.email)})
            raise InvalidCredentialsException()
        return {"success": "Login successful", "user": dump(UserRecord, user)}

    async def register(self, payload: dict[str, Any], files: Files) -> dict[str, Any]:
        """Create a buyer account. The role is always "user"."""
        cmd = RegisterCommand.model_validate(payload)
        if await self.users.get_by_email(cmd.email) is not None:
            raise ConflictException("Email already registered", details={"field": "email"})

        user_id = await self.users.create({
            "username": cmd.username,
            "email": cmd.email,
            "password": get_password_hash(cmd.password),
            "phone": cmd.phone,
            "country": cmd.country,
            "role": "user",
        })
        if user_id is None:
            raise OperationFailedException("Failed to create account")

        user = await self.users.get(user_id)
        logger.info("Account created", extra={"user_id": user_id})
        return {"success": "Account created successfully", "user": dump(UserRecord, user)}

    async def reset_password(self, payload: dict[str, Any], files: Files) -> dict[str, Any]:
        cmd = ResetPasswordCommand.model_validate(payload)
        if await self.users.get_by_email(cmd.email) is None:
            raise UserNotFoundException(cmd.email, message="User not found or reset failed")

        await self.users.update_by_email(cmd.email, {"password": get_password_hash(cmd.password)})
        return {"success": "Password reset successful"}

    async def update_profile(self, payload: dict[str, Any], files: Files) -> dict[str, Any]:
        cmd = UpdateProfileCommand.model_validate(payload)
        if await self.users.get_by_email(cmd.email) is None:
            raise UserNotFoundException(cmd.email, message="Update failed")

        await self.users.update_by_email(cmd.email, {"username": cmd.username})
        user = await self.users.get_by_email(cmd.email)
        return {"success": "Profile updated", "user": dump(UserRecord, user)}

    # =========================================================================
    # Orders and payments
    # =========================================================================

    def _order_plan(self, cmd: PlaceOrderCommand, price: float) -> dict[str, Any]:
        """Deposit, monthly installment and period stored on a new order."""
        if cmd.payment_type == PaymentType.FULL:
            return {"deposit_amount": price, "monthly_installment": 0, "payment_period": 0}

        if cmd.payment_period is None:
            raise MissingParameterException("payment_period")
        if cmd.payment_period not in PAYMENT_PERIODS:
            raise ValidationException(
                "Invalid parameter: payment_period", field="payment_period"
            )

        if cmd.deposit_percent is not None:
            plan = quote_plan(price, cmd.deposit_percent, cmd.payment_period)
            return {
                "deposit_amount": plan.deposit_amount,
                "monthly_installment": plan.monthly_installment,
                "payment_period": plan.payment_period,
            }

        if cmd.deposit_amount is None:
            raise MissingParameterException("deposit_amount")

        monthly = cmd.monthly_installment
        if monthly is None:
            monthly = round((price - cmd.deposit_amount) / cmd.payment_period, 2)
        return {
            "deposit_amount": cmd.deposit_amount,
            "monthly_installment": monthly,
            "payment_period": cmd.payment_period,
        }

    async def place_order(self, payload: dict[str, Any], files: Files) -> dict[str, Any]:
        """
        Create an order awaiting verification and reserve its vehicle.

        The order and the reservation are two separate writes in the request
        transaction.
        """
        cmd = PlaceOrderCommand.model_validate(payload)
        vehicle = await self.vehicles.get(cmd.vehicle_id)
        if vehicle is None:
            raise VehicleNotFoundException(cmd.vehicle_id)
        if vehicle.status != VehicleStatus.AVAILABLE:
            raise VehicleUnavailableException(cmd.vehicle_id, vehicle.status)

        data = {
            "vehicle_id": cmd.vehicle_id,
            "buyer_email": normalize_email(cmd.buyer_email),
            "payment_type": cmd.payment_type,
            **self._order_plan(cmd, float(vehicle.price)),
            "status": OrderStatus.PENDING_VERIFICATION.value,
            "country": cmd.country,
            "state": cmd.state,
            "city": cmd.city,
            "address": cmd.address,
            "zip_code": cmd.zip_code,
        }

        receipt = await self._read_receipt(files)
        if receipt is not None:
            data["receipt_path"] = receipt.public_path

        order_id = await self.orders.create(data)
        if order_id is None:
            raise OperationFailedException("Failed to place order")

        await self.vehicles.set_status(cmd.vehicle_id, VehicleStatus.RESERVED.value)
        if receipt is not None:
            await write_uploads([receipt])
        logger.info(
            "Order placed",
            extra={"order_id": order_id, "vehicle_id": cmd.vehicle_id, "payment_type": cmd.payment_type},
        )
        return {"success": "Order placed successfully."}

    async def verify_payment(self, payload: dict[str, Any], files: Files) -> dict[str, Any]:
        """
        Move an installment or an order to a new status.

        Delivering an order marks its vehicle sold; rejecting a live order puts
        the vehicle back on sale. Sending the current status again changes
        nothing. With ENFORCE_STATUS_TRANSITIONS the move must follow the
        workflow and shipping requires the paid threshold.
        """
        cmd = VerifyPaymentCommand.model_validate(payload)
        if not cmd.known_status():
            raise ValidationException(f"Invalid status: {cmd.status}", field="status")

        if cmd.is_installment:
            payment = await self.payments.get(cmd.payment_id)
            if payment is None:
                raise PaymentNotFoundException(cmd.payment_id)
            previous = payment.status
            if settings.ENFORCE_STATUS_TRANSITIONS:
                ensure_payment_transition(previous, cmd.status)
            if previous == cmd.status:
                return {"success": "Installment verified"}
            await self.payments.update(payment.id, {"status": cmd.status})
            logger.info(
                "Installment status changed",
                extra={"payment_id": payment.id, "from": previous, "to": cmd.status},
            )
            return {"success": "Installment verified"}

        if cmd.order_id is None:
            raise MissingParameterException("order_id")
        order = await self.orders.get(cmd.order_id)
        if order is None:
            raise OrderNotFoundException(cmd.order_id)

        previous = order.status
        if settings.ENFORCE_STATUS_TRANSITIONS:
            vehicle = await self.vehicles.get(order.vehicle_id)
            summary = summarize_payments(
                order.status,
                order.deposit_amount,
                vehicle.price if vehicle is not None else 0,
                await self.payments.list_for_order(order.id),
                threshold=settings.SHIPPING_THRESHOLD_PERCENT,
            )
            ensure_order_transition(
                order.status,
                cmd.status,
                summary.paid_percentage,
                threshold=settings.SHIPPING_THRESHOLD_PERCENT,
            )

        if previous == cmd.status:
            # The vehicle may belong to another order by now
            return {"success": "Order status updated"}

        await self.orders.update(order.id, {"status": cmd.status})
        if cmd.status == OrderStatus.DELIVERED:
            await self.vehicles.set_status(order.vehicle_id, VehicleStatus.SOLD.value)
        elif cmd.status == OrderStatus.REJECTED and previous in VEHICLE_HOLDING_STATES:
            await self.vehicles.set_status(order.vehicle_id, VehicleStatus.AVAILABLE.value)

        logger.info(
            "Order status changed",
            extra={"order_id": order.id, "from": previous, "to": cmd.status},
        )
        return {"success": "Order status updated"}

    async def add_payment(self, payload: dict[str, Any], files: Files) -> dict[str, Any]:
        """Record an installment receipt awaiting verification."""
        cmd = AddPaymentCommand.model_validate(payload)
        if await self.orders.get(cmd.order_id) is None:
            raise OrderNotFoundException(cmd.order_id)

        data: dict[str, Any] = {
            "order_id": cmd.order_id,
            "amount": cmd.amount,
            "month_number": cmd.month_number,
            "status": PaymentStatus.PENDING_VERIFICATION.value,
        }
        receipt = await self._read_receipt(files)
        if receipt is not None:
            data["receipt_path"] = receipt.public_path

        if await self.payments.create(data) is None:
            raise OperationFailedException("Failed to upload payment.")
        if receipt is not None:
            await write_uploads([receipt])
        return {"success": "Payment receipt uploaded."}

    # =========================================================================
    # Inventory
    # =========================================================================

    async def add_vehicle(self, payload: dict[str, Any], files: Files) -> dict[str, Any]:
        """List a vehicle for sale and store its gallery images."""
        cmd = AddVehicleCommand.model_validate(payload)
        gallery = [
            await read_upload(upload, VEHICLES_DIR)
            for name in GALLERY_FIELDS
            for upload in files.get(name, ())
            if has_content(upload)
        ]

        vehicle_id = await self.vehicles.create({
            **cmd.model_dump(),
            "status": VehicleStatus.AVAILABLE.value,
        })
        if vehicle_id is None:
            raise OperationFailedException("Failed to add vehicle")

        for image in gallery:
            await self.images.create({"vehicle_id": vehicle_id, "image_path": image.public_path})
        await write_uploads(gallery)

        logger.info("Vehicle added", extra={"vehicle_id": vehicle_id, "gallery_images": len(gallery)})
        return {"success": "Vehicle added successfully", "id": vehicle_id}

    async def update_vehicle(self, payload: dict[str, Any], files: Files) -> dict[str, Any]:
        cmd = UpdateVehicleCommand.model_validate(payload)
        if await self.vehicles.get(cmd.id) is None:
            raise VehicleNotFoundException(cmd.id)

        if not await self.vehicles.update(cmd.id, cmd.changes()):
            raise OperationFailedException("Failed to update vehicle or no changes made")
        return {"success": "Vehicle updated successfully"}

    async def delete_vehicle(self, payload: dict[str, Any], files: Files) -> dict[str, Any]:
        """
        Remove a vehicle with its gallery and wishlist entries.

        Orders referencing the vehicle are kept and keep its id.
        """
        cmd = DeleteVehicleCommand.model_validate(payload)
        if await self.vehicles.get(cmd.id) is None:
            raise VehicleNotFoundException(cmd.id)

        await self.images.delete_for_vehicle(cmd.id)
        await self.wishlist.delete_for_vehicle(cmd.id)
        await self.vehicles.delete(cmd.id)
        logger.info("Vehicle deleted", extra={"vehicle_id": cmd.id})
        return {"success": "Vehicle deleted successfully"}

    async def toggle_wishlist(self, payload: dict[str, Any], files: Files) -> dict[str, Any]:
        cmd = ToggleWishlistCommand.model_validate(payload)
        entry = await self.wishlist.find_entry(cmd.email, cmd.vehicle_id)
        if entry is not None:
            await self.wishlist.delete(entry.id)
            return {"success": "Removed from wishlist"}

        created = await self.wishlist.create({
            "user_email": normalize_email(cmd.email),
            "vehicle_id": cmd.vehicle_id,
        })
        if created is None:
            raise OperationFailedException("Failed to update wishlist")
        return {"success": "Added to wishlist"}
