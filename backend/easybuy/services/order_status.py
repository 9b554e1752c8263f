"""
Order and payment status model.

Pure functions over prices and payments:
- Allowed status transitions for orders and installments
- Installment plan arithmetic (deposit share, monthly amount)
- Paid share of an order and its shipping eligibility

Money is computed with Decimal and rounded half up, the way the buyer's
receipts and the admin screens display it.
"""

from collections.abc import Iterable, Mapping
from dataclasses import asdict, dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import StrEnum
from typing import Any

from easybuy.core.exceptions import (
    InvalidStatusTransitionException,
    ShippingNotEligibleException,
    ValidationException,
)

# =============================================================================
# Statuses
# =============================================================================


class OrderStatus(StrEnum):
    PENDING_VERIFICATION = "Pending Verification"
    VERIFIED = "Verified"
    SHIPPING = "Shipping"
    DELIVERED = "Delivered"
    REJECTED = "Rejected"


class PaymentStatus(StrEnum):
    PENDING_VERIFICATION = "Pending Verification"
    VERIFIED = "Verified"
    REJECTED = "Rejected"


class VehicleStatus(StrEnum):
    AVAILABLE = "available"
    RESERVED = "reserved"
    SOLD = "sold"
    IN_TRANSIT = "in-transit"


class PaymentType(StrEnum):
    FULL = "full"
    INSTALLMENTS = "installments"


ORDER_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING_VERIFICATION: frozenset({OrderStatus.VERIFIED, OrderStatus.REJECTED}),
    OrderStatus.VERIFIED: frozenset({OrderStatus.SHIPPING}),
    OrderStatus.SHIPPING: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.REJECTED: frozenset(),
}

PAYMENT_TRANSITIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.PENDING_VERIFICATION: frozenset({PaymentStatus.VERIFIED, PaymentStatus.REJECTED}),
    PaymentStatus.VERIFIED: frozenset(),
    PaymentStatus.REJECTED: frozenset(),
}

# Order states in which the deposit counts as paid
DEPOSIT_PAID_STATES = frozenset({OrderStatus.VERIFIED, OrderStatus.SHIPPING, OrderStatus.DELIVERED})

# Order states that keep their vehicle reserved
VEHICLE_HOLDING_STATES = frozenset({OrderStatus.PENDING_VERIFICATION, OrderStatus.VERIFIED, OrderStatus.SHIPPING})

DEPOSIT_PERCENTAGES = (25, 45)
PAYMENT_PERIODS = (6, 12, 18, 24)
SHIPPING_THRESHOLD = 60

CENT = Decimal("0.01")


def _money(value: Any) -> Decimal:
    if value is None or value == "":
        return Decimal("0")
    return Decimal(str(value))


def _cents(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _field(item: Any, name: str) -> Any:
    if isinstance(item, Mapping):
        return item.get(name)
    return getattr(item, name, None)


# =============================================================================
# Transitions
# =============================================================================


def can_transition(current: str, target: str, transitions: Mapping[Any, frozenset]) -> bool:
    """Whether `current -> target` is an arrow of `transitions`.

    Setting the current status again is allowed and changes nothing.
    """
    if current == target:
        return True
    return target in transitions.get(current, frozenset())


def ensure_order_transition(
    current: str,
    target: str,
    paid_percentage: int,
    threshold: int = SHIPPING_THRESHOLD,
) -> None:
    """
    Raise when an order may not move from `current` to `target`.

    Raises:
        ValidationException: `target` is not an order status
        InvalidStatusTransitionException: no such arrow
        ShippingNotEligibleException: moving to Shipping below the threshold
    """
    if target not in OrderStatus.__members__.values():
        raise ValidationException(f"Invalid order status: {target}", field="status")
    if not can_transition(current, target, ORDER_TRANSITIONS):
        raise InvalidStatusTransitionException("order", current, target)
    if target == OrderStatus.SHIPPING and current != target and paid_percentage < threshold:
        raise ShippingNotEligibleException(paid_percentage, threshold)


def ensure_payment_transition(current: str, target: str) -> None:
    """Raise when an installment may not move from `current` to `target`."""
    if target not in PaymentStatus.__members__.values():
        raise ValidationException(f"Invalid payment status: {target}", field="status")
    if not can_transition(current, target, PAYMENT_TRANSITIONS):
        raise InvalidStatusTransitionException("payment", current, target)


# =============================================================================
# Installment plans
# =============================================================================


@dataclass(frozen=True)
class InstallmentPlan:
    """Deposit and monthly amount for a vehicle price."""

    price: float
    deposit_percent: int
    payment_period: int
    deposit_amount: float
    monthly_installment: float


def quote_plan(price: Any, deposit_percent: int, payment_period: int) -> InstallmentPlan:
    """
    Split a price into a deposit and equal monthly installments.

    deposit = price * deposit_percent / 100
    monthly = (price - deposit) / payment_period

    Raises:
        ValidationException: Unsupported deposit percentage or period
    """
    if deposit_percent not in DEPOSIT_PERCENTAGES:
        raise ValidationException(
            f"Invalid parameter: deposit_percent (allowed: {', '.join(map(str, DEPOSIT_PERCENTAGES))})",
            field="deposit_percent",
        )
    if payment_period not in PAYMENT_PERIODS:
        raise ValidationException(
            f"Invalid parameter: payment_period (allowed: {', '.join(map(str, PAYMENT_PERIODS))})",
            field="payment_period",
        )

    total = _money(price)
    deposit = _cents(total * deposit_percent / 100)
    monthly = _cents((total - deposit) / payment_period)
    return InstallmentPlan(
        price=float(total),
        deposit_percent=deposit_percent,
        payment_period=payment_period,
        deposit_amount=float(deposit),
        monthly_installment=float(monthly),
    )


# =============================================================================
# Paid share and shipping eligibility
# =============================================================================


def paid_percentage(paid: Any, price: Any) -> int:
    """Share of `price` covered by `paid`, rounded half up and capped at 100."""
    total = _money(price)
    if total <= 0:
        return 0
    share = (_money(paid) / total * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return min(int(share), 100)


@dataclass(frozen=True)
class PaymentSummary:
    total_paid: float
    total_pending: float
    paid_percentage: int
    shipping_threshold: int
    shipping_eligible: bool
    threshold_amount: float
    remaining_to_threshold: float
    total_price: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def summarize_payments(
    order_status: str,
    deposit_amount: Any,
    price: Any,
    installments: Iterable[Any] = (),
    threshold: int = SHIPPING_THRESHOLD,
) -> PaymentSummary:
    """
    Paid and pending totals of an order.

    The deposit counts as paid once the order is Verified, Shipping or
    Delivered, and as pending while the order awaits verification. Each
    installment counts by its own status; rejected amounts count nowhere.

    Args:
        order_status: Current order status
        deposit_amount: Deposit recorded on the order
        price: Vehicle price, 0 when the vehicle no longer exists
        installments: Rows or mappings with `amount` and `status`
        threshold: Paid percentage required to ship

    Returns:
        PaymentSummary with totals rounded to cents.
    """
    deposit = _money(deposit_amount)
    paid = Decimal("0")
    pending = Decimal("0")

    if order_status in DEPOSIT_PAID_STATES:
        paid += deposit
    elif order_status == OrderStatus.PENDING_VERIFICATION:
        pending += deposit

    for installment in installments:
        status = _field(installment, "status")
        amount = _money(_field(installment, "amount"))
        if status == PaymentStatus.VERIFIED:
            paid += amount
        elif status == PaymentStatus.PENDING_VERIFICATION:
            pending += amount

    total = _money(price)
    threshold_amount = _cents(total * threshold / 100) if total > 0 else Decimal("0")
    percentage = paid_percentage(paid, total)

    return PaymentSummary(
        total_paid=float(_cents(paid)),
        total_pending=float(_cents(pending)),
        paid_percentage=percentage,
        shipping_threshold=threshold,
        shipping_eligible=total > 0 and percentage >= threshold,
        threshold_amount=float(threshold_amount),
        remaining_to_threshold=float(max(threshold_amount - _cents(paid), Decimal("0"))),
        total_price=float(_cents(total)),
    )
