"""
Services module for EasyBuy.

Business logic behind the two dispatch endpoints: the read pages
(action_service), the write commands (command_service), the order and
payment status model (order_status) and file uploads (upload_service).
"""

from easybuy.services.order_status import (
    DEPOSIT_PERCENTAGES,
    PAYMENT_PERIODS,
    SHIPPING_THRESHOLD,
    InstallmentPlan,
    OrderStatus,
    PaymentStatus,
    PaymentSummary,
    PaymentType,
    VehicleStatus,
    paid_percentage,
    quote_plan,
    summarize_payments,
)
from easybuy.services.upload_service import (
    PendingUpload,
    ensure_upload_dirs,
    read_upload,
    write_uploads,
)

__all__ = [
    # Status model
    "DEPOSIT_PERCENTAGES",
    "PAYMENT_PERIODS",
    "SHIPPING_THRESHOLD",
    "InstallmentPlan",
    "OrderStatus",
    "PaymentStatus",
    "PaymentSummary",
    "PaymentType",
    "VehicleStatus",
    "paid_percentage",
    "quote_plan",
    "summarize_payments",
    # Uploads
    "PendingUpload",
    "ensure_upload_dirs",
    "read_upload",
    "write_uploads",
]
