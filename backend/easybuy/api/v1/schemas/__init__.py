# Schemas module
from easybuy.api.v1.schemas.commands import (
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
    VerifyPaymentCommand,
)
from easybuy.api.v1.schemas.pages import EmailQuery, IdQuery, OrdersQuery, ProfileQuery
from easybuy.api.v1.schemas.records import (
    OrderRecord,
    PaymentRecord,
    UserRecord,
    VehicleDetail,
    VehicleRecord,
    WishlistRecord,
    dump,
)

__all__ = [
    # Commands
    "AddPaymentCommand",
    "AddVehicleCommand",
    "DeleteVehicleCommand",
    "LoginCommand",
    "PlaceOrderCommand",
    "RegisterCommand",
    "ResetPasswordCommand",
    "ToggleWishlistCommand",
    "UpdateProfileCommand",
    "UpdateVehicleCommand",
    "VerifyPaymentCommand",
    # Page queries
    "EmailQuery",
    "IdQuery",
    "OrdersQuery",
    "ProfileQuery",
    # Records
    "OrderRecord",
    "PaymentRecord",
    "UserRecord",
    "VehicleDetail",
    "VehicleRecord",
    "WishlistRecord",
    "dump",
]
