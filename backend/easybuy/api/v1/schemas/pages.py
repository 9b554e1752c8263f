"""
Read dispatcher page query schemas.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PageQuery(BaseModel):
    """Base for read dispatcher parameters; the `page` key itself is ignored."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)


class IdQuery(PageQuery):
    """Parameters of the `vehicle` and `order` pages."""

    id: int


class OrdersQuery(PageQuery):
    """Parameters of the `orders` page.

    Orders are scoped to one buyer only when role is "user"; admins (and
    callers sending no role) see every order.
    """

    email: Optional[str] = None
    role: Optional[str] = None

    @property
    def buyer_scope(self) -> Optional[str]:
        if self.email and self.role and self.role.lower() == "user":
            return self.email
        return None


class ProfileQuery(PageQuery):
    """Parameters of the `profile` page: one user by email, or all users."""

    email: Optional[str] = None
    all: bool = False

    @field_validator("all", mode="before")
    @classmethod
    def strict_true(cls, v: Any) -> bool:
        # Only a literal JSON true lists every account
        return v is True


class EmailQuery(PageQuery):
    """Parameters of the `wishlist` page."""

    email: str = Field(..., min_length=1)
