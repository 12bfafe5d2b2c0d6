"""Authorization context passed explicitly into the service layer."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional
from uuid import UUID

from .exceptions import AuthorizationError


class Role(str, Enum):
    """Caller role enumeration."""
    STAFF = "staff"
    CUSTOMER = "customer"


STAFF_ROLE_NAMES = frozenset({"admin", "staff"})


@dataclass(frozen=True)
class AuthContext:
    """Who is calling, and which customer they may act as."""

    user_id: str
    role: Role
    customer_id: Optional[UUID] = None
    roles: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def staff(cls, user_id: str = "staff") -> "AuthContext":
        return cls(user_id=user_id, role=Role.STAFF, roles=("staff",))

    @classmethod
    def customer(cls, customer_id: UUID, user_id: Optional[str] = None) -> "AuthContext":
        return cls(
            user_id=user_id or f"customer:{customer_id}",
            role=Role.CUSTOMER,
            customer_id=customer_id,
            roles=("customer",),
        )

    @property
    def is_staff(self) -> bool:
        return self.role == Role.STAFF

    @property
    def is_customer(self) -> bool:
        return self.role == Role.CUSTOMER

    def require_staff(self) -> None:
        """Raise unless the caller is staff."""
        if not self.is_staff:
            raise AuthorizationError(
                detail="Access denied. Admin access required.",
                required_permissions=["staff"],
            )

    def require_customer_id(self) -> UUID:
        """Return the caller's own customer id, raising when none is linked."""
        if self.customer_id is None:
            raise AuthorizationError(detail="No customer profile is linked to this account.")
        return self.customer_id

    def can_access_customer(self, customer_id: UUID) -> bool:
        return self.is_staff or self.customer_id == customer_id
