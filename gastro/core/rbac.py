"""Role-Based Access Control (RBAC) and tenant context."""

from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Any, Optional

from fastapi import Depends, HTTPException, Request, status

from gastro.core.security import decode_access_token


class UserRole(str, Enum):
    """Staff roles for RBAC."""

    HOST = "host"
    ADMIN = "admin"
    STAFF = "staff"
    KITCHEN = "kitchen"


# Role hierarchy: host > admin > staff > kitchen
ROLE_HIERARCHY = {
    UserRole.HOST: 4,
    UserRole.ADMIN: 3,
    UserRole.STAFF: 2,
    UserRole.KITCHEN: 1,
}


@dataclass(frozen=True)
class TenantContext:
    """Who is acting, and on behalf of which restaurant.

    Passed explicitly to every service call so that no query can run
    without a tenant filter.

    Attributes:
        restaurant_id: The tenant every read and write is scoped to.
        actor_id: The staff member's id, recorded as ``changed_by`` on movements.
        role: The staff member's role.
        name: Display name, used in report breakdowns.
    """

    restaurant_id: int
    actor_id: int
    role: UserRole = UserRole.STAFF
    name: str = ""

    @property
    def is_admin(self) -> bool:
        return ROLE_HIERARCHY[self.role] >= ROLE_HIERARCHY[UserRole.ADMIN]

    def has_role(self, minimum_role: UserRole) -> bool:
        return ROLE_HIERARCHY[self.role] >= ROLE_HIERARCHY[minimum_role]


def context_from_payload(payload: Optional[dict[str, Any]]) -> Optional[TenantContext]:
    """Build a TenantContext from a decoded token, or None if the claims are incomplete."""
    if payload is None:
        return None

    actor_id = payload.get("sub")
    role = payload.get("role")
    restaurant_id = payload.get("restaurant_id")
    if actor_id is None or role is None or restaurant_id is None:
        return None

    try:
        return TenantContext(
            restaurant_id=int(restaurant_id),
            actor_id=int(actor_id),
            role=UserRole(role),
            name=payload.get("name") or "",
        )
    except ValueError:
        return None


async def get_current_user(request: Request) -> TenantContext:
    """Get the acting staff member from the JWT.

    Checks in order:
    1. Authorization: Bearer <token> header
    2. access_token cookie
    """
    payload = None

    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header.split(" ", 1)[1]
        if token:
            payload = decode_access_token(token)

    if payload is None:
        cookie_token = request.cookies.get("access_token")
        if cookie_token:
            payload = decode_access_token(cookie_token)

    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    ctx = context_from_payload(payload)
    if ctx is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )
    return ctx


def require_role(minimum_role: UserRole):
    """Dependency to require a minimum role level."""

    async def role_checker(
        current_user: Annotated[TenantContext, Depends(get_current_user)]
    ) -> TenantContext:
        if not current_user.has_role(minimum_role):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires role {minimum_role.value} or higher",
            )
        return current_user

    return role_checker


RequireAdmin = Annotated[TenantContext, Depends(require_role(UserRole.ADMIN))]
RequireStaff = Annotated[TenantContext, Depends(require_role(UserRole.STAFF))]
RequireKitchen = Annotated[TenantContext, Depends(require_role(UserRole.KITCHEN))]
CurrentUser = Annotated[TenantContext, Depends(get_current_user)]
