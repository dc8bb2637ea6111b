"""Role-Based Access Control (RBAC) utilities."""

from enum import Enum
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, status

from storefront.core.security import decode_access_token


class UserRole(str, Enum):
    """Back-office roles. The monitor account only sees the order monitor."""

    ADMIN = "admin"
    MONITOR = "monitor"


# Role hierarchy: admin > monitor
ROLE_HIERARCHY = {
    UserRole.ADMIN: 2,
    UserRole.MONITOR: 1,
}


class TokenData:
    """Decoded token data."""

    def __init__(self, user_id: int, email: str, role: UserRole):
        self.user_id = user_id
        self.id = user_id
        self.email = email
        self.role = role


def token_data_from_payload(payload: Optional[dict]) -> Optional[TokenData]:
    """Build TokenData from a decoded JWT payload, None if incomplete."""
    if not payload:
        return None
    user_id = payload.get("sub")
    email = payload.get("email")
    role = payload.get("role")
    if user_id is None or email is None or role is None:
        return None
    try:
        return TokenData(user_id=int(user_id), email=email, role=UserRole(role))
    except ValueError:
        return None


async def get_current_user(request: Request) -> TokenData:
    """Get the current authenticated user from the Bearer token."""
    payload = None
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header.split(" ", 1)[1]
        if token:
            payload = decode_access_token(token)

    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = token_data_from_payload(payload)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )
    return user


def require_role(minimum_role: UserRole):
    """Dependency to require a minimum role level."""

    async def role_checker(
        current_user: Annotated[TokenData, Depends(get_current_user)]
    ) -> TokenData:
        user_level = ROLE_HIERARCHY.get(current_user.role, 0)
        required_level = ROLE_HIERARCHY.get(minimum_role, 0)

        if user_level < required_level:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires role {minimum_role.value} or higher",
            )
        return current_user

    return role_checker


RequireAdmin = Annotated[TokenData, Depends(require_role(UserRole.ADMIN))]
RequireMonitor = Annotated[TokenData, Depends(require_role(UserRole.MONITOR))]
CurrentUser = Annotated[TokenData, Depends(get_current_user)]
