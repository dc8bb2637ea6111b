"""Authentication routes."""

import logging

from fastapi import APIRouter, HTTPException, Request, status

from storefront.core.rate_limit import limiter
from storefront.core.rbac import CurrentUser
from storefront.core.security import create_staff_token
from storefront.db.session import DbSession
from storefront.models.user import AdminUser
from storefront.schemas.auth import LoginRequest, PasswordChangeRequest, Token, UserResponse
from storefront.services.user_service import AuthenticationError, authenticate, change_password

logger = logging.getLogger("auth")

router = APIRouter()


@router.post("/login", response_model=Token)
@limiter.limit("5/minute")
def login(request: Request, login_request: LoginRequest, db: DbSession):
    """Authenticate a back-office account and return a JWT."""
    client_ip = request.client.host if request.client else "unknown"
    try:
        user = authenticate(db, login_request.email, login_request.password)
    except AuthenticationError:
        logger.warning(f"Failed login attempt for email: {login_request.email} from IP: {client_ip}")
        raise

    logger.info(f"Successful login: {user.email} (ID: {user.id}, role: {user.role.value}) from IP: {client_ip}")
    token = create_staff_token(user.id, user.email, user.role.value)
    return Token(access_token=token, role=user.role.value)


@router.get("/me", response_model=UserResponse)
@limiter.limit("60/minute")
def get_current_user_info(request: Request, current_user: CurrentUser, db: DbSession):
    """Get current authenticated user info."""
    user = db.get(AdminUser, current_user.user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return UserResponse(id=user.id, email=user.email, role=user.role.value)


@router.post("/password", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("5/minute")
def update_password(request: Request, data: PasswordChangeRequest, current_user: CurrentUser, db: DbSession):
    """Change the signed-in account's password."""
    change_password(db, current_user.user_id, data.current_password, data.new_password)
