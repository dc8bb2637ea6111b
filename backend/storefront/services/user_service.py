"""Back-office accounts: bootstrap, sign-in and password change."""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from storefront.core.config import settings
from storefront.core.errors import StorefrontError, ValidationFailedError
from storefront.core.rbac import UserRole
from storefront.core.security import get_password_hash, verify_password
from storefront.models.user import AdminUser

logger = logging.getLogger(__name__)

LOGIN_FAILED_MESSAGE = "Anmeldung fehlgeschlagen. Bitte überprüfen Sie Email und Passwort."


class AuthenticationError(StorefrontError):
    status_code = 401


def _ensure_account(db: Session, email: str, password: str, role: UserRole) -> bool:
    email = email.strip().lower()
    if db.query(AdminUser).filter(AdminUser.email == email).first() is not None:
        return False
    db.add(AdminUser(email=email, password_hash=get_password_hash(password), role=role))
    logger.info(f"Created {role.value} account: {email}")
    return True


def ensure_back_office_accounts(db: Session) -> int:
    """Create the configured admin and monitor accounts that do not exist yet."""
    created = 0
    if settings.admin_password:
        for email in settings.admin_emails_list:
            created += _ensure_account(db, email, settings.admin_password, UserRole.ADMIN)
    if settings.monitor_password and settings.monitor_email:
        created += _ensure_account(db, settings.monitor_email, settings.monitor_password, UserRole.MONITOR)
    if created:
        db.commit()
    return created


def authenticate(db: Session, email: str, password: str) -> AdminUser:
    user = db.query(AdminUser).filter(AdminUser.email == email.strip().lower()).first()
    if user is None or not user.is_active or not verify_password(password, user.password_hash):
        raise AuthenticationError(LOGIN_FAILED_MESSAGE)

    # Admin emails always carry the admin role, whatever is stored
    if settings.is_admin_email(user.email) and user.role != UserRole.ADMIN:
        user.role = UserRole.ADMIN
        db.commit()
    return user


def change_password(db: Session, user_id: int, current_password: str, new_password: str) -> None:
    user: Optional[AdminUser] = db.get(AdminUser, user_id)
    if user is None or not verify_password(current_password, user.password_hash):
        raise ValidationFailedError("Das aktuelle Passwort ist falsch", field="current_password")
    user.password_hash = get_password_hash(new_password)
    db.commit()
    logger.info(f"Password changed for {user.email}")
