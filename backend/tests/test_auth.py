"""Tests for back-office authentication."""

from datetime import timedelta

import pytest

from storefront.core.config import settings
from storefront.core.errors import ValidationFailedError
from storefront.core.rbac import UserRole, token_data_from_payload
from storefront.core.security import (
    create_access_token,
    create_staff_token,
    decode_access_token,
    get_password_hash,
    verify_password,
)
from storefront.models.user import AdminUser
from storefront.services.user_service import (
    AuthenticationError,
    authenticate,
    change_password,
    ensure_back_office_accounts,
)


# ============== Password Hashing ==============

class TestPasswordHashing:
    def test_hash_and_verify(self):
        hashed = get_password_hash("geheim123")
        assert hashed != "geheim123"
        assert verify_password("geheim123", hashed) is True
        assert verify_password("falsch", hashed) is False

    def test_garbage_hash(self):
        assert verify_password("geheim123", "not-a-hash") is False


# ============== JWT Tokens ==============

class TestJWTTokens:
    def test_round_trip(self):
        token = create_staff_token(1, "a@example.com", "monitor")
        user = token_data_from_payload(decode_access_token(token))
        assert user.user_id == 1
        assert user.role == UserRole.MONITOR

    def test_invalid_token(self):
        assert decode_access_token("invalid.token.here") is None

    def test_expired_token(self):
        token = create_access_token({"sub": "1"}, expires_delta=timedelta(seconds=-1))
        assert decode_access_token(token) is None

    def test_incomplete_payload(self):
        assert token_data_from_payload({"sub": "1"}) is None
        assert token_data_from_payload({"sub": "1", "email": "a@example.com", "role": "owner"}) is None


# ============== Accounts ==============

class TestAuthenticate:
    def test_valid_credentials(self, db_session, monitor_user):
        user = authenticate(db_session, "Monitor@Example.com ", "testpass123")
        assert user.id == monitor_user.id

    def test_wrong_password(self, db_session, monitor_user):
        with pytest.raises(AuthenticationError):
            authenticate(db_session, "monitor@example.com", "wrong")

    def test_inactive_account(self, db_session, monitor_user):
        monitor_user.is_active = False
        db_session.commit()
        with pytest.raises(AuthenticationError):
            authenticate(db_session, "monitor@example.com", "testpass123")

    def test_admin_email_is_promoted(self, db_session):
        db_session.add(AdminUser(
            email="admin@example.com",
            password_hash=get_password_hash("testpass123"),
            role=UserRole.MONITOR,
        ))
        db_session.commit()
        assert authenticate(db_session, "admin@example.com", "testpass123").role == UserRole.ADMIN


class TestAccountBootstrap:
    def test_creates_missing_accounts_once(self, db_session, monkeypatch):
        monkeypatch.setattr(settings, "admin_password", "adminpass1")
        monkeypatch.setattr(settings, "monitor_password", "monitorpass1")

        assert ensure_back_office_accounts(db_session) == 2
        assert ensure_back_office_accounts(db_session) == 0

        monitor = db_session.query(AdminUser).filter(AdminUser.email == settings.monitor_email).one()
        assert monitor.role == UserRole.MONITOR

    def test_nothing_without_passwords(self, db_session, monkeypatch):
        monkeypatch.setattr(settings, "admin_password", None)
        monkeypatch.setattr(settings, "monitor_password", None)
        assert ensure_back_office_accounts(db_session) == 0


class TestChangePassword:
    def test_change(self, db_session, monitor_user):
        change_password(db_session, monitor_user.id, "testpass123", "neuespasswort")
        assert authenticate(db_session, "monitor@example.com", "neuespasswort").id == monitor_user.id

    def test_wrong_current_password(self, db_session, monitor_user):
        with pytest.raises(ValidationFailedError) as exc_info:
            change_password(db_session, monitor_user.id, "falsch", "neuespasswort")
        assert exc_info.value.message == "Das aktuelle Passwort ist falsch"
