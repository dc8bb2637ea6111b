"""Pytest configuration and fixtures."""

import os

# Keep tests off any real database or Redis configured in the environment
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["REDIS_URL"] = ""
os.environ["ADMIN_EMAILS"] = "admin@example.com"

import pytest
from decimal import Decimal
from typing import Dict, Generator, List

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from storefront.core.rate_limit import limiter
from storefront.core.rbac import UserRole
from storefront.core.security import create_staff_token, get_password_hash
from storefront.db.base import Base
from storefront.db.session import get_db, get_session_factory
from storefront.main import app
# Import all models to ensure they're registered with Base.metadata
from storefront.models import *
from storefront.models.menu import Category, MenuItem, SaucePolicy
from storefront.models.user import AdminUser
from storefront.schemas.cart import CartLine
from storefront.services.cart_service import CartStorage
from storefront.services.order_events import OrderChangeFeed

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def session_factory(db_engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def db_session(session_factory) -> Generator[Session, None, None]:
    """Create a test database session."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def order_feed() -> Generator[OrderChangeFeed, None, None]:
    feed = OrderChangeFeed()
    yield feed
    feed.close()


@pytest.fixture(scope="function")
def client(db_session: Session, session_factory, order_feed) -> Generator[TestClient, None, None]:
    """Create a test client with database override.

    The lifespan is not run, so the status poller stays off and the change
    feed is installed here.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.state.order_feed = order_feed
    # Disable rate limiters during tests to avoid flaky failures
    limiter.enabled = False
    # Don't raise server exceptions so we can test error status codes
    yield TestClient(app, raise_server_exceptions=False)
    limiter.enabled = True
    app.dependency_overrides.clear()


# ============== Cart Storage ==============

class MemoryCartStorage(CartStorage):
    """Dict-backed cart storage."""

    def __init__(self):
        self.carts: Dict[str, List[CartLine]] = {}

    def load(self, cart_id: str) -> List[CartLine]:
        return list(self.carts.get(cart_id, []))

    def save(self, cart_id: str, lines: List[CartLine]) -> None:
        self.carts[cart_id] = list(lines)

    def delete(self, cart_id: str) -> None:
        self.carts.pop(cart_id, None)


@pytest.fixture
def memory_storage() -> MemoryCartStorage:
    return MemoryCartStorage()


# ============== Accounts ==============

def _create_user(db_session: Session, email: str, role: UserRole) -> AdminUser:
    user = AdminUser(
        email=email,
        password_hash=get_password_hash("testpass123"),
        role=role,
        name=email.split("@")[0],
        is_active=True,
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


def _headers_for(user: AdminUser) -> dict:
    token = create_staff_token(user.id, user.email, user.role.value)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_user(db_session: Session) -> AdminUser:
    return _create_user(db_session, "admin@example.com", UserRole.ADMIN)


@pytest.fixture
def monitor_user(db_session: Session) -> AdminUser:
    return _create_user(db_session, "monitor@example.com", UserRole.MONITOR)


@pytest.fixture
def admin_headers(admin_user: AdminUser) -> dict:
    return _headers_for(admin_user)


@pytest.fixture
def monitor_headers(monitor_user: AdminUser) -> dict:
    return _headers_for(monitor_user)


@pytest.fixture
def monitor_token(monitor_user: AdminUser) -> str:
    return _headers_for(monitor_user)["Authorization"].split(" ", 1)[1]


# ============== Menu ==============

@pytest.fixture
def menu(db_session: Session) -> dict:
    """A small catalog: salads, pizzas, a doner plate, pasta and beer."""
    salads = Category(slug="salate", title="Salate", description="", order=0)
    pizzas = Category(slug="pizza", title="Pizza", description="", order=1)
    mains = Category(slug="gerichte", title="Gerichte", description="", order=2)
    db_session.add_all([salads, pizzas, mains])
    db_session.flush()

    items = {
        "chefsalat": MenuItem(
            category_id=salads.id, number=7, name="Chefsalat", price=Decimal("8.00"),
            is_meat_selection=True,
        ),
        "margherita": MenuItem(
            category_id=pizzas.id, number=20, name="Pizza Margherita", price=Decimal("7.50"),
            is_pizza=True,
            sizes=[
                {"name": "Klein", "price": 7.50, "description": "26cm"},
                {"name": "Groß", "price": 10.00, "description": "32cm"},
            ],
        ),
        "teller": MenuItem(
            category_id=mains.id, number=4, name="Dönerteller", price=Decimal("11.00"),
            is_meat_selection=True, has_side_dish_selection=True,
        ),
        "pasta": MenuItem(
            category_id=mains.id, number=30, name="Pasta Bolognese", price=Decimal("9.00"),
            is_pasta=True,
        ),
        "beer": MenuItem(
            category_id=mains.id, number=90, name="Bier 0,5l", price=Decimal("3.50"),
            is_beer_selection=True,
        ),
        "pommes": MenuItem(
            category_id=mains.id, number=50, name="Pommes", price=Decimal("3.00"),
            is_spezialitaet=True, sauce_policy=SaucePolicy.FRIES,
        ),
    }
    db_session.add_all(items.values())
    db_session.commit()
    for item in items.values():
        db_session.refresh(item)
    return {"categories": {"salate": salads, "pizza": pizzas, "gerichte": mains}, **items}
