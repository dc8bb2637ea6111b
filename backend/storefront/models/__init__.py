"""Database models."""

from storefront.models.cart import CartRow
from storefront.models.menu import Category, MenuItem, SaucePolicy
from storefront.models.order import DeliveryType, MonitorStatus, Order, OrderStatus
from storefront.models.store_settings import STORE_ID, StoreSettingsRow
from storefront.models.user import AdminUser

__all__ = [
    "AdminUser",
    "CartRow",
    "Category",
    "DeliveryType",
    "MenuItem",
    "MonitorStatus",
    "Order",
    "OrderStatus",
    "STORE_ID",
    "SaucePolicy",
    "StoreSettingsRow",
]
