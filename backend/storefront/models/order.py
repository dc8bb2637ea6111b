"""Customer order model."""

from __future__ import annotations

import uuid
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import Enum as SQLEnum, JSON, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from storefront.db.base import Base, TimestampMixin


class OrderStatus(str, Enum):
    """Customer-facing order status."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class MonitorStatus(str, Enum):
    """Staff workflow state shown on the order monitor."""

    NEW = "new"
    ACCEPTED = "accepted"
    CLOSED = "closed"


class DeliveryType(str, Enum):
    PICKUP = "pickup"
    DELIVERY = "delivery"


def _new_order_id() -> str:
    return str(uuid.uuid4())


class Order(Base, TimestampMixin):
    """A submitted order. ``items`` holds a JSON snapshot of the cart lines."""

    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_order_id)
    customer_name: Mapped[str] = mapped_column(String(200), nullable=False)
    customer_address: Mapped[str] = mapped_column(String(300), nullable=False)
    customer_phone: Mapped[str] = mapped_column(String(50), nullable=False)
    note: Mapped[str] = mapped_column(Text, default="", nullable=False)
    items: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    device_info: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    ip_address: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    status: Mapped[OrderStatus] = mapped_column(
        SQLEnum(OrderStatus), default=OrderStatus.PENDING, nullable=False
    )
    delivery_type: Mapped[Optional[DeliveryType]] = mapped_column(SQLEnum(DeliveryType), nullable=True)
    delivery_zone: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    requested_time: Mapped[Optional[str]] = mapped_column(String(5), nullable=True)
    monitor_status: Mapped[MonitorStatus] = mapped_column(
        SQLEnum(MonitorStatus), default=MonitorStatus.NEW, nullable=False, index=True
    )
