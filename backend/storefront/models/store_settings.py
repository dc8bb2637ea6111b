"""Store settings document (single row, id ``store``)."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, Date, DateTime, JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from storefront.db.base import Base

STORE_ID = "store"


class StoreSettingsRow(Base):
    """Persisted store settings. Schedules, address and zones are JSON documents."""

    __tablename__ = "store_settings"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=STORE_ID)
    is_open: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_delivery_available: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_pickup_available: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    paused_date_delivery: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    paused_date_pickup: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    schedule: Mapped[dict] = mapped_column(JSON, nullable=False)
    delivery_schedule: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    address: Mapped[dict] = mapped_column(JSON, nullable=False)
    delivery_zones: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
