"""Persisted shopping carts, one row per client cart token."""

from __future__ import annotations

from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from storefront.db.base import Base, TimestampMixin


class CartRow(Base, TimestampMixin):
    __tablename__ = "carts"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    items: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
