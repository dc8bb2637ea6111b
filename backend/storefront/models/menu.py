"""Menu catalog models: categories and menu items."""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import List, Optional

from sqlalchemy import Boolean, Enum as SQLEnum, ForeignKey, Integer, JSON, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from storefront.db.base import Base, TimestampMixin


class SaucePolicy(str, Enum):
    """Which sauce option list an item offers."""

    STANDARD = "standard"
    SALAD_DRESSING = "salad_dressing"
    FRIES = "fries"
    BURGER = "burger"
    NONE = "none"


class Category(Base, TimestampMixin):
    """A menu section such as "Pizza" or "Drehspieß"."""

    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(primary_key=True)
    slug: Mapped[str] = mapped_column(String(120), index=True, nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    items: Mapped[List["MenuItem"]] = relationship(
        "MenuItem", back_populates="category", cascade="all, delete-orphan"
    )


class MenuItem(Base, TimestampMixin):
    """A catalog entry. Capability flags drive the item configuration flow."""

    __tablename__ = "menu_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    category_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("categories.id", ondelete="CASCADE"), nullable=True, index=True
    )
    number: Mapped[int] = mapped_column(Integer, unique=True, index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    allergens: Mapped[str] = mapped_column(String(200), default="", nullable=False)
    sizes: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    order: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    order_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    is_wunsch_pizza: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_pizza: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_pasta: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_spezialitaet: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_beer_selection: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_meat_selection: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_multiple_sauce_selection: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    has_side_dish_selection: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    skips_meat_wizard: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    # Sauce list starts collapsed to the first few options
    limits_sauce_list: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    sauce_policy: Mapped[SaucePolicy] = mapped_column(
        SQLEnum(SaucePolicy), default=SaucePolicy.STANDARD, nullable=False
    )

    category: Mapped[Optional["Category"]] = relationship("Category", back_populates="items")
