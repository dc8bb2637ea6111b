"""Public menu catalog: sections, popular items and per-item dialog options."""

import logging
from typing import List

from sqlalchemy.orm import Session

from storefront.core.config import settings
from storefront.core.errors import NotFoundError
from storefront.data.options import (
    BEER_TYPES,
    MAX_INGREDIENTS,
    MEAT_TYPES,
    PASTA_TYPES,
    PIZZA_EXTRAS,
    SALAD_EXCLUSION_OPTIONS,
    SIDE_DISH_OPTIONS,
    WUNSCH_PIZZA_INGREDIENTS,
)
from storefront.models.menu import Category, MenuItem
from storefront.schemas.menu import ItemOptions, MenuItemResponse, MenuSection
from storefront.services.item_selection_service import (
    is_configurable,
    sauce_options,
    uses_wizard,
)

logger = logging.getLogger(__name__)

POPULAR_BOOST = 1000


class MenuService:
    """Read-only catalog queries for the storefront."""

    def __init__(self, db: Session):
        self.db = db

    def get_menu_sections(self) -> List[MenuSection]:
        """Categories in display order with their items by number, one section per slug."""
        categories = self.db.query(Category).order_by(Category.order, Category.id).all()
        items = self.db.query(MenuItem).order_by(MenuItem.number).all()

        # Categories sharing a slug feed the same section
        slug_of = {category.id: category.slug for category in categories}
        by_slug = {}
        for item in items:
            by_slug.setdefault(slug_of.get(item.category_id), []).append(item)

        sections = []
        seen_slugs = set()
        for category in categories:
            if category.slug in seen_slugs:
                continue
            seen_slugs.add(category.slug)
            sections.append(
                MenuSection(
                    id=category.slug,
                    title=category.title,
                    description=category.description,
                    order=category.order,
                    items=[MenuItemResponse.model_validate(i) for i in by_slug.get(category.slug, [])],
                )
            )
        return sections

    def get_popular_items(self) -> List[MenuItemResponse]:
        """Order count ranking with the house favourites boosted to the top."""
        boosted = set(settings.popular_item_numbers_list)
        items = self.db.query(MenuItem).order_by(MenuItem.number).all()

        ranked = sorted(
            items,
            key=lambda i: (i.order_count or 0) + (POPULAR_BOOST if i.number in boosted else 0),
            reverse=True,
        )
        return [MenuItemResponse.model_validate(i) for i in ranked[: settings.popular_item_count]]

    def get_item_by_number(self, number: int) -> MenuItem:
        item = self.db.query(MenuItem).filter(MenuItem.number == number).first()
        if item is None:
            raise NotFoundError(f"Artikel Nr. {number} nicht gefunden")
        return item

    def get_item(self, item_id: int) -> MenuItem:
        item = self.db.get(MenuItem, item_id)
        if item is None:
            raise NotFoundError("Artikel nicht gefunden")
        return item

    def get_item_options(self, number: int) -> ItemOptions:
        """Everything the item dialog needs for one item."""
        item = self.get_item_by_number(number)
        response = MenuItemResponse.model_validate(item)
        return ItemOptions(
            item=response,
            configurable=is_configurable(item),
            uses_wizard=uses_wizard(item),
            sizes=response.sizes,
            sauces=sauce_options(item),
            meat_types=list(MEAT_TYPES) if item.is_meat_selection else [],
            exclusions=list(SALAD_EXCLUSION_OPTIONS) if item.is_meat_selection else [],
            side_dishes=list(SIDE_DISH_OPTIONS) if item.has_side_dish_selection else [],
            pasta_types=list(PASTA_TYPES) if item.is_pasta else [],
            drinks=list(BEER_TYPES) if item.is_beer_selection else [],
            ingredients=list(WUNSCH_PIZZA_INGREDIENTS) if item.is_wunsch_pizza else [],
            extras=list(PIZZA_EXTRAS) if item.is_pizza else [],
            max_ingredients=MAX_INGREDIENTS,
            extra_price=settings.extra_price,
        )
