"""
Admin Menu Service
Category and menu item CRUD for the back office, plus the duplicate
category repair action.
"""

import logging
import re
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.core.errors import (
    NotFoundError,
    OperationResult,
    PersistenceError,
    ValidationFailedError,
    get_error_message,
    log_service_error,
)
from storefront.models.menu import Category, MenuItem
from storefront.schemas.menu import (
    CategoryCreate,
    CategoryUpdate,
    MenuItemCreate,
    MenuItemUpdate,
    OrderEntry,
)

logger = logging.getLogger(__name__)

_UMLAUTS = {"ä": "ae", "ö": "oe", "ü": "ue"}


def slugify(title: str) -> str:
    """Slug for a new category: lowercase, whitespace runs become dashes."""
    return re.sub(r"\s+", "-", title.lower().strip())


def repair_slug(category: Category) -> str:
    """Grouping key used by the duplicate repair when a slug is missing."""
    if category.slug:
        return category.slug
    if not category.title:
        return "unknown"
    slug = category.title.lower().replace(" ", "-")
    for umlaut, replacement in _UMLAUTS.items():
        slug = slug.replace(umlaut, replacement)
    return slug


class AdminMenuService:
    """Back-office catalog writes. Validation happens before any write."""

    def __init__(self, db: Session):
        self.db = db

    def _commit(self, context: str, message: str):
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            log_service_error(f"admin_menu.{context}", e)
            raise PersistenceError(f"{message}: {get_error_message(e)}")

    # ==================== READS ====================

    def list_categories(self) -> List[Category]:
        return self.db.query(Category).order_by(Category.order, Category.id).all()

    def list_items(self, category_id: Optional[int] = None) -> List[MenuItem]:
        """Items by explicit display order, falling back to the item number."""
        query = self.db.query(MenuItem)
        if category_id is not None:
            query = query.filter(MenuItem.category_id == category_id)
        items = query.order_by(MenuItem.number).all()
        return sorted(items, key=lambda i: i.order if i.order is not None else i.number)

    def get_category(self, category_id: int) -> Category:
        category = self.db.get(Category, category_id)
        if category is None:
            raise NotFoundError("Kategorie nicht gefunden")
        return category

    def get_item(self, item_id: int) -> MenuItem:
        item = self.db.get(MenuItem, item_id)
        if item is None:
            raise NotFoundError("Artikel nicht gefunden")
        return item

    # ==================== CATEGORIES ====================

    def create_category(self, data: CategoryCreate) -> Category:
        total = self.db.query(func.count(Category.id)).scalar() or 0
        category = Category(
            title=data.title,
            slug=data.slug or slugify(data.title),
            description=data.description,
            order=data.order if data.order is not None else total,
        )
        self.db.add(category)
        self._commit("create_category", "Fehler beim Speichern der Kategorie")
        self.db.refresh(category)
        logger.info(f"Category created: {category.slug} (id={category.id})")
        return category

    def update_category(self, category_id: int, data: CategoryUpdate) -> Category:
        category = self.get_category(category_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(category, field, value)
        self._commit("update_category", "Fehler beim Speichern der Kategorie")
        self.db.refresh(category)
        return category

    def delete_category(self, category_id: int) -> None:
        """Delete a category together with its items."""
        category = self.get_category(category_id)
        self.db.query(MenuItem).filter(MenuItem.category_id == category_id).delete(
            synchronize_session=False
        )
        self.db.delete(category)
        self._commit("delete_category", "Fehler beim Löschen der Kategorie")
        logger.info(f"Category deleted: id={category_id}")

    # ==================== MENU ITEMS ====================

    def _ensure_number_free(self, number: int, exclude_id: Optional[int] = None):
        query = self.db.query(MenuItem).filter(MenuItem.number == number)
        if exclude_id is not None:
            query = query.filter(MenuItem.id != exclude_id)
        if query.first() is not None:
            raise ValidationFailedError(f"Die Nummer {number} ist bereits vergeben", field="number")

    def create_item(self, data: MenuItemCreate) -> MenuItem:
        self.get_category(data.category_id)
        self._ensure_number_free(data.number)

        payload = data.model_dump()
        payload["price"] = Decimal(str(payload["price"]))
        item = MenuItem(**payload)
        self.db.add(item)
        self._commit("create_item", "Fehler beim Speichern des Artikels")
        self.db.refresh(item)
        logger.info(f"Menu item created: Nr. {item.number} {item.name}")
        return item

    def update_item(self, item_id: int, data: MenuItemUpdate) -> MenuItem:
        item = self.get_item(item_id)
        updates = data.model_dump(exclude_unset=True)

        if "number" in updates and updates["number"] is not None:
            self._ensure_number_free(updates["number"], exclude_id=item_id)
        if updates.get("category_id") is not None:
            self.get_category(updates["category_id"])
        if "price" in updates and updates["price"] is not None:
            updates["price"] = Decimal(str(updates["price"]))

        for field, value in updates.items():
            setattr(item, field, value)
        self._commit("update_item", "Fehler beim Speichern des Artikels")
        self.db.refresh(item)
        return item

    def delete_item(self, item_id: int) -> None:
        item = self.get_item(item_id)
        self.db.delete(item)
        self._commit("delete_item", "Fehler beim Löschen des Artikels")

    def duplicate_item(self, item_id: int) -> MenuItem:
        """Copy an item as "<name> (Kopie)" under the next free number."""
        source = self.get_item(item_id)
        next_number = (self.db.query(func.max(MenuItem.number)).scalar() or 0) + 1

        copy = MenuItem(
            category_id=source.category_id,
            number=next_number,
            name=f"{source.name} (Kopie)",
            description=source.description,
            price=source.price,
            allergens=source.allergens,
            sizes=list(source.sizes or []),
            order=source.order,
            is_wunsch_pizza=source.is_wunsch_pizza,
            is_pizza=source.is_pizza,
            is_pasta=source.is_pasta,
            is_spezialitaet=source.is_spezialitaet,
            is_beer_selection=source.is_beer_selection,
            is_meat_selection=source.is_meat_selection,
            is_multiple_sauce_selection=source.is_multiple_sauce_selection,
            has_side_dish_selection=source.has_side_dish_selection,
            skips_meat_wizard=source.skips_meat_wizard,
            limits_sauce_list=source.limits_sauce_list,
            sauce_policy=source.sauce_policy,
        )
        self.db.add(copy)
        self._commit("duplicate_item", "Fehler beim Duplizieren des Artikels")
        self.db.refresh(copy)
        return copy

    # ==================== REORDERING ====================

    def reorder_categories(self, entries: List[OrderEntry]) -> None:
        positions: Dict[int, int] = {e.id: e.order for e in entries}
        for category in self.db.query(Category).filter(Category.id.in_(positions)).all():
            category.order = positions[category.id]
        self._commit("reorder_categories", "Fehler beim Sortieren")

    def reorder_items(self, entries: List[OrderEntry]) -> None:
        positions: Dict[int, int] = {e.id: e.order for e in entries}
        for item in self.db.query(MenuItem).filter(MenuItem.id.in_(positions)).all():
            item.order = positions[item.id]
        self._commit("reorder_items", "Fehler beim Sortieren")

    # ==================== REPAIR ====================

    def cleanup_duplicate_categories(self) -> OperationResult:
        """Keep the lowest id per slug and delete the other copies. Never raises.

        Items of a deleted copy move to the kept category.
        """
        try:
            categories = self.db.query(Category).all()
            if not categories:
                return OperationResult(success=True, message="Keine Kategorien gefunden.")

            groups: Dict[str, List[Category]] = {}
            for category in categories:
                groups.setdefault(repair_slug(category), []).append(category)

            deleted = 0
            for slug, group in groups.items():
                if len(group) < 2:
                    continue
                logger.info(f"Duplicate slug found: {slug} ({len(group)} categories)")
                group.sort(key=lambda c: c.id)
                keeper = group[0]
                for duplicate in group[1:]:
                    for item in list(duplicate.items):
                        item.category = keeper
                    self.db.delete(duplicate)
                    deleted += 1

            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            log_service_error("admin_menu.cleanup_duplicate_categories", e)
            return OperationResult(success=False, message=f"Fehler: {get_error_message(e)}")

        message = f"{deleted} Duplikate entfernt." if deleted else "Keine Duplikate gefunden."
        return OperationResult(success=True, message=message, deleted_count=deleted)
