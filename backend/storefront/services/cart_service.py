"""
Cart Service
Cart line identity, merge-by-key cart operations, pricing and cart storage.

A cart line is identified by its menu item plus every chosen modifier. List
selections are sorted before they take part in the key, so picking
"ohne Zwiebeln, ohne Tomaten" and "ohne Tomaten, ohne Zwiebeln" lands on the
same line.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

import redis
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.core.config import settings
from storefront.core.errors import PersistenceError, log_service_error
from storefront.models.cart import CartRow
from storefront.schemas.cart import CartLine, ItemSelections, MenuItemRef

logger = logging.getLogger(__name__)

NONE_TOKEN = "none"
DEFAULT_SIZE_TOKEN = "default"


def _joined(values: Optional[Iterable[str]]) -> str:
    values = list(values or [])
    return ",".join(sorted(values)) if values else NONE_TOKEN


def line_key(menu_item_id: int, selections: Optional[ItemSelections] = None) -> str:
    """Composite identity of a cart line."""
    sel = selections or ItemSelections()
    parts = [
        str(menu_item_id),
        sel.selected_size.name if sel.selected_size else DEFAULT_SIZE_TOKEN,
        _joined(sel.selected_ingredients),
        _joined(sel.selected_extras),
        sel.selected_pasta_type or NONE_TOKEN,
        sel.selected_sauce or NONE_TOKEN,
        _joined(sel.selected_exclusions),
        sel.selected_side_dish or NONE_TOKEN,
        sel.selected_drink or NONE_TOKEN,
    ]
    return "-".join(parts)


# ------------------------------------------------------------------
# Pricing
# ------------------------------------------------------------------

def base_price(line: CartLine) -> float:
    """Size price when a size was chosen, else the item price."""
    if line.selected_size is not None:
        return line.selected_size.price
    return line.menu_item.price


def line_unit_price(line: CartLine, extra_price: Optional[float] = None) -> float:
    """Price of one unit including the per-extra surcharge."""
    if extra_price is None:
        extra_price = settings.extra_price
    return round(base_price(line) + len(line.selected_extras) * extra_price, 2)


def line_total(line: CartLine, extra_price: Optional[float] = None) -> float:
    return round(line_unit_price(line, extra_price) * line.quantity, 2)


def cart_subtotal(lines: Iterable[CartLine], extra_price: Optional[float] = None) -> float:
    """Amount charged at checkout, extras included."""
    return round(sum(line_total(line, extra_price) for line in lines), 2)


# ------------------------------------------------------------------
# Storage backends
# ------------------------------------------------------------------

class CartStorage(ABC):
    """Where cart lines live between requests."""

    @abstractmethod
    def load(self, cart_id: str) -> List[CartLine]:
        ...

    @abstractmethod
    def save(self, cart_id: str, lines: List[CartLine]) -> None:
        ...

    @abstractmethod
    def delete(self, cart_id: str) -> None:
        ...


class DbCartStorage(CartStorage):
    """Carts stored as JSON rows in the ``carts`` table."""

    def __init__(self, db: Session):
        self.db = db

    def load(self, cart_id: str) -> List[CartLine]:
        row = self.db.get(CartRow, cart_id)
        if row is None:
            return []
        return [CartLine.model_validate(item) for item in row.items]

    def save(self, cart_id: str, lines: List[CartLine]) -> None:
        payload = [line.model_dump(mode="json") for line in lines]
        try:
            row = self.db.get(CartRow, cart_id)
            if row is None:
                self.db.add(CartRow(id=cart_id, items=payload))
            else:
                row.items = payload
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            log_service_error("cart.save", e)
            raise PersistenceError("Warenkorb konnte nicht gespeichert werden.")

    def delete(self, cart_id: str) -> None:
        try:
            self.db.query(CartRow).filter(CartRow.id == cart_id).delete()
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            log_service_error("cart.delete", e)
            raise PersistenceError("Warenkorb konnte nicht geleert werden.")


class RedisCartStorage(CartStorage):
    """Carts stored as JSON strings in Redis with a sliding TTL."""

    KEY_PREFIX = "cart:"

    def __init__(self, client, ttl_seconds: Optional[int] = None):
        self.client = client
        self.ttl_seconds = ttl_seconds or settings.cart_ttl_seconds

    def _key(self, cart_id: str) -> str:
        return f"{self.KEY_PREFIX}{cart_id}"

    def load(self, cart_id: str) -> List[CartLine]:
        try:
            raw = self.client.get(self._key(cart_id))
        except redis.RedisError as e:
            log_service_error("cart.load", e)
            raise PersistenceError("Warenkorb konnte nicht geladen werden.")
        if not raw:
            return []
        return [CartLine.model_validate(item) for item in json.loads(raw)]

    def save(self, cart_id: str, lines: List[CartLine]) -> None:
        payload = json.dumps([line.model_dump(mode="json") for line in lines])
        try:
            self.client.set(self._key(cart_id), payload, ex=self.ttl_seconds)
        except redis.RedisError as e:
            log_service_error("cart.save", e)
            raise PersistenceError("Warenkorb konnte nicht gespeichert werden.")

    def delete(self, cart_id: str) -> None:
        try:
            self.client.delete(self._key(cart_id))
        except redis.RedisError as e:
            log_service_error("cart.delete", e)
            raise PersistenceError("Warenkorb konnte nicht geleert werden.")


_redis_client = None
_redis_connect_attempted = False


def _get_redis_client():
    """Connect once per process; None when Redis is not configured or unreachable."""
    global _redis_client, _redis_connect_attempted
    if not _redis_connect_attempted and settings.redis_url:
        _redis_connect_attempted = True
        try:
            client = redis.from_url(settings.redis_url, socket_connect_timeout=2, decode_responses=True)
            client.ping()
            _redis_client = client
            logger.info("Redis cart storage connected")
        except redis.RedisError as e:
            logger.warning(f"Redis unavailable, storing carts in the database: {e}")
    return _redis_client


def get_cart_storage(db: Session) -> CartStorage:
    client = _get_redis_client()
    if client is not None:
        return RedisCartStorage(client)
    return DbCartStorage(db)


# ------------------------------------------------------------------
# Cart store
# ------------------------------------------------------------------

class CartStore:
    """
    The only writer of a cart's lines. Every mutation goes through these
    operations so two lines never share the same key.
    """

    def __init__(self, cart_id: str, storage: CartStorage):
        self.cart_id = cart_id
        self.storage = storage
        self._items: List[CartLine] = storage.load(cart_id)

    @property
    def items(self) -> List[CartLine]:
        return list(self._items)

    def _persist(self):
        if self._items:
            self.storage.save(self.cart_id, self._items)
        else:
            self.storage.delete(self.cart_id)

    def _index_of(self, key: str) -> int:
        for index, line in enumerate(self._items):
            if line_key(line.menu_item.id, line.selections) == key:
                return index
        return -1

    def add_item(self, menu_item: MenuItemRef, selections: Optional[ItemSelections] = None) -> CartLine:
        """Merge into the matching line or append a new one with quantity 1."""
        selections = selections or ItemSelections()
        index = self._index_of(line_key(menu_item.id, selections))

        if index >= 0:
            line = self._items[index].model_copy(update={"quantity": self._items[index].quantity + 1})
            self._items[index] = line
        else:
            line = CartLine(menu_item=menu_item, quantity=1, **selections.model_dump())
            self._items.append(line)

        self._persist()
        return line

    def remove_item(self, menu_item_id: int, selections: Optional[ItemSelections] = None) -> None:
        """Drop the line with exactly these selections."""
        key = line_key(menu_item_id, selections)
        self._items = [
            line for line in self._items
            if line_key(line.menu_item.id, line.selections) != key
        ]
        self._persist()

    def update_quantity(
        self,
        menu_item_id: int,
        quantity: int,
        selections: Optional[ItemSelections] = None,
    ) -> None:
        """Set a line's quantity verbatim; zero or less removes it."""
        if quantity <= 0:
            self.remove_item(menu_item_id, selections)
            return

        index = self._index_of(line_key(menu_item_id, selections))
        if index >= 0:
            self._items[index] = self._items[index].model_copy(update={"quantity": quantity})
            self._persist()

    def clear_cart(self) -> None:
        self._items = []
        self.storage.delete(self.cart_id)

    def total_items(self) -> int:
        return sum(line.quantity for line in self._items)

    def total_price(self) -> float:
        """Base or size price times quantity. Extras are not included here."""
        return round(sum(base_price(line) * line.quantity for line in self._items), 2)

    def subtotal(self) -> float:
        return cart_subtotal(self._items)
