"""Cart routes. Carts are keyed by a client-generated id."""

from fastapi import APIRouter, Path, Request

from storefront.core.rate_limit import limiter
from storefront.db.session import DbSession
from storefront.schemas.cart import (
    AddToCartRequest,
    CartLineRef,
    CartLineResponse,
    CartResponse,
    MenuItemRef,
    UpdateQuantityRequest,
)
from storefront.services.cart_service import (
    CartStore,
    get_cart_storage,
    line_key,
    line_total,
    line_unit_price,
)
from storefront.services.item_selection_service import build_selections
from storefront.services.menu_service import MenuService

router = APIRouter()

CartId = Path(..., min_length=1, max_length=64)


def _open_cart(db, cart_id: str) -> CartStore:
    return CartStore(cart_id, get_cart_storage(db))


def _cart_response(cart: CartStore) -> CartResponse:
    lines = [
        CartLineResponse(
            **line.model_dump(),
            key=line_key(line.menu_item.id, line.selections),
            unit_price=line_unit_price(line),
            line_total=line_total(line),
        )
        for line in cart.items
    ]
    return CartResponse(
        cart_id=cart.cart_id,
        items=lines,
        total_items=cart.total_items(),
        total_price=cart.total_price(),
        subtotal=cart.subtotal(),
    )


@router.get("/{cart_id}", response_model=CartResponse)
@limiter.limit("120/minute")
def get_cart(request: Request, db: DbSession, cart_id: str = CartId):
    return _cart_response(_open_cart(db, cart_id))


@router.post("/{cart_id}/items", response_model=CartResponse)
@limiter.limit("60/minute")
def add_cart_item(request: Request, data: AddToCartRequest, db: DbSession, cart_id: str = CartId):
    """Add one unit of a configured item; identical configurations merge."""
    item = MenuService(db).get_item(data.menu_item_id)
    selections = build_selections(item, data.selections)
    cart = _open_cart(db, cart_id)
    cart.add_item(MenuItemRef.model_validate(item), selections)
    return _cart_response(cart)


@router.put("/{cart_id}/items", response_model=CartResponse)
@limiter.limit("60/minute")
def update_cart_item(request: Request, data: UpdateQuantityRequest, db: DbSession, cart_id: str = CartId):
    cart = _open_cart(db, cart_id)
    cart.update_quantity(data.menu_item_id, data.quantity, data.selections)
    return _cart_response(cart)


@router.delete("/{cart_id}/items", response_model=CartResponse)
@limiter.limit("60/minute")
def remove_cart_item(request: Request, data: CartLineRef, db: DbSession, cart_id: str = CartId):
    cart = _open_cart(db, cart_id)
    cart.remove_item(data.menu_item_id, data.selections)
    return _cart_response(cart)


@router.delete("/{cart_id}", response_model=CartResponse)
@limiter.limit("60/minute")
def clear_cart(request: Request, db: DbSession, cart_id: str = CartId):
    cart = _open_cart(db, cart_id)
    cart.clear_cart()
    return _cart_response(cart)
