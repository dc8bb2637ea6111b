"""Public menu routes: sections, popular items and item dialog options."""

from typing import List

from fastapi import APIRouter, Request

from storefront.core.rate_limit import limiter
from storefront.db.session import DbSession
from storefront.schemas.menu import ItemOptions, MenuItemResponse, MenuSection
from storefront.services.menu_service import MenuService

router = APIRouter()


@router.get("/sections", response_model=List[MenuSection])
@limiter.limit("60/minute")
def list_menu_sections(request: Request, db: DbSession):
    """Categories in display order, each with its items sorted by number."""
    return MenuService(db).get_menu_sections()


@router.get("/popular", response_model=List[MenuItemResponse])
@limiter.limit("60/minute")
def list_popular_items(request: Request, db: DbSession):
    return MenuService(db).get_popular_items()


@router.get("/items/{number}", response_model=MenuItemResponse)
@limiter.limit("60/minute")
def get_menu_item(request: Request, number: int, db: DbSession):
    return MenuService(db).get_item_by_number(number)


@router.get("/items/{number}/options", response_model=ItemOptions)
@limiter.limit("60/minute")
def get_item_options(request: Request, number: int, db: DbSession):
    """Sizes, sauces and other choices the item dialog offers for one item."""
    return MenuService(db).get_item_options(number)
