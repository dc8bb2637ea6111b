"""Menu Admin API routes - CRUD operations for categories and menu items."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Query, Request, status

from storefront.core.rate_limit import limiter
from storefront.core.rbac import RequireAdmin
from storefront.db.session import DbSession
from storefront.schemas.menu import (
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    MenuItemCreate,
    MenuItemResponse,
    MenuItemUpdate,
    RepairResponse,
    ReorderRequest,
)
from storefront.services.admin_menu_service import AdminMenuService

logger = logging.getLogger(__name__)

router = APIRouter()


# ==================== CATEGORIES ====================

@router.get("/categories", response_model=List[CategoryResponse])
@limiter.limit("60/minute")
def list_categories(request: Request, db: DbSession, current_user: RequireAdmin):
    return AdminMenuService(db).list_categories()


@router.post("/categories", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_category(request: Request, data: CategoryCreate, db: DbSession, current_user: RequireAdmin):
    category = AdminMenuService(db).create_category(data)
    logger.info(f"Category created: {category.slug} by {current_user.email}")
    return category


@router.put("/categories/order", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("30/minute")
def reorder_categories(request: Request, data: ReorderRequest, db: DbSession, current_user: RequireAdmin):
    AdminMenuService(db).reorder_categories(data.entries)


@router.put("/categories/{category_id}", response_model=CategoryResponse)
@limiter.limit("30/minute")
def update_category(
    request: Request, category_id: int, data: CategoryUpdate, db: DbSession, current_user: RequireAdmin
):
    return AdminMenuService(db).update_category(category_id, data)


@router.delete("/categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("30/minute")
def delete_category(request: Request, category_id: int, db: DbSession, current_user: RequireAdmin):
    """Delete a category together with its items."""
    AdminMenuService(db).delete_category(category_id)
    logger.info(f"Category {category_id} deleted by {current_user.email}")


# ==================== ITEMS ====================

@router.get("/items", response_model=List[MenuItemResponse])
@limiter.limit("60/minute")
def list_items(
    request: Request,
    db: DbSession,
    current_user: RequireAdmin,
    category_id: Optional[int] = Query(None),
):
    return AdminMenuService(db).list_items(category_id)


@router.post("/items", response_model=MenuItemResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_item(request: Request, data: MenuItemCreate, db: DbSession, current_user: RequireAdmin):
    item = AdminMenuService(db).create_item(data)
    logger.info(f"Menu item created: Nr. {item.number} {item.name} by {current_user.email}")
    return item


@router.put("/items/order", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("30/minute")
def reorder_items(request: Request, data: ReorderRequest, db: DbSession, current_user: RequireAdmin):
    AdminMenuService(db).reorder_items(data.entries)


@router.put("/items/{item_id}", response_model=MenuItemResponse)
@limiter.limit("30/minute")
def update_item(request: Request, item_id: int, data: MenuItemUpdate, db: DbSession, current_user: RequireAdmin):
    return AdminMenuService(db).update_item(item_id, data)


@router.delete("/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("30/minute")
def delete_item(request: Request, item_id: int, db: DbSession, current_user: RequireAdmin):
    AdminMenuService(db).delete_item(item_id)


@router.post("/items/{item_id}/duplicate", response_model=MenuItemResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def duplicate_item(request: Request, item_id: int, db: DbSession, current_user: RequireAdmin):
    """Copy an item under the next free number."""
    return AdminMenuService(db).duplicate_item(item_id)


# ==================== MAINTENANCE ====================

@router.post("/repair", response_model=RepairResponse)
@limiter.limit("5/minute")
def repair_categories(request: Request, db: DbSession, current_user: RequireAdmin):
    """Merge categories that share a slug."""
    result = AdminMenuService(db).cleanup_duplicate_categories()
    logger.info(f"Category repair by {current_user.email}: {result.message}")
    return RepairResponse(success=result.success, message=result.message, deleted_count=result.deleted_count)
