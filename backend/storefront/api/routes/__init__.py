"""API routes."""

from fastapi import APIRouter

from storefront.api.routes import auth, cart, menu, menu_admin, monitor, orders, settings, store

api_router = APIRouter()

# Storefront
api_router.include_router(menu.router, prefix="/menu", tags=["menu"])
api_router.include_router(store.router, prefix="/store", tags=["store"])
api_router.include_router(cart.router, prefix="/cart", tags=["cart"])
api_router.include_router(orders.router, prefix="/orders", tags=["orders"])

# Back office
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(menu_admin.router, prefix="/admin/menu", tags=["menu-admin"])
api_router.include_router(settings.router, prefix="/admin/settings", tags=["settings"])
api_router.include_router(monitor.router, prefix="/monitor", tags=["monitor"])
