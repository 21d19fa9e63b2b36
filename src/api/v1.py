"""Centralized v1 API router — all module routers are included here."""

from fastapi import APIRouter

from src.modules.catalog.router import router as catalog_router
from src.modules.purchase_order.router import router as purchase_order_router

v1_router = APIRouter(prefix="/api/v1")
v1_router.include_router(purchase_order_router)
v1_router.include_router(catalog_router)
