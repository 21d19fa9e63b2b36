"""Catalog API router — variant search, quick product creation, stock levels."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from src.modules.catalog.client import CatalogClient, get_catalog_client
from src.modules.catalog.schemas import (
    AdjustmentResponse,
    InventoryAdjustment,
    InventoryListResponse,
    ProductCreate,
    VariantListResponse,
    VariantResponse,
)
from src.schemas.responses import ERROR_RESPONSES

router = APIRouter(prefix="/catalog", tags=["catalog"], responses=ERROR_RESPONSES)


@router.get("/variants", response_model=VariantListResponse)
async def search_variants(
    query: str = Query("", max_length=200),
    client: CatalogClient = Depends(get_catalog_client),
):
    """Search storefront variants to seed purchase-order lines."""
    rows = await client.search_variants(query)
    return VariantListResponse(items=[VariantResponse(**row) for row in rows])


@router.post("/products", response_model=VariantResponse, status_code=201)
async def create_product(
    body: ProductCreate,
    client: CatalogClient = Depends(get_catalog_client),
):
    """Create a simple product with an initial available quantity."""
    row = await client.create_product(
        title=body.title,
        sku=body.sku,
        price=str(body.price),
        quantity=body.quantity,
    )
    return VariantResponse(**row)


@router.get("/inventory", response_model=InventoryListResponse)
async def list_inventory(
    after: str | None = Query(None),
    before: str | None = Query(None),
    client: CatalogClient = Depends(get_catalog_client),
):
    """Page through variants with available and incoming stock."""
    page = await client.list_inventory(after=after, before=before)
    return InventoryListResponse(**page)


@router.post("/inventory/adjustments", response_model=AdjustmentResponse)
async def adjust_inventory(
    body: InventoryAdjustment,
    client: CatalogClient = Depends(get_catalog_client),
):
    await client.adjust_inventory(
        inventory_item_id=body.inventory_item_id,
        location_id=body.location_id,
        delta=body.delta,
    )
    return AdjustmentResponse()
