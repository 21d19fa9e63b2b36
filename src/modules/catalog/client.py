"""Storefront Admin GraphQL client — variant search, product creation, stock levels."""

from __future__ import annotations

import logging

import httpx

from src.config import settings
from src.exceptions import UpstreamException, ValidationException
from src.modules.catalog.constants import (
    ADJUST_INVENTORY_MUTATION,
    ADJUSTMENT_REASON,
    CREATE_PRODUCT_MUTATION,
    FIRST_LOCATION_QUERY,
    INVENTORY_PAGE_SIZE,
    INVENTORY_QUERY,
    MIN_SEARCH_LENGTH,
    QUANTITY_AVAILABLE,
    QUANTITY_INCOMING,
    SEARCH_PAGE_SIZE,
    SEARCH_VARIANTS_QUERY,
)

logger = logging.getLogger(__name__)


def _user_error_details(user_errors: list[dict]) -> list[dict]:
    return [
        {
            "field": ".".join(str(part) for part in (err.get("field") or [])) or None,
            "message": err.get("message", ""),
        }
        for err in user_errors
    ]


def _variant_row(node: dict) -> dict:
    return {
        "id": node["id"],
        "title": node.get("title") or "",
        "sku": node.get("sku") or "",
        "price": node.get("price"),
        "product_title": (node.get("product") or {}).get("title") or "",
    }


class CatalogClient:
    """Thin async wrapper over the Admin GraphQL endpoint.

    Failures are surfaced as ``UpstreamException`` and never retried; the
    caller decides whether to re-submit.
    """

    def __init__(
        self,
        graphql_url: str | None = None,
        access_token: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.graphql_url = graphql_url or (settings.shop_graphql_url if settings.shop_domain else "")
        self.access_token = access_token if access_token is not None else settings.shop_access_token
        self.timeout = timeout or settings.catalog_timeout_seconds
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
                headers={
                    "Content-Type": "application/json",
                    "X-Shopify-Access-Token": self.access_token,
                },
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def _execute(self, query: str, variables: dict | None = None) -> dict:
        """POST a GraphQL document and return its ``data`` block."""
        if not self.graphql_url:
            raise UpstreamException("Storefront API is not configured")

        client = await self._get_client()
        try:
            response = await client.post(
                self.graphql_url, json={"query": query, "variables": variables or {}}
            )
        except httpx.RequestError as exc:
            logger.warning("Storefront request failed: %s", exc)
            raise UpstreamException("Storefront API is unreachable") from exc

        if response.status_code >= 400:
            logger.warning("Storefront returned HTTP %d", response.status_code)
            raise UpstreamException(f"Storefront API returned HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamException("Storefront API returned invalid JSON") from exc

        errors = payload.get("errors")
        if errors:
            messages = [e.get("message", "") for e in errors if isinstance(e, dict)]
            logger.warning("Storefront GraphQL errors: %s", messages)
            raise UpstreamException(
                "Storefront API rejected the request",
                details=[{"field": None, "message": m} for m in messages],
            )
        return payload.get("data") or {}

    # ------------------------------------------------------------------
    # Variants
    # ------------------------------------------------------------------

    async def search_variants(self, query: str, first: int = SEARCH_PAGE_SIZE) -> list[dict]:
        """Free-text variant search; short queries return nothing."""
        if not query or len(query.strip()) < MIN_SEARCH_LENGTH:
            return []

        data = await self._execute(
            SEARCH_VARIANTS_QUERY, {"query": query.strip(), "first": first}
        )
        edges = ((data.get("products") or {}).get("edges")) or []
        return [
            _variant_row(variant_edge["node"])
            for product_edge in edges
            for variant_edge in (product_edge["node"].get("variants") or {}).get("edges", [])
        ]

    async def create_product(
        self,
        title: str,
        sku: str,
        price: str,
        quantity: int = 0,
    ) -> dict:
        """Create a single-variant product stocked at the first location."""
        location_data = await self._execute(FIRST_LOCATION_QUERY)
        nodes = (location_data.get("locations") or {}).get("nodes") or []
        if not nodes:
            raise UpstreamException("Storefront has no location to stock the product at")
        location_id = nodes[0]["id"]

        data = await self._execute(
            CREATE_PRODUCT_MUTATION,
            {
                "input": {
                    "title": title,
                    "productOptions": [{"name": "Title", "values": [{"name": "Default"}]}],
                    "variants": [
                        {
                            "sku": sku,
                            "price": str(price),
                            "optionValues": [{"optionName": "Title", "name": "Default"}],
                            "inventoryQuantities": [
                                {
                                    "locationId": location_id,
                                    "name": QUANTITY_AVAILABLE,
                                    "quantity": quantity,
                                }
                            ],
                        }
                    ],
                }
            },
        )
        result = data.get("productSet") or {}
        user_errors = result.get("userErrors") or []
        if user_errors:
            raise ValidationException(
                user_errors[0].get("message", "Product could not be created"),
                details=_user_error_details(user_errors),
            )

        variants = ((result.get("product") or {}).get("variants") or {}).get("nodes") or []
        if not variants:
            raise UpstreamException("Storefront did not return the created variant")

        logger.info("Created product %s (sku %s) with %d available", title, sku, quantity)
        return _variant_row(variants[0])

    # ------------------------------------------------------------------
    # Inventory
    # ------------------------------------------------------------------

    async def list_inventory(
        self,
        after: str | None = None,
        before: str | None = None,
        page_size: int = INVENTORY_PAGE_SIZE,
    ) -> dict:
        """One cursor page of variants with their available and incoming stock."""
        data = await self._execute(
            INVENTORY_QUERY,
            {
                "first": None if before else page_size,
                "last": page_size if before else None,
                "after": after,
                "before": before,
            },
        )
        products = data.get("products") or {}

        rows: list[dict] = []
        for product_edge in products.get("edges") or []:
            product = product_edge["node"]
            image = (product.get("featuredImage") or {}).get("url")
            for variant_edge in (product.get("variants") or {}).get("edges", []):
                variant = variant_edge["node"]
                inventory_item = variant.get("inventoryItem") or {}
                level_edges = (inventory_item.get("inventoryLevels") or {}).get("edges") or []
                level = level_edges[0]["node"] if level_edges else {}
                quantities = {
                    q["name"]: q["quantity"] for q in level.get("quantities") or []
                }
                rows.append(
                    {
                        "id": variant["id"],
                        "inventory_item_id": inventory_item.get("id"),
                        "location_id": (level.get("location") or {}).get("id"),
                        "product_title": product.get("title") or "",
                        "sku": variant.get("sku") or "-",
                        "image_url": image,
                        "on_hand": quantities.get(QUANTITY_AVAILABLE, 0),
                        "incoming": quantities.get(QUANTITY_INCOMING, 0),
                    }
                )

        page_info = products.get("pageInfo") or {}
        return {
            "rows": rows,
            "page_info": {
                "has_next_page": bool(page_info.get("hasNextPage")),
                "has_previous_page": bool(page_info.get("hasPreviousPage")),
                "start_cursor": page_info.get("startCursor"),
                "end_cursor": page_info.get("endCursor"),
            },
        }

    async def adjust_inventory(
        self,
        inventory_item_id: str,
        location_id: str,
        delta: int,
    ) -> None:
        """Apply a signed correction to the available quantity at a location."""
        data = await self._execute(
            ADJUST_INVENTORY_MUTATION,
            {
                "input": {
                    "name": QUANTITY_AVAILABLE,
                    "reason": ADJUSTMENT_REASON,
                    "changes": [
                        {
                            "inventoryItemId": inventory_item_id,
                            "locationId": location_id,
                            "delta": delta,
                        }
                    ],
                }
            },
        )
        user_errors = (data.get("inventoryAdjustQuantities") or {}).get("userErrors") or []
        if user_errors:
            raise ValidationException(
                "Inventory adjustment rejected", details=_user_error_details(user_errors)
            )

        logger.info(
            "Adjusted %s at %s by %+d", inventory_item_id, location_id, delta
        )


_instance: CatalogClient | None = None


def get_catalog_client() -> CatalogClient:
    """FastAPI dependency returning the process-wide client."""
    global _instance
    if _instance is None:
        _instance = CatalogClient()
    return _instance


async def close_catalog_client() -> None:
    """Close the cached httpx client; called on application shutdown."""
    global _instance
    if _instance is not None:
        await _instance.aclose()
        _instance = None
