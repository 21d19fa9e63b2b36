"""Admin GraphQL documents and limits for the storefront catalog."""

from __future__ import annotations

MIN_SEARCH_LENGTH = 2
SEARCH_PAGE_SIZE = 10
INVENTORY_PAGE_SIZE = 10

QUANTITY_AVAILABLE = "available"
QUANTITY_INCOMING = "incoming"
ADJUSTMENT_REASON = "correction"

SEARCH_VARIANTS_QUERY = """
query ($query: String!, $first: Int!) {
  products(first: $first, query: $query) {
    edges {
      node {
        title
        variants(first: 10) {
          edges {
            node {
              id
              title
              sku
              price
              product { title }
            }
          }
        }
      }
    }
  }
}
"""

FIRST_LOCATION_QUERY = """
query { locations(first: 1) { nodes { id } } }
"""

CREATE_PRODUCT_MUTATION = """
mutation CreateProduct($input: ProductSetInput!) {
  productSet(synchronous: true, input: $input) {
    product {
      id
      variants(first: 1) { nodes { id title sku price product { title } } }
    }
    userErrors { field message }
  }
}
"""

INVENTORY_QUERY = """
query ($first: Int, $last: Int, $after: String, $before: String) {
  products(first: $first, last: $last, after: $after, before: $before) {
    pageInfo { hasNextPage hasPreviousPage startCursor endCursor }
    edges {
      node {
        title
        featuredImage { url }
        variants(first: 100) {
          edges {
            node {
              id
              sku
              inventoryItem {
                id
                inventoryLevels(first: 1) {
                  edges {
                    node {
                      location { id }
                      quantities(names: ["available", "incoming"]) { name quantity }
                    }
                  }
                }
              }
            }
          }
        }
      }
    }
  }
}
"""

ADJUST_INVENTORY_MUTATION = """
mutation inventoryAdjust($input: InventoryAdjustQuantitiesInput!) {
  inventoryAdjustQuantities(input: $input) {
    userErrors { field message }
  }
}
"""
