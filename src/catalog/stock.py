"""Product and stock tools."""

from typing import Any

from catalog.base import ToolGroup, error_payload
from catalog.services import StockService

# Warehouses counted towards each state's availability
SP_WAREHOUSES = ("matriz_sp", "deposito_sp", "barrafunda_sp")
SC_WAREHOUSES = ("deposito_sc",)


class StockTools(ToolGroup):
    """Product search and per-warehouse stock lookup."""

    name = "stock"

    def __init__(self, stock: StockService) -> None:
        self.stock = stock
        super().__init__()

    def _define_tools(self) -> None:
        self._add(
            "search_products",
            "Search for products by name, model or category to check prices and general info.",
            {
                "type": "object",
                "properties": {
                    "query": {"type": "string", "description": "Search term (product name or model)"},
                    "limit": {"type": "integer", "default": 5}
                },
                "required": ["query"]
            },
            self.search_products,
        )

        self._add(
            "get_product_stock",
            "Check stock levels for a specific product by ID across different warehouses.",
            {
                "type": "object",
                "properties": {
                    "id": {"type": "integer", "description": "Product ID"}
                },
                "required": ["id"]
            },
            self.get_product_stock,
        )

    async def search_products(self, args: dict[str, Any]) -> Any:
        products = await self.stock.search_products(
            str(args.get("query") or ""), int(args.get("limit") or 5)
        )
        if not products:
            return {"message": "No products found."}

        return [
            {
                "id": p["id"],
                "model": p["code"],
                "name": p["name"],
                "sale_price": p["price"],
                "cost_price": p["cost"],
                "brand": p["brand"],
                "segment": p["segment"],
            }
            for p in products
        ]

    async def get_product_stock(self, args: dict[str, Any]) -> Any:
        product_id = int(args["id"])
        stock = await self.stock.get_stock(product_id)
        if stock is None:
            return error_payload("Product not found")

        return {
            "id": product_id,
            "stock": {
                "sp": sum(stock.get(w, 0) for w in SP_WAREHOUSES),
                "sc": sum(stock.get(w, 0) for w in SC_WAREHOUSES),
                "details": stock,
            },
        }
