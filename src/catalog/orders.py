"""Order tools: finalized order history and details."""

from typing import Any

from shared.logging import get_logger
from catalog.base import ToolGroup, error_payload, seller_scope
from catalog.services import CustomerDirectory, OrderService, StockService

logger = get_logger(__name__)


def _order_total(order: dict[str, Any]) -> float:
    return sum(item["price"] * item["quantity"] for item in order["items"])


class OrderTools(ToolGroup):
    """
    Order tool group.

    Sellers (level <= 1) only see orders they sold. Reading another
    seller's order is refused explicitly.
    """

    name = "orders"

    def __init__(
        self,
        orders: OrderService,
        customers: CustomerDirectory,
        stock: StockService
    ) -> None:
        self.orders = orders
        self.customers = customers
        self.stock = stock
        super().__init__()

    def _define_tools(self) -> None:
        self._add(
            "search_orders",
            "Search for finalized orders using customer ID, order ID, or date. "
            "Use this to track history or check status of a sale.",
            {
                "type": "object",
                "properties": {
                    "customer_id": {"type": "integer", "description": "Filter by customer ID"},
                    "order_id": {"type": "integer", "description": "Search for a specific order ID"},
                    "limit": {"type": "integer", "default": 5}
                }
            },
            self.search_orders,
        )

        self._add(
            "get_order_details",
            "Get full details of a finalized order including items and payment terms.",
            {
                "type": "object",
                "properties": {
                    "id": {"type": "integer", "description": "The order ID"}
                },
                "required": ["id"]
            },
            self.get_order_details,
        )

    async def search_orders(self, args: dict[str, Any]) -> Any:
        seller_id = seller_scope(args)
        logger.info("Searching orders", seller_id=seller_id, customer_id=args.get("customer_id"))

        orders = await self.orders.search(
            seller_id=seller_id,
            customer_id=int(args["customer_id"]) if args.get("customer_id") else None,
            order_id=int(args["order_id"]) if args.get("order_id") else None,
            limit=int(args.get("limit") or 5),
        )

        results = []
        for order in orders:
            customer = await self.customers.get(order["customer_id"])
            results.append({
                "id": order["id"],
                "date": order["date"],
                "customer": customer["name"] if customer else order["customer_id"],
                "total": _order_total(order),
                "operation": order["operation"],
            })
        return results

    async def get_order_details(self, args: dict[str, Any]) -> Any:
        order = await self.orders.get(int(args["id"]))
        if not order:
            return error_payload("Order not found")

        seller_id = seller_scope(args)
        if seller_id is not None and order["seller_id"] != str(seller_id):
            return error_payload("Access denied: this order belongs to another seller.")

        customer = await self.customers.get(order["customer_id"])
        products = await self.stock.get_products([item["product_id"] for item in order["items"]])

        return {
            "id": order["id"],
            "date": order["date"],
            "customer": customer["name"] if customer else order["customer_id"],
            "total": _order_total(order),
            "items": [
                {
                    "product": products.get(item["product_id"], {}).get("name", item["product_id"]),
                    "quantity": item["quantity"],
                    "price": item["price"],
                    "total": item["price"] * item["quantity"],
                }
                for item in order["items"]
            ],
            "payment": order["payment"],
        }
