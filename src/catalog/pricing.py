"""Pricing simulation tool."""

from typing import Any

from shared.logging import get_logger
from catalog.base import ToolGroup, error_payload
from catalog.services import CustomerDirectory, PricingService, StockService

logger = get_logger(__name__)


def _discount_percent(list_value: float, net_value: float) -> float:
    return round((1 - net_value / list_value) * 100, 2) if list_value > 0 else 0.0


class PricingTools(ToolGroup):
    """
    Pricing tool group.

    Suggested prices come from the pricing service one item at a time;
    taxes are added on top of the suggested net price.
    """

    name = "pricing"

    def __init__(
        self,
        pricing: PricingService,
        customers: CustomerDirectory,
        stock: StockService
    ) -> None:
        self.pricing = pricing
        self.customers = customers
        self.stock = stock
        super().__init__()

    def _define_tools(self) -> None:
        self._add(
            "simulate_pricing",
            "Simulate pricing for a customer order. Calculates the best price based on "
            "customer volume and payment terms, and adds IPI/ST taxes.",
            {
                "type": "object",
                "properties": {
                    "customer_id": {"type": "integer", "description": "The ID of the customer"},
                    "items": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "properties": {
                                "product_id": {"type": "integer", "description": "Product ID"},
                                "quantity": {"type": "integer", "default": 1}
                            },
                            "required": ["product_id"]
                        }
                    },
                    "installments": {
                        "type": "integer",
                        "description": "Number of installments (payment terms). Affects discount.",
                        "default": 1
                    }
                },
                "required": ["customer_id", "items"]
            },
            self.simulate_pricing,
        )

    async def simulate_pricing(self, args: dict[str, Any]) -> Any:
        customer_id = int(args["customer_id"])
        installments = int(args.get("installments") or 1)

        customer = await self.customers.get(customer_id)
        if not customer:
            return error_payload(f"Customer {customer_id} not found.")

        requested = [
            {"product_id": int(item["product_id"]), "quantity": int(item.get("quantity") or 1)}
            for item in args.get("items") or []
            if item.get("product_id") is not None
        ]
        if not requested:
            return error_payload("At least one item is required")

        # One lookup for every product in the order
        products = await self.stock.get_products([item["product_id"] for item in requested])

        missing = [item["product_id"] for item in requested if item["product_id"] not in products]
        priced = [item for item in requested if item["product_id"] in products]
        if not priced:
            return error_payload(f"Products not found: {missing}")

        order_value = sum(products[i["product_id"]]["price"] * i["quantity"] for i in priced)

        results = []
        total_net = total_ipi = total_st = 0.0
        for item in priced:
            product = products[item["product_id"]]
            quantity = item["quantity"]
            list_price = product["price"]

            quote = await self.pricing.quote({
                "customer_id": customer_id,
                "product_id": product["id"],
                "quantity": quantity,
                "list_price": list_price,
                "order_value": order_value,
                "installments": installments,
            })
            final_price = quote.get("final_price") or list_price
            taxes = await self.pricing.taxes(customer, product, final_price, quantity)

            item_total = final_price * quantity + taxes["ipi"] + taxes["st"]
            total_net += final_price * quantity
            total_ipi += taxes["ipi"]
            total_st += taxes["st"]

            results.append({
                "id": product["id"],
                "name": product["name"],
                "quantity": quantity,
                "unit_price_list": list_price,
                "unit_price_suggested_net": final_price,
                "unit_price_final_with_taxes": round(item_total / quantity, 2),
                "discount_percent": _discount_percent(list_price, final_price),
                "decision_reason": quote.get("reason") or "Calculated by the pricing service",
                "ipi": taxes["ipi"],
                "st": taxes["st"],
                "total_item": round(item_total, 2),
            })

        logger.info("Pricing simulated", customer_id=customer_id, items=len(results))

        result: dict[str, Any] = {
            "customer_name": customer["name"],
            "summary": {
                "subtotal_list": order_value,
                "subtotal_suggested_net": round(total_net, 2),
                "total_discount_percent": _discount_percent(order_value, total_net),
                "total_ipi": round(total_ipi, 2),
                "total_st": round(total_st, 2),
                "total_final": round(total_net + total_ipi + total_st, 2),
                "installments": installments,
            },
            "items": results,
            "disclaimer": "Simulation based on current commercial policies and the customer's volume.",
        }
        if missing:
            result["errors"] = [f"Product ID {pid} not found." for pid in missing]
        return result
