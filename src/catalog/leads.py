"""Lead tools: search, details and creation of quotes."""

from datetime import date
from typing import Any, Optional

from shared.logging import get_logger
from catalog.base import ToolGroup, error_payload, seller_scope
from catalog.services import CustomerDirectory, LeadService, StockService

logger = get_logger(__name__)

LEAD_STATUSES = ("open", "converted", "all")


def _parse_date(value: Optional[str]) -> Optional[date]:
    return date.fromisoformat(value) if value else None


def _lead_status(lead: dict[str, Any]) -> str:
    if lead.get("order_id"):
        return f"Converted (order {lead['order_id']})"
    return "Open"


def _lead_total(lead: dict[str, Any]) -> float:
    return sum(item["price"] * item["quantity"] for item in lead["items"])


class LeadTools(ToolGroup):
    """
    Lead tool group.

    Sellers (level <= 1) search and read only their own leads, and every
    lead created through the assistant belongs to the calling user.
    """

    name = "leads"

    def __init__(
        self,
        leads: LeadService,
        customers: CustomerDirectory,
        stock: StockService
    ) -> None:
        self.leads = leads
        self.customers = customers
        self.stock = stock
        super().__init__()

    def _define_tools(self) -> None:
        self._add(
            "search_leads",
            "Search for leads (quotes) using filters like customer ID, status, or search term.",
            {
                "type": "object",
                "properties": {
                    "customer_id": {"type": "integer", "description": "Filter by customer ID"},
                    "seller_id": {"type": "string", "description": "Filter by seller ID"},
                    "query": {
                        "type": "string",
                        "description": "Search term (lead ID, order ID or customer name)"
                    },
                    "status": {"type": "string", "enum": list(LEAD_STATUSES), "default": "all"},
                    "start_date": {"type": "string", "description": "Filter by start date (YYYY-MM-DD)"},
                    "end_date": {"type": "string", "description": "Filter by end date (YYYY-MM-DD)"},
                    "limit": {"type": "integer", "default": 5}
                }
            },
            self.search_leads,
        )

        self._add(
            "get_lead_details",
            "Get full details of a specific lead including its items.",
            {
                "type": "object",
                "properties": {
                    "id": {"type": "integer", "description": "The lead ID"}
                },
                "required": ["id"]
            },
            self.get_lead_details,
        )

        self._add(
            "create_lead",
            "Create a new lead (quote) for a specific customer with a list of products. "
            "Ask for customer ID and products with quantities first if they were not provided.",
            {
                "type": "object",
                "properties": {
                    "customer_id": {"type": "integer", "description": "The ID of the customer"},
                    "items": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "properties": {
                                "product_id": {"type": "integer", "description": "The product ID"},
                                "quantity": {"type": "integer", "description": "Quantity of the product"}
                            },
                            "required": ["product_id", "quantity"]
                        }
                    },
                    "remarks": {"type": "string", "description": "Optional internal remarks"}
                },
                "required": ["customer_id", "items"]
            },
            self.create_lead,
        )

    async def search_leads(self, args: dict[str, Any]) -> Any:
        status = args.get("status") or "all"
        if status not in LEAD_STATUSES:
            return error_payload(f"Invalid status: {status}")

        seller_id = seller_scope(args)
        if seller_id is None and args.get("seller_id") is not None:
            seller_id = str(args["seller_id"])

        leads = await self.leads.search(
            seller_id=seller_id,
            customer_id=int(args["customer_id"]) if args.get("customer_id") else None,
            query=args.get("query"),
            status=status,
            start_date=_parse_date(args.get("start_date")),
            end_date=_parse_date(args.get("end_date")),
            limit=int(args.get("limit") or 5),
        )

        results = []
        for lead in leads:
            customer = await self.customers.get(lead["customer_id"])
            results.append({
                "id": lead["id"],
                "date": lead["date"],
                "customer": customer["name"] if customer else lead["customer_id"],
                "total": _lead_total(lead),
                "status": _lead_status(lead),
                "buyer": lead.get("buyer"),
            })
        return results

    async def get_lead_details(self, args: dict[str, Any]) -> Any:
        lead = await self.leads.get(int(args["id"]))
        if not lead:
            return error_payload("Lead not found")

        seller_id = seller_scope(args)
        if seller_id is not None and lead["seller_id"] != str(seller_id):
            return error_payload("Lead not found")

        customer = await self.customers.get(lead["customer_id"])
        products = await self.stock.get_products([item["product_id"] for item in lead["items"]])

        return {
            "id": lead["id"],
            "date": lead["date"],
            "customer": customer["name"] if customer else lead["customer_id"],
            "status": _lead_status(lead),
            "remarks": lead.get("remarks"),
            "items": [
                {
                    "product": products.get(item["product_id"], {}).get("name", item["product_id"]),
                    "quantity": item["quantity"],
                    "price": item["price"],
                    "total": item["price"] * item["quantity"],
                }
                for item in lead["items"]
            ],
        }

    async def create_lead(self, args: dict[str, Any]) -> Any:
        user_id = args.get("user_id")
        if not user_id:
            return error_payload("User authentication required")

        requested = args.get("items") or []
        if not requested:
            return error_payload("At least one item is required")

        customer_id = int(args["customer_id"])
        if not await self.customers.get(customer_id):
            return error_payload(f"Customer {customer_id} not found.")

        products = await self.stock.get_products(
            [int(item["product_id"]) for item in requested if item.get("product_id") is not None]
        )

        items = []
        errors = []
        for item in requested:
            product = products.get(int(item.get("product_id") or 0))
            if not product:
                errors.append(f"Product ID {item.get('product_id')} not found.")
                continue
            quantity = int(item.get("quantity") or 0)
            if quantity < 1:
                errors.append(f"Invalid quantity for product ID {product['id']}.")
                continue
            items.append({"product_id": product["id"], "quantity": quantity, "price": product["price"]})

        if not items:
            return error_payload(" ".join(errors))

        lead = await self.leads.create(
            customer_id=customer_id,
            seller_id=str(user_id),
            items=items,
            remarks=args.get("remarks") or "Created by the sales assistant",
        )
        logger.info("Lead created", lead_id=lead["id"], customer_id=lead["customer_id"])

        result: dict[str, Any] = {
            "success": True,
            "message": "Lead created successfully!",
            "lead_id": lead["id"],
            "items": [
                {"product": products[item["product_id"]]["name"], "quantity": item["quantity"]}
                for item in items
            ],
        }
        if errors:
            result["errors"] = errors
        return result
