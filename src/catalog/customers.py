"""Customer tools: search and details lookup."""

from typing import Any

from shared.logging import get_logger
from catalog.base import ToolGroup, error_payload, seller_scope
from catalog.services import CustomerDirectory

logger = get_logger(__name__)


class CustomerTools(ToolGroup):
    """
    Customer tool group.

    Sellers (level <= 1) only find customers of their own portfolio.
    """

    name = "customers"

    def __init__(self, directory: CustomerDirectory) -> None:
        self.directory = directory
        super().__init__()

    def _define_tools(self) -> None:
        self._add(
            "search_customers",
            "Search for customers by name, document or ID. Use this to find a customer "
            "when the user provides a name or partial information.",
            {
                "type": "object",
                "properties": {
                    "query": {
                        "type": "string",
                        "description": "The search term (name, trade name, document or ID)"
                    },
                    "limit": {
                        "type": "integer",
                        "description": "Max number of results (default 5)",
                        "default": 5
                    }
                },
                "required": ["query"]
            },
            self.search_customers,
        )

        self._add(
            "get_customer_details",
            "Get detailed information about a specific customer by their ID. Use this when "
            "you have the customer ID (e.g. from a search result) and need more details "
            "like address or financial status.",
            {
                "type": "object",
                "properties": {
                    "id": {
                        "type": "integer",
                        "description": "The numeric ID of the customer"
                    }
                },
                "required": ["id"]
            },
            self.get_customer_details,
        )

    async def search_customers(self, args: dict[str, Any]) -> Any:
        query = str(args.get("query") or "")
        logger.info("Searching customers", query=query)

        customers = await self.directory.search(
            query,
            seller_id=seller_scope(args),
            limit=int(args.get("limit") or 5)
        )

        if not customers:
            return {"message": "No customers found."}

        return [
            {
                "id": c["id"],
                "name": c["name"],
                "fantasy": c["fantasy"],
                "document": c["document"],
                "city": c["city"],
                "state": c["state"],
            }
            for c in customers
        ]

    async def get_customer_details(self, args: dict[str, Any]) -> Any:
        customer = await self.directory.get(int(args["id"]))
        if not customer:
            return error_payload("Customer not found")

        seller_id = seller_scope(args)
        if seller_id is not None and customer["seller_id"] != str(seller_id):
            # Same answer as a missing customer, existence is not leaked
            return error_payload("Customer not found")

        return {
            "id": customer["id"],
            "name": customer["name"],
            "fantasy": customer["fantasy"],
            "document": customer["document"],
            "email": customer["email"],
            "phone": customer["phone"],
            "address": customer["address"],
            "city": customer["city"],
            "state": customer["state"],
            "financial": {
                "limit": customer["credit_limit"],
                "balance": customer["balance"],
            },
        }
