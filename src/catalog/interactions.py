"""Customer interaction tools."""

from datetime import date
from typing import Any

from shared.logging import get_logger
from catalog.base import ToolGroup, error_payload
from catalog.services import InteractionService

logger = get_logger(__name__)

INTERACTION_TYPES = ("call", "visit", "email", "whatsapp", "meeting", "note")


class InteractionTools(ToolGroup):
    """Registers calls, visits and other touch points, always as the caller."""

    name = "interactions"

    def __init__(self, interactions: InteractionService) -> None:
        self.interactions = interactions
        super().__init__()

    def _define_tools(self) -> None:
        self._add(
            "create_interaction",
            "Register a new interaction with a customer (call, visit, email, whatsapp, "
            "meeting, note) and optionally schedule a follow-up action.",
            {
                "type": "object",
                "properties": {
                    "customer_id": {"type": "integer", "description": "The ID of the customer"},
                    "type": {
                        "type": "string",
                        "enum": list(INTERACTION_TYPES),
                        "description": "Type of the interaction"
                    },
                    "description": {"type": "string", "description": "Detailed description of the interaction"},
                    "next_action_date": {
                        "type": "string",
                        "description": "Optional: date for the next follow-up action (YYYY-MM-DD)"
                    },
                    "next_action_description": {
                        "type": "string",
                        "description": "Optional: description for the next follow-up action"
                    }
                },
                "required": ["customer_id", "type", "description"]
            },
            self.create_interaction,
        )

    async def create_interaction(self, args: dict[str, Any]) -> Any:
        user_id = args.get("user_id")
        if not user_id:
            return error_payload("User authentication required")

        kind = args.get("type")
        if kind not in INTERACTION_TYPES:
            return error_payload(f"Invalid interaction type: {kind}")

        next_date = args.get("next_action_date")
        try:
            next_action_date = date.fromisoformat(next_date) if next_date else None
        except ValueError:
            return error_payload("Invalid next_action_date, expected YYYY-MM-DD")

        interaction_id = await self.interactions.create(
            customer_id=int(args["customer_id"]),
            user_id=str(user_id),
            type=kind,
            description=str(args["description"]),
            next_action_date=next_action_date,
            next_action_description=args.get("next_action_description"),
        )
        logger.info("Interaction registered", interaction_id=interaction_id, type=kind)

        return {
            "success": True,
            "message": "Interaction registered successfully!",
            "id": interaction_id,
            "next_action": (
                f"Scheduled for {next_action_date.isoformat()}"
                if next_action_date else "No follow-up action scheduled"
            ),
        }
