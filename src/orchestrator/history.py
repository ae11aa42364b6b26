"""Mapping of persisted messages to the provider wire format.

Pure functions, independent of storage: the agentic loop rebuilds the
model's view of a conversation from the ordered message rows.
"""

from datetime import datetime
from typing import Any, Sequence

from shared.models import Message, MessageRole, UserContext


SYSTEM_PROMPT_TEMPLATE = """You are the virtual sales assistant of a sales management system.
You help sellers look up customers, leads, orders, forecasts and their own metrics.
The current user is ID {user_id}.
Current date/time: {now}.

Rules:
- Be professional and direct.
- If you do not know something, say so. Never make up data; use the tools.
- Respect data privacy: only discuss data the tools return for this user.
- Use the current date to resolve terms like "today", "tomorrow" or "last month".
"""


def build_system_prompt(user: UserContext, now: datetime) -> str:
    """
    Render the system preamble.

    The time is truncated to the minute so identical questions asked within
    the same minute produce identical message lists.
    """
    return SYSTEM_PROMPT_TEMPLATE.format(
        user_id=user.user_id,
        now=now.strftime("%Y-%m-%d %H:%M (%A)"),
    )


def message_to_wire(message: Message) -> dict[str, Any]:
    """Convert one persisted message to the provider's turn format."""
    if message.role == MessageRole.TOOL:
        return {
            "role": "tool",
            "tool_call_id": message.tool_call_id,
            "content": message.content or "",
        }

    if message.role == MessageRole.ASSISTANT:
        wire: dict[str, Any] = {
            "role": "assistant",
            "content": message.content or "",
        }
        if message.tool_calls:
            wire["tool_calls"] = [call.to_wire() for call in message.tool_calls]
        return wire

    return {"role": message.role.value, "content": message.content or ""}


def build_model_messages(
    history: Sequence[Message],
    user: UserContext,
    now: datetime
) -> list[dict[str, Any]]:
    """System preamble followed by the full persisted history, in order."""
    messages = [{"role": "system", "content": build_system_prompt(user, now)}]
    messages.extend(message_to_wire(m) for m in history)
    return messages
