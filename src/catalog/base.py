"""Base classes for tool groups.

All tool handlers must:
- Call exactly one domain service and adapt its result
- Return a serialized (string) result
- Never raise: failures become a serialized ``{"error": ...}`` payload
- Trust ``user_id`` / ``user_level`` from the arguments, which the
  orchestrator overwrites with the authenticated caller
"""

import functools
import json
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Optional

from shared.logging import get_logger
from shared.models import ToolDefinition
from catalog.registry import ToolHandler

logger = get_logger(__name__)

# Authorization levels at or below this only see their own portfolio
SELLER_LEVEL = 1


def error_payload(message: str) -> str:
    return json.dumps({"error": message}, ensure_ascii=False)


def safe_handler(
    tool_name: str,
    fn: Callable[[dict[str, Any]], Awaitable[Any]]
) -> ToolHandler:
    """
    Wrap a handler so it always returns a string and never raises.

    Dict and list results are serialized to JSON; exceptions are logged
    and converted into an error payload.
    """

    @functools.wraps(fn)
    async def wrapper(args: dict[str, Any]) -> str:
        try:
            result = await fn(args)
        except Exception as e:
            logger.error("Tool handler failed", tool=tool_name, error=str(e), exc_info=True)
            return error_payload(str(e))

        if isinstance(result, str):
            return result
        return json.dumps(result, ensure_ascii=False, default=str)

    return wrapper


def seller_scope(args: dict[str, Any]) -> Optional[str]:
    """Seller id a handler must restrict itself to, or None for managers."""
    if int(args.get("user_level", 0)) <= SELLER_LEVEL:
        return args.get("user_id")
    return None


class ToolGroup(ABC):
    """
    Base class for a group of related tools.

    Each group:
    - Defines its tools in ``_define_tools``
    - Wraps its handlers with ``safe_handler``
    - Depends only on its domain services
    """

    name: str = "default"

    def __init__(self) -> None:
        self._tools: dict[str, ToolDefinition] = {}
        self._handlers: dict[str, ToolHandler] = {}
        self._define_tools()

    @abstractmethod
    def _define_tools(self) -> None:
        """Define all tools of this group with ``_add``."""
        pass

    def _add(
        self,
        name: str,
        description: str,
        parameters: dict[str, Any],
        handler: Callable[[dict[str, Any]], Awaitable[Any]]
    ) -> None:
        self._tools[name] = ToolDefinition(
            name=name,
            group=self.name,
            description=description,
            parameters=parameters
        )
        self._handlers[name] = safe_handler(name, handler)

    @property
    def tools(self) -> list[ToolDefinition]:
        """Return all tool definitions of this group."""
        return list(self._tools.values())

    def handler(self, name: str) -> ToolHandler:
        """Return the wrapped handler of a tool in this group."""
        return self._handlers[name]
