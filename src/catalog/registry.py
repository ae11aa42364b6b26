"""Tool Catalog.

Maps tool names to their schema and their executable handler. The
catalog is filled at startup, then sealed: afterwards it is read-only and
shared by every conversation without synchronization.
"""

from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional

from shared.logging import get_logger
from shared.models import ToolDefinition
from shared.schema import check_schema

if TYPE_CHECKING:
    from catalog.base import ToolGroup

logger = get_logger(__name__)


# Handlers receive the merged argument object and return a serialized result
ToolHandler = Callable[[dict[str, Any]], Awaitable[str]]


class ToolCatalog:
    """
    Static registry of the tools offered to the model.

    Responsibilities:
    - Register tools with their handlers
    - Provide tool schemas in LLM format
    - Resolve handlers by name
    """

    def __init__(self) -> None:
        self._tools: dict[str, ToolDefinition] = {}
        self._handlers: dict[str, ToolHandler] = {}
        self._groups: set[str] = set()
        self._sealed = False

    @property
    def sealed(self) -> bool:
        return self._sealed

    def register(self, tool: ToolDefinition, handler: ToolHandler) -> None:
        """
        Register a tool and its handler.

        Raises:
            RuntimeError: If the catalog has been sealed
            ValueError: If the name is taken or the parameter schema is invalid
        """
        if self._sealed:
            raise RuntimeError("Tool catalog is sealed; register tools at startup")

        if tool.name in self._tools:
            raise ValueError(f"Tool '{tool.name}' is already registered")

        check_schema(tool.parameters)

        self._tools[tool.name] = tool
        self._handlers[tool.name] = handler
        self._groups.add(tool.group)

        logger.debug("Tool registered", tool=tool.name, group=tool.group)

    def register_group(self, group: "ToolGroup") -> None:
        """Register every tool of a tool group."""
        for tool in group.tools:
            self.register(tool, group.handler(tool.name))

        logger.info("Tool group registered", group=group.name, tool_count=len(group.tools))

    def seal(self) -> None:
        """Make the catalog read-only."""
        self._sealed = True

    def definitions(self) -> list[dict[str, Any]]:
        """Return the complete list of tool schemas in LLM format."""
        return [tool.to_llm_format() for tool in self._tools.values()]

    def handler(self, name: str) -> Optional[ToolHandler]:
        """Return the handler bound to ``name``, or None if unknown."""
        return self._handlers.get(name)

    def get(self, name: str) -> Optional[ToolDefinition]:
        return self._tools.get(name)

    def list_tools(self, group: Optional[str] = None) -> list[ToolDefinition]:
        """List registered tools, optionally filtered by group."""
        tools = list(self._tools.values())
        if group:
            tools = [t for t in tools if t.group == group]
        return tools

    def list_groups(self) -> list[str]:
        return sorted(self._groups)

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools
