"""Core data models for the sales assistant.

This module defines the shared data structures used by the gateway,
the agentic loop and the tool catalog.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MessageRole(str, Enum):
    """Role of a message in a conversation."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class UserContext(BaseModel):
    """Authenticated user context propagated through the system."""
    user_id: str
    username: Optional[str] = None
    level: int = Field(default=0, description="Authorization level, <= 1 is a seller")


class ToolInvocation(BaseModel):
    """
    A tool call requested by the model inside an assistant message.

    Not persisted on its own; it lives inside the assistant Message.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    arguments: str = "{}"

    def to_wire(self) -> dict[str, Any]:
        """Return the provider (OpenAI function calling) representation."""
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments},
        }


class Conversation(BaseModel):
    """A chat conversation owned by a single user."""
    id: str
    user_id: str
    title: str
    context_type: str = "GENERAL"
    context_id: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Message(BaseModel):
    """
    A persisted message.

    Messages are immutable and ordered by ``id``, a strictly increasing
    sequence assigned by the store.
    """
    model_config = ConfigDict(frozen=True)

    id: int
    conversation_id: str
    role: MessageRole
    content: Optional[str] = None
    tool_calls: Optional[tuple[ToolInvocation, ...]] = None
    tool_call_id: Optional[str] = None
    tokens_used: int = 0
    created_at: datetime = Field(default_factory=utcnow)


class TokenUsage(BaseModel):
    """Token accounting reported by the provider."""
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class CompletionOptions(BaseModel):
    """Per-call options for the gateway."""
    model: Optional[str] = None
    temperature: Optional[float] = Field(default=None, ge=0, le=2)
    max_tokens: Optional[int] = Field(default=None, gt=0)
    user_id: str = Field(default="system", description="Caller identifier for logging")
    tools: Optional[list[dict[str, Any]]] = None
    use_cache: bool = False


class LLMResponse(BaseModel):
    """Normalized output of an LLM provider."""
    content: Optional[str] = None
    tool_calls: list[ToolInvocation] = Field(default_factory=list)
    finish_reason: str = "stop"
    usage: TokenUsage = Field(default_factory=TokenUsage)


class FinalResponse(BaseModel):
    """Tool-free assistant response; ends the agentic loop."""
    kind: Literal["final"] = "final"
    role: Literal["assistant"] = "assistant"
    content: str = ""
    usage: TokenUsage = Field(default_factory=TokenUsage)

    @property
    def tool_calls(self) -> list[ToolInvocation]:
        return []


class ToolCallResponse(BaseModel):
    """Assistant response requesting one or more tool executions."""
    kind: Literal["tool_calls"] = "tool_calls"
    role: Literal["assistant"] = "assistant"
    content: Optional[str] = None
    tool_calls: list[ToolInvocation] = Field(..., min_length=1)
    usage: TokenUsage = Field(default_factory=TokenUsage)


GatewayResponse = Annotated[
    Union[FinalResponse, ToolCallResponse],
    Field(discriminator="kind"),
]


class CacheEntry(BaseModel):
    """A cached gateway response with its insertion time (monotonic seconds)."""
    response: FinalResponse
    inserted_at: float


class RateLimiterState(BaseModel):
    """Snapshot of the gateway's admission state."""
    reservoir: Optional[int]
    max_concurrent: int
    min_time: float
    refresh_amount: int
    refresh_interval: Optional[float]
    in_flight: int = 0
    consumed: int = 0
    refills: int = 0


class ToolDefinition(BaseModel):
    """
    Definition of a tool offered to the model.

    The description is what the model reads to decide when to call the
    tool; ``parameters`` is a JSON Schema object.
    """
    name: str = Field(..., description="Unique tool name")
    group: str = Field(..., description="Tool group, e.g. analytics")
    description: str = Field(..., description="Clear description for LLM usage")
    parameters: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}},
        description="JSON Schema for the tool arguments"
    )

    def to_llm_format(self) -> dict[str, Any]:
        """Format for LLM consumption (OpenAI function calling format)."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }
