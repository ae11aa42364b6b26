"""Shared utilities and models for the sales assistant."""

from shared.models import (
    Conversation,
    FinalResponse,
    Message,
    MessageRole,
    ToolCallResponse,
    ToolDefinition,
    ToolInvocation,
    UserContext,
)
from shared.config import Settings, get_settings
from shared.logging import get_logger, setup_logging

__all__ = [
    "Conversation",
    "FinalResponse",
    "Message",
    "MessageRole",
    "ToolCallResponse",
    "ToolDefinition",
    "ToolInvocation",
    "UserContext",
    "Settings",
    "get_settings",
    "get_logger",
    "setup_logging",
]
