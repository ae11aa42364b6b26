"""Orchestrator.

Runs the bounded tool-calling loop over a rate-limited, cached LLM
gateway, persists conversations and serves the chat API.
"""

from orchestrator.llm import LLMProvider, create_llm_provider
from orchestrator.gateway import GatewayError, LLMGateway, RateLimitExceededError
from orchestrator.conversation import ConversationStore, InMemoryConversationStore
from orchestrator.agent import (
    ConversationNotFoundError,
    ConversationOrchestrator,
    LoopExhaustedError,
)

__all__ = [
    "LLMProvider",
    "create_llm_provider",
    "GatewayError",
    "LLMGateway",
    "RateLimitExceededError",
    "ConversationStore",
    "InMemoryConversationStore",
    "ConversationNotFoundError",
    "ConversationOrchestrator",
    "LoopExhaustedError",
]
