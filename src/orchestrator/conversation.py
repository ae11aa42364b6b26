"""Conversation persistence for the Orchestrator.

``ConversationStore`` is the contract the agentic loop persists through;
``InMemoryConversationStore`` implements it for single-process
deployments and tests.
"""

import asyncio
import uuid
from abc import ABC, abstractmethod
from typing import Optional, Sequence

from shared.logging import get_logger
from shared.models import (
    Conversation,
    Message,
    MessageRole,
    ToolInvocation,
)

logger = get_logger(__name__)


class MessageOrderError(ValueError):
    """A tool message does not answer an earlier assistant tool call."""
    pass


class ConversationStore(ABC):
    """
    Append-only storage of conversations and their messages.

    Implementations must assign message ids from a strictly increasing
    sequence and must never update or reorder a stored message.
    """

    @abstractmethod
    async def create_conversation(
        self,
        user_id: str,
        title: str,
        context_type: str = "GENERAL",
        context_id: Optional[str] = None
    ) -> Conversation:
        """Create and persist a new conversation."""
        pass

    @abstractmethod
    async def get_conversation(
        self,
        conversation_id: str,
        user_id: str
    ) -> Optional[Conversation]:
        """Return the conversation only if it exists and is owned by ``user_id``."""
        pass

    @abstractmethod
    async def append_message(
        self,
        conversation_id: str,
        role: MessageRole,
        content: Optional[str],
        tool_calls: Optional[Sequence[ToolInvocation]] = None,
        tool_call_id: Optional[str] = None,
        tokens_used: int = 0
    ) -> Message:
        """Append a message to a conversation."""
        pass

    @abstractmethod
    async def list_messages(self, conversation_id: str) -> list[Message]:
        """Return all messages of a conversation in sequence order."""
        pass

    @abstractmethod
    async def list_conversations(
        self,
        user_id: str,
        limit: int = 20
    ) -> list[Conversation]:
        """Return a user's conversations, most recently updated first."""
        pass


class InMemoryConversationStore(ConversationStore):
    """
    Process-local conversation store.

    Responsibilities:
    - Create and retrieve conversations with owner filtering
    - Append immutable messages with a global sequence
    - Reject tool messages that answer no earlier tool call
    """

    def __init__(self) -> None:
        self._conversations: dict[str, Conversation] = {}
        self._messages: dict[str, list[Message]] = {}
        self._sequence = 0
        self._lock = asyncio.Lock()

    async def create_conversation(
        self,
        user_id: str,
        title: str,
        context_type: str = "GENERAL",
        context_id: Optional[str] = None
    ) -> Conversation:
        conversation = Conversation(
            id=str(uuid.uuid4()),
            user_id=user_id,
            title=title,
            context_type=context_type,
            context_id=context_id
        )

        async with self._lock:
            self._conversations[conversation.id] = conversation
            self._messages[conversation.id] = []

        logger.info(
            "Conversation created",
            conversation_id=conversation.id,
            user=user_id,
            context_type=context_type
        )

        return conversation

    async def get_conversation(
        self,
        conversation_id: str,
        user_id: str
    ) -> Optional[Conversation]:
        conversation = self._conversations.get(conversation_id)
        if conversation is None or conversation.user_id != user_id:
            return None
        return conversation

    async def append_message(
        self,
        conversation_id: str,
        role: MessageRole,
        content: Optional[str],
        tool_calls: Optional[Sequence[ToolInvocation]] = None,
        tool_call_id: Optional[str] = None,
        tokens_used: int = 0
    ) -> Message:
        async with self._lock:
            conversation = self._conversations.get(conversation_id)
            if conversation is None:
                raise KeyError(f"Conversation '{conversation_id}' does not exist")

            history = self._messages[conversation_id]

            if role == MessageRole.TOOL:
                requested = {
                    call.id
                    for m in history
                    if m.role == MessageRole.ASSISTANT and m.tool_calls
                    for call in m.tool_calls
                }
                if tool_call_id not in requested:
                    raise MessageOrderError(
                        f"Tool message references unknown tool call '{tool_call_id}'"
                    )

            self._sequence += 1
            message = Message(
                id=self._sequence,
                conversation_id=conversation_id,
                role=role,
                content=content,
                tool_calls=tuple(tool_calls) if tool_calls else None,
                tool_call_id=tool_call_id,
                tokens_used=tokens_used
            )
            history.append(message)
            conversation.updated_at = message.created_at

        return message

    async def list_messages(self, conversation_id: str) -> list[Message]:
        return list(self._messages.get(conversation_id, []))

    async def list_conversations(
        self,
        user_id: str,
        limit: int = 20
    ) -> list[Conversation]:
        conversations = [
            c for c in self._conversations.values() if c.user_id == user_id
        ]
        conversations.sort(key=lambda c: c.updated_at, reverse=True)
        return conversations[:limit]
