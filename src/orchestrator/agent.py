"""Conversation Orchestrator - the bounded agentic loop.

Per chat request the orchestrator:
1. Resolves (or creates) the caller's conversation
2. Persists the user message and rebuilds the model's view of the history
3. Calls the LLM gateway with the tool catalog
4. Executes requested tools with the caller's security context injected
5. Repeats until a tool-free answer or the turn ceiling
"""

import json
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Optional, Union

from pydantic import BaseModel

from shared.logging import get_logger, request_context
from shared.models import (
    CompletionOptions,
    Conversation,
    Message,
    MessageRole,
    ToolInvocation,
    UserContext,
)
from catalog.registry import ToolCatalog
from orchestrator.conversation import ConversationStore
from orchestrator.gateway import LLMGateway
from orchestrator.history import build_model_messages, message_to_wire

logger = get_logger(__name__)


class OrchestratorError(Exception):
    """Base exception for orchestration failures."""
    pass


class ConversationNotFoundError(OrchestratorError):
    """Unknown conversation, or one owned by another user."""

    def __init__(self, conversation_id: str) -> None:
        super().__init__(f"Conversation '{conversation_id}' not found")
        self.conversation_id = conversation_id


class LoopExhaustedError(OrchestratorError):
    """The turn ceiling was reached without a final answer."""

    def __init__(self, conversation_id: str, turns: int) -> None:
        super().__init__("AI loop limit exceeded without final response")
        self.conversation_id = conversation_id
        self.turns = turns


class LoopState(str, Enum):
    """States of the agentic loop."""
    AWAIT_MODEL = "await_model"
    DISPATCH_TOOLS = "dispatch_tools"
    FINALIZED = "finalized"
    EXHAUSTED = "exhausted"


class ChatContext(BaseModel):
    """What the conversation is about (free-form tag plus optional id)."""
    type: str = "GENERAL"
    id: Optional[Union[str, int]] = None


class ChatResult(BaseModel):
    """Outcome of a successful chat request."""
    conversation_id: str
    message: str
    turns: int
    state: LoopState = LoopState.FINALIZED


# Fields overwritten with the authenticated caller before every tool call
SECURITY_FIELDS = ("user_id", "user_level")

TITLE_LENGTH = 50


class ConversationOrchestrator:
    """
    Drives tool-augmented conversations.

    Each call to ``send_message`` is one sequential run: the gateway is
    never called again before every tool result of the current turn has
    been persisted.
    """

    def __init__(
        self,
        gateway: LLMGateway,
        catalog: ToolCatalog,
        store: ConversationStore,
        max_turns: int = 5,
        clock: Callable[[], datetime] = datetime.now
    ) -> None:
        """
        Initialize the orchestrator.

        Args:
            gateway: Rate-limited LLM gateway
            catalog: Tools offered to the model
            store: Conversation persistence
            max_turns: Maximum gateway calls per request
            clock: Source of the current time for the system preamble
        """
        if max_turns < 1:
            raise ValueError("max_turns must be at least 1")

        self.gateway = gateway
        self.catalog = catalog
        self.store = store
        self.max_turns = max_turns
        self._clock = clock

    async def send_message(
        self,
        message: str,
        user: UserContext,
        conversation_id: Optional[str] = None,
        context: Optional[ChatContext] = None
    ) -> ChatResult:
        """
        Process a user message and return the assistant's final answer.

        Raises:
            ConversationNotFoundError: If ``conversation_id`` is not owned by the user
            LoopExhaustedError: If no final answer was produced within ``max_turns``
            GatewayError: If the model provider failed
        """
        request_id = str(uuid.uuid4())

        with request_context(request_id=request_id, user_id=user.user_id):
            conversation = await self._resolve_conversation(
                message, user, conversation_id, context
            )

            with request_context(conversation_id=conversation.id):
                logger.info("Processing message")

                await self.store.append_message(conversation.id, MessageRole.USER, message)

                history = await self.store.list_messages(conversation.id)
                messages = build_model_messages(history, user, self._clock())

                content, turns = await self._run_loop(conversation, messages, user)

        return ChatResult(conversation_id=conversation.id, message=content, turns=turns)

    async def _resolve_conversation(
        self,
        message: str,
        user: UserContext,
        conversation_id: Optional[str],
        context: Optional[ChatContext]
    ) -> Conversation:
        if conversation_id:
            conversation = await self.store.get_conversation(conversation_id, user.user_id)
            if conversation is None:
                # Same signal for missing and foreign conversations
                raise ConversationNotFoundError(conversation_id)
            return conversation

        context = context or ChatContext()
        return await self.store.create_conversation(
            user_id=user.user_id,
            title=message[:TITLE_LENGTH] + "...",
            context_type=context.type,
            context_id=str(context.id) if context.id is not None else None
        )

    async def _run_loop(
        self,
        conversation: Conversation,
        messages: list[dict[str, Any]],
        user: UserContext
    ) -> tuple[str, int]:
        """
        Run the agentic loop until a final answer or the turn ceiling.

        Returns:
            The final content and the number of gateway calls made
        """
        tools = self.catalog.definitions()
        state = LoopState.AWAIT_MODEL
        turns = 0

        while state == LoopState.AWAIT_MODEL:
            response = await self.gateway.chat_completion(
                messages,
                CompletionOptions(
                    user_id=user.user_id,
                    tools=tools or None,
                    use_cache=turns == 0
                )
            )
            turns += 1

            assistant = await self.store.append_message(
                conversation.id,
                MessageRole.ASSISTANT,
                response.content,
                tool_calls=response.tool_calls or None,
                tokens_used=response.usage.total_tokens
            )
            messages.append(message_to_wire(assistant))

            if not response.tool_calls:
                state = LoopState.FINALIZED
                break

            state = LoopState.DISPATCH_TOOLS
            logger.info(
                "Processing tool calls",
                count=len(response.tool_calls),
                turn=turns
            )

            for invocation in response.tool_calls:
                output = await self._dispatch_tool(invocation, user)
                tool_message = await self.store.append_message(
                    conversation.id,
                    MessageRole.TOOL,
                    output,
                    tool_call_id=invocation.id
                )
                messages.append(message_to_wire(tool_message))

            state = LoopState.AWAIT_MODEL if turns < self.max_turns else LoopState.EXHAUSTED

        if state == LoopState.FINALIZED:
            logger.info("Conversation turn finalized", turns=turns)
            return response.content or "", turns

        logger.warning("Max turns reached without final response", turns=turns)
        raise LoopExhaustedError(conversation.id, turns)

    async def _dispatch_tool(self, invocation: ToolInvocation, user: UserContext) -> str:
        """
        Execute one tool invocation; never raises.

        The caller's identity and level overwrite whatever the model put in
        the arguments, so a prompt-injected tool call cannot impersonate
        another user.
        """
        args = self._parse_arguments(invocation)
        args["user_id"] = user.user_id
        args["user_level"] = user.level

        handler = self.catalog.handler(invocation.name)
        if handler is None:
            logger.warning("Unknown tool requested", tool=invocation.name)
            return json.dumps({"error": f"Tool {invocation.name} not found"})

        logger.info(
            "Executing tool",
            tool=invocation.name,
            tool_call_id=invocation.id,
            arguments=sorted(k for k in args if k not in SECURITY_FIELDS)
        )

        try:
            output = await handler(args)
        except Exception as e:
            logger.error("Tool execution error", tool=invocation.name, error=str(e), exc_info=True)
            return json.dumps({"error": f"Error executing tool: {e}"})

        if not isinstance(output, str):
            output = json.dumps(output, default=str)

        return output

    @staticmethod
    def _parse_arguments(invocation: ToolInvocation) -> dict[str, Any]:
        """Parse model-supplied arguments; malformed input yields ``{}``."""
        try:
            args = json.loads(invocation.arguments or "{}")
        except json.JSONDecodeError as e:
            logger.error("Invalid tool call arguments", tool=invocation.name, error=str(e))
            return {}

        if not isinstance(args, dict):
            logger.error(
                "Tool call arguments are not an object",
                tool=invocation.name,
                type=type(args).__name__
            )
            return {}

        return args

    async def list_conversations(
        self,
        user: UserContext,
        limit: int = 20
    ) -> list[Conversation]:
        """List the caller's most recently updated conversations."""
        return await self.store.list_conversations(user.user_id, limit=limit)

    async def get_messages(
        self,
        conversation_id: str,
        user: UserContext
    ) -> list[Message]:
        """
        Return the ordered messages of one of the caller's conversations.

        Raises:
            ConversationNotFoundError: If the conversation is not owned by the user
        """
        conversation = await self.store.get_conversation(conversation_id, user.user_id)
        if conversation is None:
            raise ConversationNotFoundError(conversation_id)
        return await self.store.list_messages(conversation_id)
