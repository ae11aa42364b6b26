"""LLM Integration Layer using LlamaIndex.

Supports multiple LLM providers via LlamaIndex-compatible packages:
- Azure OpenAI
- OpenAI
- Mock (scripted responses for tests and local development)

Providers are only ever called through the LLMGateway, which owns
rate limiting, caching and timeouts.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx

from shared.config import LLMSettings
from shared.logging import get_logger
from shared.models import LLMResponse, TokenUsage, ToolInvocation

logger = get_logger(__name__)


class ProviderRateLimitError(Exception):
    """The provider throttled the request (HTTP 429)."""
    pass


class LLMProvider(ABC):
    """
    Abstract base class for LLM providers.

    Messages are passed in the OpenAI chat wire format (list of dicts with
    role, content and optionally tool_calls / tool_call_id).
    """

    @abstractmethod
    async def complete(
        self,
        messages: list[dict[str, Any]],
        tools: Optional[list[dict[str, Any]]] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None
    ) -> LLMResponse:
        """
        Generate a completion from the LLM.

        Args:
            messages: Conversation in provider wire format
            tools: Available tools in OpenAI function format
            model: Model override
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate

        Returns:
            LLM response with content and/or tool calls

        Raises:
            ProviderRateLimitError: If the provider throttled the request
        """
        pass


def _field(obj: Any, name: str, default: Any = None) -> Any:
    """Read a field from an SDK object or a plain dict."""
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


class LlamaIndexProvider(LLMProvider):
    """Shared LlamaIndex plumbing for OpenAI-compatible providers.

    SDK-level retries are disabled: throttling must surface to the gateway
    immediately. The client is built without a max_tokens default so the
    value resolved by the gateway for each call reaches the request body.
    """

    def __init__(
        self,
        settings: LLMSettings,
        http_client: Optional[httpx.AsyncClient] = None
    ) -> None:
        self.settings = settings
        self.http_client = http_client
        self._llm = None

    @abstractmethod
    def _create_llm(self):
        """Instantiate the LlamaIndex LLM."""
        pass

    def _get_llm(self):
        """Lazy initialization of LlamaIndex LLM."""
        if self._llm is None:
            self._llm = self._create_llm()
        return self._llm

    def _convert_messages(self, messages: list[dict[str, Any]]) -> list:
        """Convert wire-format messages to LlamaIndex chat messages."""
        from llama_index.core.llms import ChatMessage, MessageRole

        role_map = {
            "user": MessageRole.USER,
            "assistant": MessageRole.ASSISTANT,
            "system": MessageRole.SYSTEM,
            "tool": MessageRole.TOOL,
        }

        result = []
        for msg in messages:
            additional_kwargs: dict[str, Any] = {}
            if msg.get("tool_calls"):
                additional_kwargs["tool_calls"] = msg["tool_calls"]
            if msg.get("tool_call_id"):
                additional_kwargs["tool_call_id"] = msg["tool_call_id"]

            result.append(ChatMessage(
                role=role_map.get(msg["role"], MessageRole.USER),
                content=msg.get("content"),
                additional_kwargs=additional_kwargs,
            ))

        return result

    def _model_kwargs(
        self,
        model: Optional[str],
        temperature: Optional[float],
        max_tokens: Optional[int]
    ) -> dict[str, Any]:
        """Per-call overrides; the shared LLM instance is never mutated."""
        kwargs: dict[str, Any] = {}
        if model is not None:
            kwargs["model"] = model
        if temperature is not None:
            kwargs["temperature"] = temperature
        if max_tokens is not None:
            kwargs["max_tokens"] = max_tokens
        return kwargs

    def _parse_response(self, response: Any) -> LLMResponse:
        """Normalize a LlamaIndex ChatResponse."""
        message = response.message
        raw_calls = message.additional_kwargs.get("tool_calls") or []

        tool_calls = [
            ToolInvocation(
                id=_field(tc, "id"),
                name=_field(_field(tc, "function"), "name"),
                arguments=_field(_field(tc, "function"), "arguments") or "{}",
            )
            for tc in raw_calls
        ]

        raw_usage = _field(response.raw, "usage") if response.raw is not None else None
        usage = TokenUsage()
        if raw_usage is not None:
            usage = TokenUsage(
                prompt_tokens=_field(raw_usage, "prompt_tokens", 0) or 0,
                completion_tokens=_field(raw_usage, "completion_tokens", 0) or 0,
                total_tokens=_field(raw_usage, "total_tokens", 0) or 0,
            )

        return LLMResponse(
            content=message.content,
            tool_calls=tool_calls,
            finish_reason="tool_calls" if tool_calls else "stop",
            usage=usage,
        )

    async def complete(
        self,
        messages: list[dict[str, Any]],
        tools: Optional[list[dict[str, Any]]] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None
    ) -> LLMResponse:
        """Generate completion via LlamaIndex."""
        from openai import RateLimitError

        llm = self._get_llm()
        chat_messages = self._convert_messages(messages)
        kwargs = self._model_kwargs(model, temperature, max_tokens)

        if tools:
            kwargs["tools"] = tools
            kwargs["tool_choice"] = "auto"

        try:
            response = await llm.achat(chat_messages, **kwargs)
        except RateLimitError as e:
            raise ProviderRateLimitError(str(e)) from e

        return self._parse_response(response)


class AzureOpenAIProvider(LlamaIndexProvider):
    """Azure OpenAI LLM provider using LlamaIndex."""

    def _create_llm(self):
        from llama_index.llms.azure_openai import AzureOpenAI

        return AzureOpenAI(
            engine=self.settings.deployment_name or self.settings.model,
            model=self.settings.model,
            api_key=self.settings.api_key,
            azure_endpoint=self.settings.api_base,
            api_version=self.settings.api_version,
            temperature=self.settings.temperature,
            max_tokens=None,
            max_retries=0,
            async_http_client=self.http_client,
        )

    def _model_kwargs(
        self,
        model: Optional[str],
        temperature: Optional[float],
        max_tokens: Optional[int]
    ) -> dict[str, Any]:
        # Azure routes by deployment, a model override is meaningless here
        return super()._model_kwargs(None, temperature, max_tokens)


class OpenAIProvider(LlamaIndexProvider):
    """OpenAI LLM provider using LlamaIndex."""

    def _create_llm(self):
        from llama_index.llms.openai import OpenAI

        return OpenAI(
            model=self.settings.model,
            api_key=self.settings.api_key,
            api_base=self.settings.api_base,
            temperature=self.settings.temperature,
            max_tokens=None,
            max_retries=0,
            async_http_client=self.http_client,
        )


class MockLLMProvider(LLMProvider):
    """Mock LLM provider for testing without API calls."""

    def __init__(self, settings: Optional[LLMSettings] = None) -> None:
        self.settings = settings
        self.call_history: list[dict[str, Any]] = []
        self._responses: list[LLMResponse] = []
        self.error: Optional[Exception] = None
        self.delay: float = 0

    def set_next_response(self, response: LLMResponse) -> None:
        """Set the next response to return."""
        self._responses.insert(0, response)

    def queue_responses(self, *responses: LLMResponse) -> None:
        """Append responses to be returned in order."""
        self._responses.extend(responses)

    async def complete(
        self,
        messages: list[dict[str, Any]],
        tools: Optional[list[dict[str, Any]]] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None
    ) -> LLMResponse:
        """Return the next scripted response."""
        self.call_history.append({
            "messages": [dict(m) for m in messages],
            "tools": tools,
            "model": model,
            "temperature": temperature,
            "max_tokens": max_tokens
        })

        if self.delay:
            await asyncio.sleep(self.delay)

        if self.error is not None:
            raise self.error

        if self._responses:
            return self._responses.pop(0)

        # Default mock response
        return LLMResponse(
            content="This is a mock response.",
            finish_reason="stop",
            usage=TokenUsage(prompt_tokens=10, completion_tokens=5, total_tokens=15)
        )


def create_llm_provider(settings: LLMSettings) -> LLMProvider:
    """
    Factory function to create appropriate LLM provider.

    Supports:
    - azure_openai: Azure OpenAI Service
    - openai: OpenAI API
    - mock: Mock provider for testing

    Raises:
        ValueError: If provider is not supported
    """
    providers = {
        "azure_openai": AzureOpenAIProvider,
        "openai": OpenAIProvider,
        "mock": MockLLMProvider,
    }

    provider_class = providers.get(settings.provider)
    if not provider_class:
        raise ValueError(
            f"Unsupported LLM provider: {settings.provider}. "
            f"Supported: {list(providers.keys())}"
        )

    logger.info("Creating LLM provider", provider=settings.provider, model=settings.model)
    return provider_class(settings)
