"""LLM Gateway - the single path to the model provider.

The gateway coordinates:
- Response caching for tool-free requests
- Admission through the shared rate limiter
- Timeouts and provider error translation
- Token usage logging for cost observability
"""

import asyncio
from typing import Any, Optional

from shared.config import GatewaySettings, LLMSettings
from shared.logging import get_logger
from shared.models import (
    CompletionOptions,
    FinalResponse,
    GatewayResponse,
    LLMResponse,
    ToolCallResponse,
)
from orchestrator.cache import ResponseCache, cache_key
from orchestrator.limiter import RateLimiter
from orchestrator.llm import LLMProvider, ProviderRateLimitError

logger = get_logger(__name__)


class GatewayError(Exception):
    """Base exception for gateway failures."""
    pass


class RateLimitExceededError(GatewayError):
    """The provider throttled the request; the caller may retry later."""

    def __init__(self, message: str = "Rate limit exceeded. Please try again later.") -> None:
        super().__init__(message)


class ProviderTimeoutError(GatewayError):
    """The provider did not answer within the configured timeout."""
    pass


class LLMGateway:
    """
    Rate-limited, cached gateway to the LLM provider.

    One instance is shared by every conversation in the process; its
    limiter and cache are the only state shared across chat requests.
    """

    def __init__(
        self,
        provider: LLMProvider,
        limiter: Optional[RateLimiter] = None,
        cache: Optional[ResponseCache] = None,
        default_model: str = "gpt-4-turbo-preview",
        default_temperature: float = 0.5,
        default_max_tokens: int = 1000,
        timeout_seconds: float = 60
    ) -> None:
        """
        Initialize the gateway.

        Args:
            provider: LLM provider performing the actual calls
            limiter: Shared admission limiter
            cache: Response cache for tool-free requests
            default_model: Model used when options do not override it
            default_temperature: Temperature used when options do not override it
            default_max_tokens: Output ceiling used when options do not override it
            timeout_seconds: Bounded wait for a single provider call
        """
        self.provider = provider
        self.limiter = limiter or RateLimiter()
        self.cache = cache or ResponseCache()
        self.default_model = default_model
        self.default_temperature = default_temperature
        self.default_max_tokens = default_max_tokens
        self.timeout_seconds = timeout_seconds

    @classmethod
    def from_settings(
        cls,
        provider: LLMProvider,
        llm_settings: LLMSettings,
        gateway_settings: GatewaySettings
    ) -> "LLMGateway":
        return cls(
            provider=provider,
            limiter=RateLimiter.from_settings(gateway_settings),
            cache=ResponseCache.from_settings(gateway_settings),
            default_model=llm_settings.model,
            default_temperature=llm_settings.temperature,
            default_max_tokens=llm_settings.max_tokens,
            timeout_seconds=gateway_settings.request_timeout_seconds,
        )

    async def chat_completion(
        self,
        messages: list[dict[str, Any]],
        options: Optional[CompletionOptions] = None
    ) -> GatewayResponse:
        """
        Send a message list to the model.

        Args:
            messages: Conversation in provider wire format
            options: Model override, sampling, tools and cache flag

        Returns:
            FinalResponse when the model answered, ToolCallResponse when it
            requested tool executions

        Raises:
            RateLimitExceededError: If the provider throttled the request
            ProviderTimeoutError: If the provider call timed out
        """
        options = options or CompletionOptions()
        cacheable = options.use_cache and not options.tools
        key = cache_key(messages) if cacheable else None

        if key is not None:
            cached = await self.cache.get(key)
            if cached is not None:
                logger.info("Cache hit", user_id=options.user_id)
                return cached

        response = await self.limiter.schedule(self._dispatch, messages, options)

        if key is not None and isinstance(response, FinalResponse):
            await self.cache.set(key, response)

        return response

    async def _dispatch(
        self,
        messages: list[dict[str, Any]],
        options: CompletionOptions
    ) -> GatewayResponse:
        """Call the provider; runs inside a limiter slot."""
        model = options.model or self.default_model
        temperature = options.temperature if options.temperature is not None else self.default_temperature
        max_tokens = options.max_tokens or self.default_max_tokens

        logger.info(
            "Sending request to LLM",
            user_id=options.user_id,
            model=model,
            message_count=len(messages),
            tool_count=len(options.tools or [])
        )

        try:
            result = await asyncio.wait_for(
                self.provider.complete(
                    messages=messages,
                    tools=options.tools or None,
                    model=model,
                    temperature=temperature,
                    max_tokens=max_tokens
                ),
                timeout=self.timeout_seconds
            )
        except ProviderRateLimitError as e:
            logger.error("LLM rate limit hit", user_id=options.user_id, error=str(e))
            raise RateLimitExceededError() from e
        except asyncio.TimeoutError as e:
            logger.error(
                "LLM request timed out",
                user_id=options.user_id,
                timeout_seconds=self.timeout_seconds
            )
            raise ProviderTimeoutError(
                f"LLM request timed out after {self.timeout_seconds}s"
            ) from e
        except Exception as e:
            logger.error("Error calling LLM", user_id=options.user_id, error=str(e))
            raise

        logger.info(
            "LLM request completed",
            user_id=options.user_id,
            model=model,
            prompt_tokens=result.usage.prompt_tokens,
            completion_tokens=result.usage.completion_tokens,
            total_tokens=result.usage.total_tokens
        )

        return self._to_gateway_response(result)

    @staticmethod
    def _to_gateway_response(result: LLMResponse) -> GatewayResponse:
        if result.tool_calls:
            return ToolCallResponse(
                content=result.content,
                tool_calls=result.tool_calls,
                usage=result.usage
            )
        return FinalResponse(content=result.content or "", usage=result.usage)

    def get_stats(self) -> dict[str, Any]:
        """Get gateway statistics."""
        return {
            "limiter": self.limiter.state().model_dump(),
            "cache": self.cache.get_stats(),
            "default_model": self.default_model,
        }
