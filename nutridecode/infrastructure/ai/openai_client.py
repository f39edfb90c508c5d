"""
OpenAI API client.

Async chat-completion client whose every call is admitted by the shared
RateLimitedDispatcher.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, TYPE_CHECKING

import structlog
from openai import AsyncOpenAI

from nutridecode.domain.shared.errors import ConfigurationError, ParseError
from nutridecode.infrastructure.ai.dispatcher import (
    RateLimitedDispatcher,
    estimate_message_tokens,
)
from nutridecode.infrastructure.ai.errors import classify_openai_error

if TYPE_CHECKING:
    from openai.types.chat import ChatCompletion

logger = structlog.get_logger(__name__)


class OpenAIClient:
    """
    Async OpenAI client for vision and text completion.

    Retries and throttling live in the dispatcher, so the SDK's own
    retry loop is disabled.

    Example:
        >>> async with OpenAIClient(api_key="sk-...", dispatcher=dispatcher) as client:
        ...     response = await client.complete(
        ...         messages=[{"role": "user", "content": "Hello"}],
        ...     )
        ...     print(response["content"])
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-4o",
        timeout: int = 60,
        dispatcher: Optional[RateLimitedDispatcher] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        """
        Initialize OpenAI client.

        Args:
            api_key: OpenAI API key
            model: Model to use (gpt-4o for vision support)
            timeout: Request timeout in seconds
            dispatcher: Shared dispatcher (a private one is created if None)
            client: Optional pre-configured AsyncOpenAI client (for testing)

        Raises:
            ConfigurationError: If no API key and no client provided
        """
        if client is not None:
            self._client: Optional[AsyncOpenAI] = client
            self.api_key: str = api_key or "test-key"
        else:
            if not api_key:
                raise ConfigurationError("OPENAI_API_KEY is required for the OpenAI client")
            self.api_key = api_key
            self._client = None

        self.model = model
        self.timeout = timeout
        self.dispatcher = dispatcher or RateLimitedDispatcher()

    async def __aenter__(self) -> OpenAIClient:
        """Async context manager entry."""
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.api_key,
                timeout=self.timeout,
                max_retries=0,
            )
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        if self._client:
            await self._client.close()

    async def complete(
        self,
        messages: List[Dict[str, Any]],
        response_format: Optional[Dict[str, str]] = None,
        temperature: float = 0.7,
        max_tokens: int = 2000,
    ) -> Dict[str, Any]:
        """
        Run one chat completion through the dispatcher.

        Args:
            messages: Chat messages (system, user, assistant)
            response_format: {"type": "json_object"} for JSON mode
            temperature: Sampling temperature (0.0-2.0)
            max_tokens: Max tokens in response

        Returns:
            Dict with content, finish_reason and usage

        Raises:
            ServiceError: Classified remote failure
            ValidationError: Request could never fit the token budget
            ParseError: If the reply carries no choices
        """
        if not self._client:
            raise RuntimeError("Client not initialized. Use async with.")
        client = self._client

        params: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if response_format:
            params["response_format"] = response_format

        async def call() -> ChatCompletion:
            try:
                return await client.chat.completions.create(**params)
            except Exception as e:
                raise classify_openai_error(e) from e

        estimated = estimate_message_tokens(messages) + max_tokens
        completion = await self.dispatcher.dispatch(call, estimated)

        if not completion.choices:
            raise ParseError("No response content received")
        choice = completion.choices[0]
        usage = completion.usage
        logger.debug(
            "openai_completion",
            model=self.model,
            finish_reason=choice.finish_reason,
            total_tokens=usage.total_tokens if usage else 0,
        )
        return {
            "content": choice.message.content or "",
            "finish_reason": choice.finish_reason,
            "usage": {
                "prompt_tokens": usage.prompt_tokens if usage else 0,
                "completion_tokens": usage.completion_tokens if usage else 0,
                "total_tokens": usage.total_tokens if usage else 0,
            },
        }

    async def complete_json(
        self,
        messages: List[Dict[str, Any]],
        temperature: float = 0.3,
        max_tokens: int = 2000,
    ) -> Dict[str, Any]:
        """
        Complete in JSON mode and return the parsed object.

        Raises:
            ParseError: If the reply is empty, not JSON, or not an object
        """
        response = await self.complete(
            messages=messages,
            response_format={"type": "json_object"},
            temperature=temperature,
            max_tokens=max_tokens,
        )
        content = response["content"].strip()
        if not content:
            raise ParseError("No response content received")

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise ParseError(f"Invalid JSON response: {e}", content=content) from e

        if not isinstance(data, dict):
            raise ParseError("Expected a JSON object", content=content)
        return data

    def get_stats(self) -> Dict[str, Any]:
        """Model name plus the dispatcher's budget usage."""
        return {"model": self.model, **self.dispatcher.stats()}
